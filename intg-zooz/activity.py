"""
Device Activity Check.

Identify devices without recent activity that may have stopped working or
"fallen off" the Z-Wave network, and build the inactivity report/notification.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Iterable

from const import DEFAULT_APP_LABEL, DEFAULT_TIME_FORMAT

_LOG = logging.getLogger(__name__)

NO_REPORTED_ACTIVITY = "No reported activity"
NO_ACTIVITY_REPORTED = "No activity reported"


@dataclass(frozen=True)
class MonitoredDevice:
    """A device as seen by the activity check."""

    identifier: str
    display_name: str
    last_activity: datetime | None = None


@dataclass
class DeviceGroup:
    """Devices sharing one inactivity threshold."""

    number: int
    devices: list[MonitoredDevice] = field(default_factory=list)
    days: int | None = None
    hours: int | None = None
    minutes: int | None = None

    @property
    def inactivity_minutes(self) -> int:
        return days_hours_minutes_to_minutes(self.days, self.hours, self.minutes)

    @property
    def threshold_text(self) -> str:
        return days_hours_minutes_to_string(self.days, self.hours, self.minutes)

    @property
    def description(self) -> str:
        """All device names of the group, one per line."""
        return "".join(f"{dev.display_name}\n" for dev in self.devices)


@dataclass
class ActivitySettings:
    label: str = DEFAULT_APP_LABEL
    hub_name: str | None = None
    include_hub_name: bool = False
    include_time: bool = True
    time_format: str | None = None
    use_notification_time_format_for_report: bool = False
    modes: list[str] = field(default_factory=list)
    time_zone: tzinfo | None = None
    notification_time: str | None = None


def days_hours_minutes_to_minutes(days, hours, minutes) -> int:
    """Total minutes of a days/hours/minutes interval; absent parts count as 0."""
    return (
        (int(minutes) if minutes else 0)
        + (int(hours) * 60 if hours else 0)
        + (int(days) * 1440 if days else 0)
    )


def days_hours_minutes_to_string(days, hours, minutes) -> str:
    """Human-friendly interval, e.g. "1 hour, 15 minutes"."""
    total = days_hours_minutes_to_minutes(days, hours, minutes)
    d = total // 1440
    h = total % 1440 // 60
    m = total % 60
    str_d = f"{d} day{'s' if d != 1 else ''}"
    str_h = f"{h} hour{'s' if h != 1 else ''}"
    str_m = f"{m} minute{'s' if m != 1 else ''}"
    return (
        (str_d if d else "")
        + (", " if d and (h or m) else "")
        + (str_h if h else "")
        + (", " if h and m else "")
        + (str_m if m or not (h or d) else "")
    )


def is_inactive(device: MonitoredDevice, cutoff: datetime) -> bool:
    """
    Return True if the device had no activity after the cutoff.

    Devices that never reported activity are always inactive.
    """
    if device.last_activity is None:
        return True
    return device.last_activity <= cutoff


def get_inactive_devices(
    groups: Iterable[DeviceGroup], now: datetime, sort_by_name: bool = True
) -> list[MonitoredDevice]:
    """Evaluate every group against its threshold at the given time."""
    inactive: list[MonitoredDevice] = []
    for group in groups:
        cutoff = now - timedelta(minutes=group.inactivity_minutes)
        inactive.extend(dev for dev in group.devices or [] if is_inactive(dev, cutoff))
    if sort_by_name:
        inactive.sort(key=lambda dev: dev.display_name)
    return inactive


def is_mode_ok(modes: Iterable[str] | None, mode: str | None) -> bool:
    """Notifications are allowed in any mode unless an allow-list is set."""
    modes = list(modes or [])
    is_ok = not modes or mode in modes
    _LOG.debug("Checking if mode is OK; returning: %s", is_ok)
    return is_ok


def format_last_activity(
    last_activity: datetime | None,
    time_format: str | None,
    time_zone: tzinfo | None = None,
) -> str | None:
    """Format a last activity timestamp, or None if there was none."""
    if last_activity is None:
        return None
    if time_zone is not None:
        last_activity = last_activity.astimezone(time_zone)
    return last_activity.strftime(time_format or DEFAULT_TIME_FORMAT)


def format_notification(
    devices: Iterable[MonitoredDevice], settings: ActivitySettings
) -> str:
    """Build the notification text for the given inactive devices."""
    if settings.include_hub_name and settings.hub_name:
        text = f"{settings.label} - {settings.hub_name}:"
    else:
        text = f"{settings.label}:"
    for dev in devices:
        text += f"\n{dev.display_name}"
        if settings.include_time:
            date_string = format_last_activity(
                dev.last_activity, settings.time_format, settings.time_zone
            )
            text += f" - {date_string or NO_ACTIVITY_REPORTED}"
    return text


def report_rows(
    devices: list[MonitoredDevice], settings: ActivitySettings
) -> list[tuple[str, str]]:
    """Rows (device name, last activity) of the current inactivity report."""
    rows = []
    for dev in devices:
        if settings.use_notification_time_format_for_report:
            last_activity = format_last_activity(
                dev.last_activity, settings.time_format, settings.time_zone
            )
        else:
            last_activity = str(dev.last_activity) if dev.last_activity else None
        rows.append((dev.display_name, last_activity or NO_REPORTED_ACTIVITY))
    return rows


def seconds_until(notification_time: str, now: datetime) -> float:
    """Seconds from now until the next daily occurrence of HH:MM."""
    hour, minute = (int(part) for part in notification_time.split(":")[:2])
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class ActivityCheck:
    """Device groups, their evaluation and the notification path."""

    def __init__(
        self,
        settings: ActivitySettings | None = None,
        groups: list[DeviceGroup] | None = None,
        notifier: Callable[[str], None] | None = None,
    ) -> None:
        self.settings = settings or ActivitySettings()
        self.groups: list[DeviceGroup] = groups or [DeviceGroup(number=1)]
        self._notifier = notifier

    def get_group(self, number: int) -> DeviceGroup | None:
        return next((group for group in self.groups if group.number == number), None)

    def add_group(self) -> DeviceGroup:
        """Add an empty group numbered after the last one."""
        number = self.groups[-1].number + 1 if self.groups else 2
        group = DeviceGroup(number=number)
        self.groups.append(group)
        return group

    def remove_group(self, number: int) -> bool:
        """Remove a group and all of its settings."""
        group = self.get_group(number)
        if group is None:
            return False
        _LOG.debug("Removing settings for group %s...", number)
        self.groups.remove(group)
        return True

    def get_inactive_devices(
        self, now: datetime, sort_by_name: bool = True
    ) -> list[MonitoredDevice]:
        return get_inactive_devices(self.groups, now, sort_by_name)

    def report(self, now: datetime) -> list[tuple[str, str]]:
        """The "view current report" rows."""
        return report_rows(self.get_inactive_devices(now), self.settings)

    def send_inactive_notification(
        self, now: datetime, mode: str | None = None, include_time: bool | None = None
    ) -> str | None:
        """
        Send a notification listing the inactive devices.

        :param now: evaluation time
        :param mode: current mode, checked against the mode allow-list
        :param include_time: override the "include last activity time" setting
        :return: the notification text, or None if nothing was sent
        """
        _LOG.debug(
            "sendInactiveNotification() called...preparing list of inactive devices."
        )
        inactive = self.get_inactive_devices(now)
        mode_ok = is_mode_ok(self.settings.modes, mode)
        if not inactive or not mode_ok:
            reason = "Notification skipped: "
            if not inactive:
                reason += "No inactive devices. "
            if not mode_ok:
                reason += "Outside of specified mode(s)."
            _LOG.debug(reason)
            return None

        settings = self.settings
        if include_time is not None:
            settings = dataclasses.replace(settings, include_time=include_time)
        text = format_notification(inactive, settings)
        _LOG.debug("Sending notification for inactive devices")
        if self._notifier is not None:
            self._notifier(text)
        return text


def build_groups(
    group_configs: list[dict], monitored: dict[int, MonitoredDevice]
) -> list[DeviceGroup]:
    """
    Build the activity check groups from the stored configuration.

    A group without ``node_ids`` monitors every node.
    """
    groups = []
    for index, group_config in enumerate(group_configs or [{}], start=1):
        node_ids = group_config.get("node_ids")
        if node_ids is None:
            devices = list(monitored.values())
        else:
            devices = [monitored[int(n)] for n in node_ids if int(n) in monitored]
        groups.append(
            DeviceGroup(
                number=int(group_config.get("number", index)),
                devices=devices,
                days=group_config.get("days"),
                hours=group_config.get("hours"),
                minutes=group_config.get("minutes"),
            )
        )
    return groups


def groups_to_config(groups: Iterable[DeviceGroup]) -> list[dict]:
    """Stored form of the device groups, devices referenced by node id."""
    return [
        {
            "number": group.number,
            "node_ids": [int(device.identifier) for device in group.devices],
            "days": group.days,
            "hours": group.hours,
            "minutes": group.minutes,
        }
        for group in groups
    ]
