from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from activity import (
    ActivityCheck,
    ActivitySettings,
    DeviceGroup,
    MonitoredDevice,
    days_hours_minutes_to_minutes,
    days_hours_minutes_to_string,
    format_notification,
    get_inactive_devices,
    is_mode_ok,
    seconds_until,
)

NOW = datetime(2024, 3, 5, 14, 0, tzinfo=timezone.utc)


def _device(name: str, minutes_ago: int | None) -> MonitoredDevice:
    last_activity = None if minutes_ago is None else NOW - timedelta(minutes=minutes_ago)
    return MonitoredDevice(identifier=name.lower(), display_name=name, last_activity=last_activity)


@pytest.mark.parametrize(
    ("days", "hours", "minutes", "total"),
    [
        (None, None, None, 0),
        (0, 0, 0, 0),
        (None, 1, 30, 90),
        (1, None, None, 1440),
        (2, 3, 4, 2 * 1440 + 3 * 60 + 4),
        ("1", "2", "3", 1563),
    ],
)
def test_days_hours_minutes_to_minutes(days, hours, minutes, total) -> None:
    assert days_hours_minutes_to_minutes(days, hours, minutes) == total


@pytest.mark.parametrize(
    ("days", "hours", "minutes", "text"),
    [
        (None, None, None, "0 minutes"),
        (None, 1, 15, "1 hour, 15 minutes"),
        (1, None, None, "1 day"),
        (2, 0, 1, "2 days, 1 minute"),
        (1, 2, None, "1 day, 2 hours"),
        (None, None, 150, "2 hours, 30 minutes"),
    ],
)
def test_days_hours_minutes_to_string(days, hours, minutes, text) -> None:
    assert days_hours_minutes_to_string(days, hours, minutes) == text


def test_threshold_boundaries() -> None:
    group = DeviceGroup(
        number=1,
        devices=[_device("Stale", 100), _device("Recent", 80), _device("Edge", 90)],
        hours=1,
        minutes=30,
    )
    inactive = get_inactive_devices([group], NOW)
    assert [d.display_name for d in inactive] == ["Edge", "Stale"]


def test_device_without_activity_is_inactive() -> None:
    group = DeviceGroup(number=1, devices=[_device("Never", None)], days=365)
    assert get_inactive_devices([group], NOW) == group.devices


def test_absent_threshold_flags_everything_not_in_the_future() -> None:
    future = MonitoredDevice("f", "Future", NOW + timedelta(minutes=1))
    group = DeviceGroup(number=1, devices=[_device("Now", 0), future])
    assert [d.display_name for d in get_inactive_devices([group], NOW)] == ["Now"]


def test_groups_are_evaluated_with_their_own_threshold() -> None:
    groups = [
        DeviceGroup(number=1, devices=[_device("Sensor", 30)], minutes=20),
        DeviceGroup(number=2, devices=[_device("Lock", 30)], hours=1),
        DeviceGroup(number=3, devices=[]),
    ]
    assert [d.display_name for d in get_inactive_devices(groups, NOW)] == ["Sensor"]


def test_unsorted_keeps_group_order() -> None:
    group = DeviceGroup(number=1, devices=[_device("b", 10), _device("a", 10)], minutes=5)
    assert [d.display_name for d in get_inactive_devices([group], NOW, sort_by_name=False)] == ["b", "a"]


def test_mode_gate() -> None:
    assert is_mode_ok([], "Away")
    assert is_mode_ok(None, None)
    assert is_mode_ok(["Away", "Night"], "Night")
    assert not is_mode_ok(["Away"], "Home")
    assert not is_mode_ok(["Away"], None)


def test_format_notification() -> None:
    devices = [
        MonitoredDevice("1", "Porch", datetime(2024, 3, 4, 9, 5, tzinfo=timezone.utc)),
        MonitoredDevice("2", "Garage", None),
    ]
    settings = ActivitySettings(label="Activity", time_format="%Y-%m-%d %H:%M")
    assert format_notification(devices, settings) == (
        "Activity:\nPorch - 2024-03-04 09:05\nGarage - No activity reported"
    )

    settings = ActivitySettings(label="Activity", hub_name="Home", include_hub_name=True, include_time=False)
    assert format_notification(devices, settings) == "Activity - Home:\nPorch\nGarage"


def test_group_management() -> None:
    check = ActivityCheck()
    assert [g.number for g in check.groups] == [1]
    assert check.add_group().number == 2
    assert check.add_group().number == 3
    assert check.remove_group(2)
    assert not check.remove_group(2)
    assert check.add_group().number == 4
    assert check.get_group(3) is not None

    empty = ActivityCheck(groups=[])
    empty.groups.clear()
    assert empty.add_group().number == 2


def test_group_description_and_threshold_text() -> None:
    group = DeviceGroup(number=1, devices=[_device("A", 1), _device("B", 1)], hours=1, minutes=15)
    assert group.description == "A\nB\n"
    assert group.threshold_text == "1 hour, 15 minutes"
    assert group.inactivity_minutes == 75


def test_send_inactive_notification() -> None:
    sent: list[str] = []
    check = ActivityCheck(
        settings=ActivitySettings(label="Check", include_time=False, modes=["Away"]),
        groups=[DeviceGroup(number=1, devices=[_device("Porch", 100)], hours=1)],
        notifier=sent.append,
    )

    assert check.send_inactive_notification(NOW, mode="Home") is None
    assert sent == []

    assert check.send_inactive_notification(NOW, mode="Away") == "Check:\nPorch"
    assert sent == ["Check:\nPorch"]

    text = check.send_inactive_notification(NOW, mode="Away", include_time=True)
    assert text.startswith("Check:\nPorch - ")
    assert check.settings.include_time is False


def test_no_notification_without_inactive_devices() -> None:
    sent: list[str] = []
    check = ActivityCheck(
        groups=[DeviceGroup(number=1, devices=[_device("Porch", 10)], hours=1)],
        notifier=sent.append,
    )
    assert check.send_inactive_notification(NOW) is None
    assert sent == []


def test_report_rows() -> None:
    check = ActivityCheck(
        groups=[DeviceGroup(number=1, devices=[_device("Porch", 100), _device("Attic", None)], hours=1)]
    )
    rows = check.report(NOW)
    assert rows[0] == ("Attic", "No reported activity")
    assert rows[1][0] == "Porch"
    assert rows[1][1] == str(NOW - timedelta(minutes=100))

    check.settings.use_notification_time_format_for_report = True
    check.settings.time_format = "%H:%M"
    assert check.report(NOW)[1] == ("Porch", "12:20")


def test_seconds_until() -> None:
    now = datetime(2024, 3, 5, 14, 0)
    assert seconds_until("15:30", now) == 90 * 60
    assert seconds_until("14:00", now) == 24 * 3600
    assert seconds_until("09:00", now) == 19 * 3600
