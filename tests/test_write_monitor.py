import os
import sys
from datetime import datetime, timedelta

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.errors import PersistenceError
from app.services.write_monitor import WriteFailure, WriteMonitor, failure_cause


def disk_error(strerror="No space left on device"):
    try:
        raise OSError(28, strerror)
    except OSError as os_error:
        try:
            raise PersistenceError("Failed to store file") from os_error
        except PersistenceError as e:
            return e


def test_threshold_must_be_positive():
    with pytest.raises(ValueError):
        WriteMonitor(failure_threshold=0)


def test_failure_cause_uses_underlying_os_error():
    assert failure_cause(disk_error()) == "No space left on device"
    assert failure_cause(PersistenceError("no cause")) == "PersistenceError"


def test_alert_names_files_and_cause():
    alerts = []
    monitor = WriteMonitor(failure_threshold=3, window_seconds=60, alert_handler=alerts.append)

    monitor.record_failure("a.txt", disk_error())
    monitor.record_failure("b.txt", disk_error())
    assert alerts == []

    monitor.record_failure("a.txt", disk_error("Permission denied"))
    assert alerts == [
        "3 failed writes within 60s affecting a.txt, b.txt; "
        "most common cause: No space left on device (2x)"
    ]


def test_alerts_once_per_burst():
    alerts = []
    monitor = WriteMonitor(failure_threshold=2, window_seconds=60, alert_handler=alerts.append)
    for _ in range(5):
        monitor.record_failure("a.txt", disk_error())
    assert len(alerts) == 1


def test_alert_rearms_after_window_drains():
    alerts = []
    monitor = WriteMonitor(failure_threshold=2, window_seconds=60, alert_handler=alerts.append)
    monitor.record_failure("a.txt", disk_error())
    monitor.record_failure("a.txt", disk_error())
    assert len(alerts) == 1

    # Age the recorded failures past the window
    long_ago = datetime.now() - timedelta(seconds=120)
    monitor._failures = type(monitor._failures)(
        WriteFailure(long_ago, failure.name, failure.cause) for failure in monitor._failures
    )
    monitor.record_success("a.txt")

    monitor.record_failure("b.txt", disk_error())
    assert len(alerts) == 1
    monitor.record_failure("b.txt", disk_error())
    assert len(alerts) == 2
    assert "affecting b.txt;" in alerts[1]


def test_success_clears_streak(caplog):
    monitor = WriteMonitor(failure_threshold=10, window_seconds=60, alert_handler=lambda message: None)
    with caplog.at_level("WARNING", logger="content_server"):
        monitor.record_failure("a.txt", disk_error())
        monitor.record_failure("a.txt", disk_error())
        monitor.record_success("a.txt")
        monitor.record_failure("a.txt", disk_error())

    streaks = [record.getMessage() for record in caplog.records if "in a row" in record.getMessage()]
    assert streaks[-2].endswith("2 in a row for this name")
    assert streaks[-1].endswith("1 in a row for this name")


def test_default_alert_logs_critical(caplog):
    monitor = WriteMonitor(failure_threshold=1, window_seconds=60)
    with caplog.at_level("CRITICAL", logger="content_server"):
        monitor.record_failure("a.txt", disk_error())
    assert "1 failed writes within 60s affecting a.txt" in caplog.text
