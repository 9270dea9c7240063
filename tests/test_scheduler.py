# tests/test_scheduler.py
from unittest.mock import MagicMock, patch
from schedulers.scheduler import PollingScheduler


def test_add_interval_registers_job():
    """間隔ジョブが登録されること"""
    scheduler = PollingScheduler()
    handle = scheduler.add_interval("scan", MagicMock(), seconds=2)

    job = scheduler._scheduler.get_job("scan")
    assert job is not None
    assert job.max_instances == 1
    assert handle.job_id == "scan"


def test_handle_cancel_is_idempotent():
    """cancelを何度呼んでもエラーにならないこと"""
    scheduler = PollingScheduler()
    handle = scheduler.add_interval("scan", MagicMock(), seconds=2)

    handle.cancel()
    handle.cancel()

    assert handle.cancelled is True
    assert scheduler._scheduler.get_job("scan") is None


def test_scheduler_start_stop():
    """スケジューラの開始・停止"""
    scheduler = PollingScheduler()

    with patch.object(scheduler._scheduler, "start") as mock_start:
        scheduler.start()
        mock_start.assert_called_once()

    with patch.object(type(scheduler._scheduler), "running", True), \
         patch.object(scheduler._scheduler, "shutdown") as mock_shutdown:
        scheduler.stop()
        mock_shutdown.assert_called_once_with(wait=False)


def test_stop_when_not_running():
    """未開始のスケジューラ停止は何もしないこと"""
    scheduler = PollingScheduler()
    with patch.object(scheduler._scheduler, "shutdown") as mock_shutdown:
        scheduler.stop()
    mock_shutdown.assert_not_called()
