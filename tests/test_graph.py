# tests/test_graph.py
from unittest.mock import AsyncMock, MagicMock

import pytest

from graph.graph import route_after_submit, build_graph
from graph.state import initial_state
from services.attendance_models import AttendanceRecord, AttendanceResult
from services.attendance_registry import AttendanceRegistry
from services.errors import SubmissionError


def _make_state(**overrides):
    base = initial_state("acme", "RF001", "scan")
    base.update(overrides)
    return base


def _record(token="RF001", presence=True):
    return AttendanceRecord(
        worker_token=token, worker_name="Taro", department_name="Packing",
        date="2026-10-19T00:00:00.000Z", time="09:00:00", presence=presence,
    )


def test_route_submitted():
    """打刻成功ならrefreshへ"""
    state = _make_state(outcome="submitted")
    assert route_after_submit(state) == "refresh"


def test_route_failed():
    """打刻失敗なら台帳を更新せずnotifyへ"""
    state = _make_state(outcome="failed")
    assert route_after_submit(state) == "notify"


def test_build_graph():
    """グラフが正常にビルドできること"""
    graph = build_graph()
    assert graph is not None


@pytest.mark.asyncio
async def test_graph_success_path():
    """成功時: 送信 → 台帳再取得 → 成功通知"""
    gateway = AsyncMock()
    gateway.submit.return_value = AttendanceResult(message="Attendance marked successfully!")
    gateway.fetch_for_tenant.return_value = [_record()]
    registry = AttendanceRegistry()
    notifier = MagicMock()

    graph = build_graph(gateway=gateway, registry=registry, notifier=notifier)
    result = await graph.ainvoke(_make_state())

    assert result["outcome"] == "submitted"
    assert result["refreshed"] is True
    assert result["notified"] is True
    assert len(registry) == 1
    notifier.send.assert_called_once()
    assert "Attendance marked successfully!" in notifier.send.call_args[0][0]


@pytest.mark.asyncio
async def test_graph_failure_path():
    """失敗時: 台帳は取り直さずエラー通知"""
    gateway = AsyncMock()
    gateway.submit.side_effect = SubmissionError("Worker not found")
    registry = AttendanceRegistry()
    notifier = MagicMock()

    graph = build_graph(gateway=gateway, registry=registry, notifier=notifier)
    result = await graph.ainvoke(_make_state())

    assert result["outcome"] == "failed"
    assert result["refreshed"] is False
    gateway.fetch_for_tenant.assert_not_called()
    notifier.send_error.assert_called_once_with("Worker not found")
