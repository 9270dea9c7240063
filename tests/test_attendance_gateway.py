from unittest.mock import MagicMock

import pytest
import requests

from services.attendance_gateway import (
    FETCH_FAILED_MESSAGE,
    SUBMIT_FAILED_MESSAGE,
    HttpAttendanceGateway,
)
from services.errors import FetchError, SubmissionError, ValidationError


def _response(body=None, content=b"{}", status_error=None):
    response = MagicMock()
    response.content = content
    response.json.return_value = body
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


def _http_error(body):
    error_response = MagicMock()
    if isinstance(body, Exception):
        error_response.json.side_effect = body
    else:
        error_response.json.return_value = body
    return requests.HTTPError("400 Client Error", response=error_response)


def _gateway(session):
    return HttpAttendanceGateway(base_url="http://api.test/api/", session=session)


@pytest.mark.asyncio
async def test_submit_success():
    """打刻をPUTしサーバーのメッセージを返すこと"""
    session = MagicMock()
    session.put.return_value = _response({"message": "Attendance marked successfully!"})

    result = await _gateway(session).submit("acme", " RF001 ")

    assert result.message == "Attendance marked successfully!"
    session.put.assert_called_once_with(
        "http://api.test/api/attendance",
        json={"rfid": "RF001", "subdomain": "acme"},
        timeout=20,
    )


@pytest.mark.asyncio
async def test_submit_rejects_main_tenant_without_network():
    """未解決テナントでは通信しないこと"""
    session = MagicMock()
    with pytest.raises(ValidationError):
        await _gateway(session).submit("main", "RF001")
    session.put.assert_not_called()


@pytest.mark.asyncio
async def test_submit_rejects_empty_token_without_network():
    session = MagicMock()
    with pytest.raises(ValidationError):
        await _gateway(session).submit("acme", "   ")
    session.put.assert_not_called()


@pytest.mark.asyncio
async def test_submit_failure_uses_server_message():
    """エラー本文のmessageを優先すること"""
    session = MagicMock()
    session.put.return_value = _response(
        status_error=_http_error({"message": "Worker not found"})
    )
    with pytest.raises(SubmissionError, match="Worker not found"):
        await _gateway(session).submit("acme", "RF999")


@pytest.mark.asyncio
async def test_submit_failure_generic_message():
    """接続エラー時は既定文言になること"""
    session = MagicMock()
    session.put.side_effect = requests.ConnectionError("refused")
    with pytest.raises(SubmissionError) as exc_info:
        await _gateway(session).submit("acme", "RF001")
    assert str(exc_info.value) == SUBMIT_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_submit_failure_non_json_error_body():
    session = MagicMock()
    session.put.return_value = _response(status_error=_http_error(ValueError("no json")))
    with pytest.raises(SubmissionError) as exc_info:
        await _gateway(session).submit("acme", "RF001")
    assert str(exc_info.value) == SUBMIT_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_fetch_for_tenant_nested_shape():
    session = MagicMock()
    session.get.return_value = _response(
        {"attendance": [{"rfid": "RF001", "presence": True}]}
    )

    records = await _gateway(session).fetch_for_tenant("acme")

    assert [r.worker_token for r in records] == ["RF001"]
    session.get.assert_called_once_with("http://api.test/api/attendance/acme", timeout=20)


@pytest.mark.asyncio
async def test_fetch_for_tenant_null_attendance():
    """{"attendance": null} は空配列になること"""
    session = MagicMock()
    session.get.return_value = _response({"attendance": None})
    assert await _gateway(session).fetch_for_tenant("acme") == []


@pytest.mark.asyncio
async def test_fetch_for_tenant_non_json_body():
    session = MagicMock()
    response = _response(content=b"<html></html>")
    response.json.side_effect = ValueError("no json")
    session.get.return_value = response
    assert await _gateway(session).fetch_for_tenant("acme") == []


@pytest.mark.asyncio
async def test_fetch_for_tenant_transport_error():
    session = MagicMock()
    session.get.side_effect = requests.Timeout("timeout")
    with pytest.raises(FetchError) as exc_info:
        await _gateway(session).fetch_for_tenant("acme")
    assert str(exc_info.value) == FETCH_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_fetch_for_tenant_requires_tenant():
    session = MagicMock()
    with pytest.raises(ValidationError):
        await _gateway(session).fetch_for_tenant("main")
    session.get.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_for_worker_url():
    """作業員単位の取得URLにテナントとRFIDが入ること"""
    session = MagicMock()
    session.get.return_value = _response([{"rfid": "RF 01", "presence": False}])

    records = await _gateway(session).fetch_for_worker("acme", "RF 01")

    assert records[0].presence is False
    session.get.assert_called_once_with(
        "http://api.test/api/attendance/acme/RF%2001", timeout=20
    )


def test_bearer_token_header():
    gateway = HttpAttendanceGateway(base_url="http://api.test/api", api_token="secret")
    assert gateway._session.headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_close_releases_session():
    session = MagicMock()
    await _gateway(session).close()
    session.close.assert_called_once()
