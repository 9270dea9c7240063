import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote, urljoin

import requests

from services.attendance_models import (
    AttendanceRecord,
    AttendanceResult,
    records_from_payload,
    result_from_payload,
)
from services.errors import FetchError, SubmissionError
from services.gateway_interface import (
    AttendanceGatewayInterface,
    require_tenant,
    require_token,
)

logger = logging.getLogger(__name__)

SUBMIT_FAILED_MESSAGE = "Failed to mark attendance. Please try again."
FETCH_FAILED_MESSAGE = "Failed to fetch attendance data."


def _error_message(exc: requests.RequestException, default: str) -> str:
    """エラーレスポンスに message があればそれを、無ければ既定文言を返す"""
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
    return default


class HttpAttendanceGateway(AttendanceGatewayInterface):
    """REST APIによる勤怠バックエンドクライアント"""

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout: float = 20,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self._session = session or requests.Session()
        if api_token:
            self._session.headers["Authorization"] = f"Bearer {api_token}"

    def _url(self, *segments: str) -> str:
        path = "/".join(quote(s, safe="") for s in segments)
        return urljoin(self.base_url, path)

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning("JSONではないレスポンスを受信しました: %s", response.url)
            return None

    def _put(self, payload: dict[str, Any], *segments: str) -> Any:
        response = self._session.put(
            self._url(*segments), json=payload, timeout=self.timeout
        )
        response.raise_for_status()
        return self._decode(response)

    def _get(self, *segments: str) -> Any:
        response = self._session.get(self._url(*segments), timeout=self.timeout)
        response.raise_for_status()
        return self._decode(response)

    async def submit(self, tenant_key: str, worker_token: str) -> AttendanceResult:
        require_tenant(tenant_key)
        token = require_token(worker_token)

        payload = {"rfid": token, "subdomain": tenant_key}
        try:
            body = await asyncio.to_thread(self._put, payload, "attendance")
        except requests.RequestException as e:
            logger.warning("打刻送信に失敗しました tenant=%s: %s", tenant_key, e)
            raise SubmissionError(_error_message(e, SUBMIT_FAILED_MESSAGE)) from e
        return result_from_payload(body)

    async def _fetch(self, *segments: str) -> list[AttendanceRecord]:
        try:
            body = await asyncio.to_thread(self._get, *segments)
        except requests.RequestException as e:
            logger.warning("勤怠台帳の取得に失敗しました %s: %s", "/".join(segments), e)
            raise FetchError(_error_message(e, FETCH_FAILED_MESSAGE)) from e
        return records_from_payload(body)

    async def fetch_for_tenant(self, tenant_key: str) -> list[AttendanceRecord]:
        require_tenant(tenant_key)
        return await self._fetch("attendance", tenant_key)

    async def fetch_for_worker(
        self, tenant_key: str, worker_token: str
    ) -> list[AttendanceRecord]:
        require_tenant(tenant_key)
        token = require_token(worker_token)
        return await self._fetch("attendance", tenant_key, token)

    async def close(self) -> None:
        self._session.close()
