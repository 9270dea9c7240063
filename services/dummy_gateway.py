from datetime import datetime
from typing import Optional

from services.attendance_models import AttendanceRecord, AttendanceResult
from services.gateway_interface import (
    AttendanceGatewayInterface,
    require_tenant,
    require_token,
)


class DummyAttendanceGateway(AttendanceGatewayInterface):
    """メモリ上の台帳で打刻をシミュレーションする（オフライン端末・動作確認用）"""

    def __init__(self, workers: Optional[dict[str, dict[str, str]]] = None):
        # workers: {rfid: {"name": ..., "departmentName": ...}}
        self._workers = workers or {}
        self._ledgers: dict[str, list[AttendanceRecord]] = {}
        self.submit_count = 0

    def _last_presence(self, tenant_key: str, token: str) -> Optional[bool]:
        for record in reversed(self._ledgers.get(tenant_key, [])):
            if record.worker_token == token:
                return record.presence
        return None

    async def submit(self, tenant_key: str, worker_token: str) -> AttendanceResult:
        require_tenant(tenant_key)
        token = require_token(worker_token)
        self.submit_count += 1

        # 出退勤トグル（初回は IN）
        last = self._last_presence(tenant_key, token)
        presence = True if last is None else not last

        now = datetime.now()
        worker = self._workers.get(token, {})
        record = AttendanceRecord(
            worker_token=token,
            worker_name=worker.get("name"),
            department_name=worker.get("departmentName"),
            date=now.date().isoformat(),
            time=now.strftime("%H:%M:%S"),
            presence=presence,
        )
        self._ledgers.setdefault(tenant_key, []).append(record)
        print(f"[DummyGateway] 打刻（シミュレーション）: {tenant_key}/{token} "
              f"{'IN' if presence else 'OUT'}")
        return AttendanceResult(message="Attendance marked successfully!")

    async def fetch_for_tenant(self, tenant_key: str) -> list[AttendanceRecord]:
        require_tenant(tenant_key)
        return list(self._ledgers.get(tenant_key, []))

    async def fetch_for_worker(
        self, tenant_key: str, worker_token: str
    ) -> list[AttendanceRecord]:
        require_tenant(tenant_key)
        token = require_token(worker_token)
        return [r for r in self._ledgers.get(tenant_key, []) if r.worker_token == token]

    async def close(self) -> None:
        pass
