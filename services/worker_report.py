from services.attendance_registry import AttendanceRegistry, LedgerView
from services.errors import ValidationError
from services.gateway_interface import AttendanceGatewayInterface, require_tenant, require_token

INVALID_MESSAGE = "RFIDまたはサブドメインが不正です"


class WorkerReport:
    """作業員本人向けの勤怠レポート（日付での絞り込みのみ）"""

    def __init__(self, gateway: AttendanceGatewayInterface, tenant_key: str, worker_token: str):
        self._gateway = gateway
        self._tenant_key = tenant_key
        self._worker_token = worker_token
        self._registry = AttendanceRegistry()

    async def load(self) -> LedgerView:
        try:
            require_tenant(self._tenant_key)
            token = require_token(self._worker_token)
        except ValidationError as e:
            raise ValidationError(INVALID_MESSAGE) from e

        records = await self._gateway.fetch_for_worker(self._tenant_key, token)
        self._registry.replace(records)
        return self._registry.records

    def view(self, date: str = "") -> LedgerView:
        return self._registry.view(date=date)
