from abc import ABC, abstractmethod

from services.attendance_models import AttendanceRecord, AttendanceResult
from services.errors import ValidationError
from services.tenant_resolver import is_resolved


def require_tenant(tenant_key: str) -> None:
    if not is_resolved(tenant_key):
        raise ValidationError("サブドメインが見つかりません。URLを確認してください")


def require_token(worker_token: str) -> str:
    token = (worker_token or "").strip()
    if not token:
        raise ValidationError("RFIDを入力してください")
    return token


class AttendanceGatewayInterface(ABC):
    """勤怠バックエンドへの唯一の境界"""

    @abstractmethod
    async def submit(self, tenant_key: str, worker_token: str) -> AttendanceResult:
        """打刻（出退勤のトグルはサーバー側で確定する）"""
        ...

    @abstractmethod
    async def fetch_for_tenant(self, tenant_key: str) -> list[AttendanceRecord]:
        """テナントの勤怠台帳を取得"""
        ...

    @abstractmethod
    async def fetch_for_worker(
        self, tenant_key: str, worker_token: str
    ) -> list[AttendanceRecord]:
        """作業員1人分の勤怠台帳を取得"""
        ...

    @abstractmethod
    async def close(self) -> None:
        """リソース解放"""
        ...
