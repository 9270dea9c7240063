import logging
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Optional, Union

from services.attendance_models import AttendanceRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttendanceFilter:
    """台帳の絞り込み条件（空の項目は条件なし、指定項目はAND）"""

    name: str = ""
    department: str = ""
    date: str = ""
    token: str = ""

    @classmethod
    def coerce(
        cls, filters: Union["AttendanceFilter", dict, None] = None, **kwargs: Any
    ) -> "AttendanceFilter":
        if isinstance(filters, AttendanceFilter):
            base = {f.name: getattr(filters, f.name) for f in fields(cls)}
        else:
            base = dict(filters or {})
        base.update(kwargs)
        known = {f.name for f in fields(cls)}
        unknown = set(base) - known
        if unknown:
            raise TypeError(f"未対応のフィルタ項目: {sorted(unknown)}")
        return cls(**{k: (str(v) if v else "") for k, v in base.items()})

    @staticmethod
    def _contains(value: Optional[str], needle: str) -> bool:
        return needle.lower() in (value or "").lower()

    def matches(self, record: AttendanceRecord) -> bool:
        if self.name and not self._contains(record.worker_name, self.name):
            return False
        if self.department and not self._contains(record.department_name, self.department):
            return False
        if self.date and not (record.date and record.date.startswith(self.date)):
            return False
        if self.token and not self._contains(record.worker_token, self.token):
            return False
        return True


class LedgerView(tuple):
    """絞り込み結果（元のスナップショットは変更しない）"""

    def view(self, filters=None, **kwargs) -> "LedgerView":
        condition = AttendanceFilter.coerce(filters, **kwargs)
        return LedgerView(r for r in self if condition.matches(r))

    def display_rows(self) -> list[dict]:
        return [r.display_row() for r in self]


class AttendanceRegistry:
    """取得済み勤怠台帳のスナップショットを保持し、表示用の絞り込みを提供する

    バックエンドは登録順で返すため、replace 時に一度だけ反転して新しい順で保持する。
    """

    def __init__(self):
        self._snapshot: LedgerView = LedgerView()
        self.refreshed_at: Optional[datetime] = None

    def replace(self, records: Any) -> None:
        if not isinstance(records, (list, tuple)):
            if records is not None:
                logger.warning("台帳スナップショットが配列ではありません: %s", type(records).__name__)
            records = []
        valid = [r for r in records if isinstance(r, AttendanceRecord)]
        self._snapshot = LedgerView(reversed(valid))
        self.refreshed_at = datetime.now()

    def clear(self) -> None:
        self._snapshot = LedgerView()
        self.refreshed_at = None

    @property
    def records(self) -> LedgerView:
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def view(self, filters=None, **kwargs) -> LedgerView:
        return self._snapshot.view(filters, **kwargs)

    def latest_by_worker(self) -> LedgerView:
        """作業員ごとの最新レコードのみ（新しい順）"""
        seen: set[str] = set()
        latest = []
        for record in self._snapshot:
            if record.worker_token in seen:
                continue
            seen.add(record.worker_token)
            latest.append(record)
        return LedgerView(latest)

    def present_workers(self) -> LedgerView:
        """最新レコードが IN の作業員"""
        return LedgerView(r for r in self.latest_by_worker() if r.presence)

