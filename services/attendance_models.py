import logging
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"
DEFAULT_SUCCESS_MESSAGE = "Attendance marked successfully!"


@dataclass(frozen=True)
class AttendanceRecord:
    worker_token: str
    worker_name: Optional[str]
    department_name: Optional[str]
    date: str                   # ISO文字列（"2026-10-19T00:00:00.000Z" 等）
    time: str                   # 表示用 HH:MM:SS
    presence: bool              # True=IN / False=OUT（サーバー値のみ）
    photo_ref: Optional[str] = None

    @classmethod
    def from_payload(cls, item: dict) -> "AttendanceRecord":
        """バックエンドの1件分をレコードに変換する"""
        return cls(
            worker_token=str(item.get("rfid") or ""),
            worker_name=item.get("name") or None,
            department_name=item.get("departmentName") or None,
            date=str(item.get("date") or ""),
            time=str(item.get("time") or ""),
            presence=bool(item.get("presence")),
            photo_ref=item.get("photo") or None,
        )

    @property
    def date_part(self) -> str:
        return self.date.split("T")[0]

    def display_row(self) -> dict:
        return {
            "Name": self.worker_name or UNKNOWN,
            "Employee ID": self.worker_token or UNKNOWN,
            "Department": self.department_name or UNKNOWN,
            "Date": self.date_part or UNKNOWN,
            "Time": self.time or UNKNOWN,
            "Presence": "IN" if self.presence else "OUT",
        }


@dataclass
class AttendanceResult:
    message: str


def result_from_payload(payload: Any) -> AttendanceResult:
    message = payload.get("message") if isinstance(payload, dict) else None
    return AttendanceResult(message=message or DEFAULT_SUCCESS_MESSAGE)


def records_from_payload(payload: Any) -> list[AttendanceRecord]:
    """台帳レスポンスを正規化する

    バックエンドは配列そのもの、または {"attendance": [...]} のどちらかを返す。
    それ以外の形は空配列として扱い、警告ログだけ残す。
    """
    items = payload
    if isinstance(payload, dict):
        items = payload.get("attendance")

    if not isinstance(items, list):
        logger.warning("勤怠台帳の形式が不正なため空として扱います: %s", type(items).__name__)
        return []

    records = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("台帳の不正な要素をスキップしました: %r", item)
            continue
        records.append(AttendanceRecord.from_payload(item))
    return records
