from typing import TypedDict, Optional


class CheckInState(TypedDict):
    tenant_key: str                     # 解決済みテナント（サブドメイン）
    worker_token: str                   # RFID / QRの読み取り値
    source: str                         # "scan" / "manual"
    generation: int                     # 受付開始時のテナント世代
    outcome: Optional[str]              # "invalid" / "submitted" / "failed"
    message: Optional[str]              # サーバーからの確認メッセージ
    error_message: Optional[str]        # エラー詳細
    refreshed: bool                     # 打刻後に台帳を再取得できたか
    refresh_error: Optional[str]        # 再取得失敗時の理由
    notified: bool                      # 通知済みか


def initial_state(
    tenant_key: str, worker_token: str, source: str, generation: int = 0
) -> CheckInState:
    return {
        "tenant_key": tenant_key,
        "worker_token": worker_token,
        "source": source,
        "generation": generation,
        "outcome": None,
        "message": None,
        "error_message": None,
        "refreshed": False,
        "refresh_error": None,
        "notified": False,
    }
