class CheckInError(Exception):
    """チェックイン処理の基底例外"""


class ValidationError(CheckInError):
    """テナント未解決・トークン未入力など、通信前に弾く入力エラー"""


class GatewayError(CheckInError):
    """勤怠バックエンドとの通信エラー"""


class SubmissionError(GatewayError):
    """打刻送信の失敗"""


class FetchError(GatewayError):
    """勤怠台帳の取得失敗"""
