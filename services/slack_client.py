import logging
import sys

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

logger = logging.getLogger(__name__)


class ConsoleNotifier:
    """コンソール出力による通知（フォールバック用）"""

    def send(self, message: str) -> bool:
        print(f"[チェックイン] {message}", file=sys.stdout)
        return True

    def send_error(self, error: str) -> bool:
        print(f"[チェックインエラー] {error}", file=sys.stderr)
        return True


class SlackNotifier:
    """Slack APIによる通知サービス"""

    def __init__(self, token: str, channel: str, tenant_key: str = ""):
        self._channel = channel
        self._tenant_key = tenant_key
        self._client = WebClient(token=token) if token else None
        self._fallback = ConsoleNotifier()

    def _prefix(self) -> str:
        return f"[{self._tenant_key}] " if self._tenant_key else ""

    def send(self, message: str) -> bool:
        """メッセージ送信（クライアント未設定ならコンソールへ）"""
        if self._client is None:
            return self._fallback.send(message)

        try:
            self._client.chat_postMessage(channel=self._channel, text=self._prefix() + message)
            return True
        except SlackApiError as e:
            logger.warning("Slack通知に失敗しました: %s", e.response.get("error"))
            return False
        except OSError as e:
            logger.warning("Slackに接続できません: %s", e)
            return False

    def send_error(self, error: str) -> bool:
        """エラー通知"""
        if self._client is None:
            return self._fallback.send_error(error)
        return self.send(f"❌ 打刻に失敗しました（エラー: {error}）")
