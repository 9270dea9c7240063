import enum
import logging
from typing import Optional

from graph.graph import build_graph
from graph.nodes.notify_node import notify_node
from graph.nodes.validate_node import validate_node
from graph.state import CheckInState, initial_state
from schedulers.scheduler import PollingScheduler, TimerHandle
from services.attendance_registry import AttendanceRegistry
from services.errors import FetchError, ValidationError
from services.gateway_interface import AttendanceGatewayInterface, require_tenant
from services.tenant_resolver import is_resolved
from services.token_scanner import ScannerHandle, VisualTokenScanner

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_SECONDS = 30
NOT_STARTED_MESSAGE = "チェックイン受付を開始していません"


class ControllerState(enum.Enum):
    IDLE = "idle"
    READY = "ready"
    SUBMITTING = "submitting"


class CheckInController:
    """QRスキャン・手入力を打刻に変換し、成功時に台帳を更新する

    状態:
      IDLE       テナント未解決（解決されるまで何もしない）
      READY      スキャン中。打刻を受け付ける
      SUBMITTING 送信中。この間のスキャン・手入力は破棄する（キューしない）
    """

    def __init__(
        self,
        tenant_key: Optional[str],
        gateway: AttendanceGatewayInterface,
        registry: AttendanceRegistry,
        notifier,
        scheduler: PollingScheduler,
        scanner: Optional[VisualTokenScanner] = None,
        refresh_seconds: float = DEFAULT_REFRESH_SECONDS,
    ):
        if refresh_seconds <= 0:
            raise ValueError(f"台帳更新間隔は正の値で指定してください: {refresh_seconds}")
        self._tenant_key = tenant_key
        self._gateway = gateway
        self._registry = registry
        self._notifier = notifier
        self._scheduler = scheduler
        self._scanner = scanner
        self._refresh_seconds = refresh_seconds
        self._generation = 0
        self._graph = build_graph(
            gateway=gateway,
            registry=registry,
            notifier=notifier,
            current_generation=lambda: self._generation,
        )
        self._state = ControllerState.IDLE
        self._scan_handle: Optional[ScannerHandle] = None
        self._refresh_handle: Optional[TimerHandle] = None

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def tenant_key(self) -> Optional[str]:
        return self._tenant_key

    @property
    def registry(self) -> AttendanceRegistry:
        return self._registry

    @property
    def last_scanned(self) -> Optional[str]:
        return self._scanner.last_scanned if self._scanner else None

    async def start(self) -> bool:
        """テナントが解決済みならスキャンと定期更新を開始する"""
        try:
            require_tenant(self._tenant_key)
        except ValidationError as e:
            self._state = ControllerState.IDLE
            self._notifier.send_error(str(e))
            return False

        self._state = ControllerState.READY
        self._scheduler.start()
        if self._scanner is not None:
            self._scan_handle = self._scanner.start(self._on_scanned)
        self._refresh_handle = self._scheduler.add_interval(
            f"ledger_refresh_{id(self)}", self.refresh, self._refresh_seconds
        )
        logger.info("チェックイン受付を開始しました tenant=%s", self._tenant_key)
        await self.refresh()
        return True

    async def _on_scanned(self, token: str) -> None:
        await self.submit_token(token, source="scan")

    async def submit_token(self, token: str, source: str = "manual") -> Optional[CheckInState]:
        """スキャン・手入力共通の打刻経路（送信中に来たものは破棄）"""
        if self._state is ControllerState.SUBMITTING:
            logger.debug("送信中のため破棄しました: %s (%s)", token, source)
            return None

        generation = self._generation
        state = initial_state(self._tenant_key, token, source, generation)
        state.update(validate_node(state))
        if state["outcome"] != "invalid" and self._state is ControllerState.IDLE:
            state.update({"outcome": "invalid", "error_message": NOT_STARTED_MESSAGE})
        if state["outcome"] == "invalid":
            logger.debug("入力エラー: %s", state["error_message"])
            state.update(notify_node(state, notifier=self._notifier))
            return state

        self._state = ControllerState.SUBMITTING
        try:
            state = await self._graph.ainvoke(state)
        finally:
            # 送信中に close / switch_tenant された場合はその状態を優先する
            if generation == self._generation and self._state is ControllerState.SUBMITTING:
                self._state = ControllerState.READY

        logger.info(
            "打刻処理完了 tenant=%s token=%s source=%s outcome=%s",
            state["tenant_key"], state["worker_token"], source, state["outcome"],
        )
        return state

    async def refresh(self) -> bool:
        """台帳を取り直してスナップショットを差し替える（失敗時は現状維持）"""
        if not is_resolved(self._tenant_key):
            return False
        generation = self._generation
        tenant_key = self._tenant_key
        try:
            records = await self._gateway.fetch_for_tenant(tenant_key)
        except FetchError as e:
            if generation == self._generation:
                self._notifier.send_error(str(e))
            return False
        if generation != self._generation:
            logger.info("取得中にテナントが切り替わったため台帳を破棄しました: %s", tenant_key)
            return False
        self._registry.replace(records)
        return True

    def _stop_timers(self) -> None:
        if self._scanner is not None:
            self._scanner.stop(self._scan_handle)
        self._scan_handle = None
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
        self._refresh_handle = None

    async def switch_tenant(self, tenant_key: Optional[str]) -> bool:
        """テナント切替（古いスナップショットは破棄）"""
        self._stop_timers()
        self._generation += 1
        self._registry.clear()
        self._tenant_key = tenant_key
        self._state = ControllerState.IDLE
        return await self.start()

    def close(self) -> None:
        """タイマーを解除してスナップショットを破棄する"""
        self._stop_timers()
        self._generation += 1
        self._registry.clear()
        self._state = ControllerState.IDLE
