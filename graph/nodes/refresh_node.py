# graph/nodes/refresh_node.py
import logging
from typing import Callable, Optional

from graph.state import CheckInState
from services.attendance_registry import AttendanceRegistry
from services.errors import FetchError
from services.gateway_interface import AttendanceGatewayInterface

logger = logging.getLogger(__name__)


async def refresh_node(
    state: CheckInState,
    gateway: AttendanceGatewayInterface = None,
    registry: AttendanceRegistry = None,
    current_generation: Optional[Callable[[], int]] = None,
) -> dict:
    """打刻成功後に台帳を取り直してスナップショットを差し替えるノード

    current_generation が渡された場合、打刻開始時の世代と一致しなければ
    （テナント切替・終了済み）取得も差し替えも行わない。
    """
    def is_stale() -> bool:
        return current_generation is not None and current_generation() != state["generation"]

    if is_stale():
        logger.info("テナントが切り替わったため台帳の再取得をスキップしました: %s", state["tenant_key"])
        return {"refreshed": False, "refresh_error": None}

    try:
        records = await gateway.fetch_for_tenant(state["tenant_key"])
    except FetchError as e:
        # 打刻自体は成功しているので表示は古いまま維持する
        logger.warning("打刻後の台帳再取得に失敗しました: %s", e)
        return {"refreshed": False, "refresh_error": str(e)}

    if is_stale():
        logger.info("取得中にテナントが切り替わったため台帳を破棄しました: %s", state["tenant_key"])
        return {"refreshed": False, "refresh_error": None}

    registry.replace(records)
    return {"refreshed": True, "refresh_error": None}
