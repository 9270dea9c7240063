from graph.state import CheckInState
from services.errors import GatewayError, ValidationError
from services.gateway_interface import AttendanceGatewayInterface


async def submit_node(
    state: CheckInState, gateway: AttendanceGatewayInterface = None
) -> dict:
    """勤怠バックエンドへ打刻を送信するノード"""
    try:
        result = await gateway.submit(state["tenant_key"], state["worker_token"])
    except ValidationError as e:
        return {"outcome": "invalid", "error_message": str(e)}
    except GatewayError as e:
        return {"outcome": "failed", "error_message": str(e)}

    return {
        "outcome": "submitted",
        "message": result.message,
        "error_message": None,
    }
