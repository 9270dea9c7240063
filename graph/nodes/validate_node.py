# graph/nodes/validate_node.py
from graph.state import CheckInState
from services.errors import ValidationError
from services.gateway_interface import require_tenant, require_token


def validate_node(state: CheckInState) -> dict:
    """通信前にテナントとトークンを検証するノード"""
    try:
        require_tenant(state["tenant_key"])
        token = require_token(state["worker_token"])
    except ValidationError as e:
        return {"outcome": "invalid", "error_message": str(e)}

    return {"worker_token": token, "error_message": None}
