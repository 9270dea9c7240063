from graph.state import CheckInState


MESSAGES = {
    "submitted": "✅ {message}（{token}）",
    "refresh_failed": "台帳の更新に失敗しました: {error}",
}


def notify_node(state: CheckInState, notifier=None) -> dict:
    """打刻結果を通知するノード"""
    outcome = state["outcome"]

    if outcome in ("invalid", "failed"):
        notifier.send_error(state["error_message"])
    elif outcome == "submitted":
        notifier.send(
            MESSAGES["submitted"].format(
                message=state["message"], token=state["worker_token"]
            )
        )
        if state["refresh_error"]:
            notifier.send_error(
                MESSAGES["refresh_failed"].format(error=state["refresh_error"])
            )

    return {"notified": True}
