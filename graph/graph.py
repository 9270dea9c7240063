# graph/graph.py
from langgraph.graph import StateGraph, END
from graph.state import CheckInState


def route_after_submit(state: CheckInState) -> str:
    if state["outcome"] == "submitted":
        return "refresh"
    return "notify"


def build_graph(gateway=None, registry=None, notifier=None, current_generation=None):
    """打刻送信 → 台帳再取得 → 通知 のグラフを構築して返す

    各ノード関数はサービス依存を持つため、functools.partialでラップして
    LangGraphが期待する (state) -> dict シグネチャに合わせる。
    入力検証はグラフ外（CheckInController）で先に行う。
    """
    from functools import partial
    from graph.nodes.submit_node import submit_node
    from graph.nodes.refresh_node import refresh_node
    from graph.nodes.notify_node import notify_node

    submit_wrapped = partial(submit_node, gateway=gateway)
    refresh_wrapped = partial(
        refresh_node, gateway=gateway, registry=registry, current_generation=current_generation
    )
    notify_wrapped = partial(notify_node, notifier=notifier)

    workflow = StateGraph(CheckInState)

    workflow.add_node("submit", submit_wrapped)
    workflow.add_node("refresh", refresh_wrapped)
    workflow.add_node("notify", notify_wrapped)

    workflow.set_entry_point("submit")

    workflow.add_conditional_edges(
        "submit",
        route_after_submit,
        {"refresh": "refresh", "notify": "notify"},
    )

    workflow.add_edge("refresh", "notify")
    workflow.add_edge("notify", END)

    return workflow.compile()
