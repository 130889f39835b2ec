"""LangGraph StateGraph definition for one canvas turn.

route -> exactly one generation node -> generate_followup (artifact changes
only) -> reflect (scheduled, detached) -> clean_state -> END
"""

from langgraph.graph import END, StateGraph
from langgraph.store.base import BaseStore

from canvas.agents.custom_action import custom_action_node
from canvas.agents.followup import generate_followup_node
from canvas.agents.generate_artifact import generate_artifact_node
from canvas.agents.reflect import reflect_node
from canvas.agents.respond import respond_to_query_node
from canvas.agents.rewrite_artifact import rewrite_artifact_node
from canvas.agents.rewrite_theme import rewrite_artifact_theme_node, rewrite_code_artifact_theme_node
from canvas.agents.router import route_node
from canvas.agents.update_artifact import update_artifact_node, update_highlighted_text_node
from canvas.config import get_config
from canvas.state import DIRECTIVE_FIELDS, CanvasState

# Nodes that append a new artifact version
ARTIFACT_NODES = (
    "generate_artifact",
    "rewrite_artifact",
    "update_artifact",
    "update_highlighted_text",
    "rewrite_artifact_theme",
    "rewrite_code_artifact_theme",
    "custom_action",
)

GENERATION_NODES = ARTIFACT_NODES + ("respond_to_query",)


def _route_after_classification(state: CanvasState) -> str:
    """Conditional edge: the node chosen by the route step."""
    next_node = state.get("next")
    if next_node not in GENERATION_NODES:
        raise ValueError(f"Route step selected unknown node '{next_node}'.")
    return next_node


def _route_after_generation(state: CanvasState) -> str:
    """Conditional edge after respond_to_query or generate_followup.

    Reflection can be switched off with reflection.enabled: false.
    """
    config = get_config()
    if config.get("reflection", {}).get("enabled", True):
        return "reflect"
    return "clean_state"


def _clean_state(state: CanvasState) -> dict:
    """Clear the routing decision and every directive so they never leak into the next turn."""
    return {"next": None, **{field: None for field in DIRECTIVE_FIELDS}}


# --- Build the graph ---

workflow = StateGraph(CanvasState)

workflow.add_node("route", route_node)
workflow.add_node("generate_artifact", generate_artifact_node)
workflow.add_node("rewrite_artifact", rewrite_artifact_node)
workflow.add_node("update_artifact", update_artifact_node)
workflow.add_node("update_highlighted_text", update_highlighted_text_node)
workflow.add_node("rewrite_artifact_theme", rewrite_artifact_theme_node)
workflow.add_node("rewrite_code_artifact_theme", rewrite_code_artifact_theme_node)
workflow.add_node("custom_action", custom_action_node)
workflow.add_node("respond_to_query", respond_to_query_node)
workflow.add_node("generate_followup", generate_followup_node)
workflow.add_node("reflect", reflect_node)
workflow.add_node("clean_state", _clean_state)

workflow.set_entry_point("route")

workflow.add_conditional_edges(
    "route",
    _route_after_classification,
    {name: name for name in GENERATION_NODES},
)

for _name in ARTIFACT_NODES:
    workflow.add_edge(_name, "generate_followup")

for _name in ("respond_to_query", "generate_followup"):
    workflow.add_conditional_edges(
        _name,
        _route_after_generation,
        {"reflect": "reflect", "clean_state": "clean_state"},
    )

workflow.add_edge("reflect", "clean_state")
workflow.add_edge("clean_state", END)


def compile_graph(store: BaseStore, checkpointer=None):
    """Compile the workflow bound to a memory store (reflections, custom actions).

    With a checkpointer the compiled graph also keeps per-thread state,
    read and written with get_state and update_state.
    """
    return workflow.compile(checkpointer=checkpointer, store=store)


# --- Step-execution helpers for manual runs and tests ---

_NODE_FNS = {
    "route": route_node,
    "generate_artifact": generate_artifact_node,
    "rewrite_artifact": rewrite_artifact_node,
    "update_artifact": update_artifact_node,
    "update_highlighted_text": update_highlighted_text_node,
    "rewrite_artifact_theme": rewrite_artifact_theme_node,
    "rewrite_code_artifact_theme": rewrite_code_artifact_theme_node,
    "custom_action": custom_action_node,
    "respond_to_query": respond_to_query_node,
    "generate_followup": generate_followup_node,
    "reflect": reflect_node,
    "clean_state": _clean_state,
}

_STATE_ONLY_NODES = {"route", "clean_state"}


def run_single_step(state: CanvasState, node_name: str, config: dict, store: BaseStore) -> CanvasState:
    """Run a single node outside the compiled graph and return the updated state.

    Messages returned by the node are appended, every other key is replaced.
    """
    node_fn = _NODE_FNS[node_name]
    if node_name in _STATE_ONLY_NODES:
        updates = node_fn(state)
    else:
        updates = node_fn(state, config, store=store)

    merged = {**state, **updates}
    if "messages" in updates:
        merged["messages"] = list(state.get("messages", [])) + list(updates["messages"])
    return merged


def route_after_classification(state: CanvasState) -> str:
    """Public wrapper around _route_after_classification for manual loop usage."""
    return _route_after_classification(state)
