"""Quick-Action Catalog — predefined transforms plus user-defined custom actions."""

import uuid

from langgraph.store.base import BaseStore

from canvas.state import DIRECTIVE_FIELDS, CanvasState, CustomQuickAction

READING_LEVELS = ("pirate", "child", "teenager", "college", "phd")
ARTIFACT_LENGTHS = ("shortest", "short", "long", "longest")

TEXT_QUICK_ACTIONS = ("language", "artifact_length", "reading_level", "regenerate_with_emojis")
CODE_QUICK_ACTIONS = ("add_comments", "add_logs", "fix_bugs", "port_language")
CUSTOM_QUICK_ACTION = "custom"

CUSTOM_ACTIONS_KEY = "data"


def custom_actions_namespace(user_id: str) -> tuple[str, ...]:
    return ("custom_actions", user_id)


def is_set(value) -> bool:
    """A directive counts as set when it is neither None nor False nor empty."""
    return value is not None and value is not False and value != "" and value != {}


def active_directives(state: CanvasState) -> list[str]:
    """Return the names of every directive field set on the state, in field order."""
    return [name for name in DIRECTIVE_FIELDS if is_set(state.get(name))]


def quick_action_request(state: CanvasState) -> dict | None:
    """Return the active quick action as {"kind", "value"}, or None.

    Highlighted edits are directives but not quick actions.
    """
    for kind in TEXT_QUICK_ACTIONS + CODE_QUICK_ACTIONS:
        if is_set(state.get(kind)):
            return {"kind": kind, "value": state[kind]}
    if is_set(state.get("custom_quick_action_id")):
        return {"kind": CUSTOM_QUICK_ACTION, "value": state["custom_quick_action_id"]}
    return None


def list_custom_actions(store: BaseStore, user_id: str) -> dict[str, CustomQuickAction]:
    """Return the user's custom actions keyed by id."""
    item = store.get(custom_actions_namespace(user_id), CUSTOM_ACTIONS_KEY)
    if item is None or not isinstance(item.value, dict):
        return {}
    return dict(item.value)


def get_custom_action(store: BaseStore, user_id: str, action_id: str) -> CustomQuickAction | None:
    return list_custom_actions(store, user_id).get(action_id)


def save_custom_action(store: BaseStore, user_id: str, action: dict) -> CustomQuickAction:
    """Create or replace a custom action. A missing id is generated."""
    if not action.get("title") or not action.get("prompt"):
        raise ValueError("Custom quick action requires a title and a prompt.")

    saved: CustomQuickAction = {
        "id": action.get("id") or str(uuid.uuid4()),
        "title": action["title"],
        "prompt": action["prompt"],
        "include_reflections": bool(action.get("include_reflections", True)),
        "include_prefix": bool(action.get("include_prefix", True)),
        "include_recent_history": bool(action.get("include_recent_history", True)),
    }
    actions = list_custom_actions(store, user_id)
    actions[saved["id"]] = saved
    store.put(custom_actions_namespace(user_id), CUSTOM_ACTIONS_KEY, actions)
    return saved


def delete_custom_action(store: BaseStore, user_id: str, action_id: str) -> bool:
    """Remove a custom action. Returns False if it did not exist."""
    actions = list_custom_actions(store, user_id)
    if action_id not in actions:
        return False

    del actions[action_id]
    if actions:
        store.put(custom_actions_namespace(user_id), CUSTOM_ACTIONS_KEY, actions)
    else:
        store.delete(custom_actions_namespace(user_id), CUSTOM_ACTIONS_KEY)
    return True
