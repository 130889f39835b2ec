"""Reflection Store — long-term style rules and user facts per assistant.

Backed by a LangGraph BaseStore. The persisted shape is not schema-enforced,
so every read goes through normalize_reflections.
"""

from langgraph.store.base import BaseStore

from canvas.state import Reflections

MEMORY_KEY = "reflection"

NO_STYLE_RULES = "No style guidelines found."
NO_USER_FACTS = "No memories/facts found."


def memory_namespace(assistant_id: str) -> tuple[str, ...]:
    return ("memories", assistant_id)


def empty_reflections() -> Reflections:
    return {"style_rules": [], "content": []}


def _coerce_list(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def normalize_reflections(value) -> Reflections:
    """Coerce a stored value of unknown shape into Reflections.

    A present field that is not a sequence becomes a one-element list of its
    string form; absent fields default to empty.
    """
    reflections = empty_reflections()
    if not isinstance(value, dict):
        return reflections

    # Older writers stored camelCase keys.
    style_rules = value.get("style_rules", value.get("styleRules"))
    reflections["style_rules"] = _coerce_list(style_rules)
    reflections["content"] = _coerce_list(value.get("content"))
    return reflections


class ReflectionStore:
    """Reads and replaces the Reflections stored for an assistant."""

    def __init__(self, store: BaseStore):
        self.store = store

    def get(self, assistant_id: str) -> Reflections:
        item = self.store.get(memory_namespace(assistant_id), MEMORY_KEY)
        if item is None:
            return empty_reflections()
        return normalize_reflections(item.value)

    def put(self, assistant_id: str, reflections: Reflections) -> None:
        normalized = normalize_reflections(reflections)
        self.store.put(memory_namespace(assistant_id), MEMORY_KEY, dict(normalized))

    def delete(self, assistant_id: str) -> None:
        self.store.delete(memory_namespace(assistant_id), MEMORY_KEY)


def format_reflections(
    reflections: Reflections,
    only_style: bool = False,
    only_content: bool = False,
) -> str:
    """Render reflections as the fixed prompt block.

    Each section is a bulleted list, or an explicit placeholder when empty.
    """
    if only_style and only_content:
        raise ValueError("Cannot request only style rules and only user facts at the same time.")

    style_rules = reflections.get("style_rules") or []
    facts = reflections.get("content") or []

    style_body = "\n".join(f"- {rule}" for rule in style_rules) if style_rules else NO_STYLE_RULES
    facts_body = "\n".join(f"- {fact}" for fact in facts) if facts else NO_USER_FACTS

    style_section = (
        "The following is a list of style guidelines previously generated by you:\n"
        f"<style-guidelines>\n{style_body}\n</style-guidelines>"
    )
    facts_section = (
        "The following is a list of memories/facts you previously generated about the user:\n"
        f"<user-facts>\n{facts_body}\n</user-facts>"
    )

    if only_style:
        return style_section
    if only_content:
        return facts_section
    return f"{style_section}\n\n{facts_section}"


def assistant_id_from(config) -> str:
    """Return the assistant id carried in a RunnableConfig's configurable section."""
    assistant_id = (config or {}).get("configurable", {}).get("assistant_id")
    if not assistant_id:
        raise ValueError("`assistant_id` not found in configurable.")
    return assistant_id


def load_reflections(store: BaseStore, config) -> Reflections:
    """Read the Reflections for the assistant running this graph invocation."""
    return ReflectionStore(store).get(assistant_id_from(config))
