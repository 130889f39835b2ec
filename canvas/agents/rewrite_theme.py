"""Quick actions — full-content rewrites with a fixed instruction per action kind.

Text artifacts: change language, change length, change reading level, add
emojis. Code artifacts: add comments, add logs, fix bugs, port to another
language. Every prompt asks for the updated body only.
"""

from langchain_core.runnables import RunnableConfig
from langgraph.store.base import BaseStore

from canvas.artifacts import append_version, code_content, content_body, current_content, with_body
from canvas.memory import format_reflections, load_reflections
from canvas.quick_actions import quick_action_request
from canvas.state import CanvasState
from canvas.utils.models import get_chat_model
from canvas.utils.parsing import invoke_with_retry, message_text, strip_fences

BODY_ONLY_RULES = """\
Rules and guidelines:
<rules-guidelines>
- Respond with ONLY the updated artifact, and no additional text before or after.
- Do not wrap it in any XML tags you see in this prompt.
- Do not wrap code in triple backticks, and never add commentary about the changes.
</rules-guidelines>"""

REFLECTIONS_SECTION = """\
You also have the following reflections on style guidelines and general memories/facts about \
the user to use when generating your response.
<reflections>
{reflections}
</reflections>"""

CHANGE_LANGUAGE_PROMPT = """\
You are tasked with changing the language of the following artifact to {value}.

Here is the current content of the artifact:
<artifact>
{artifact}
</artifact>

{reflections}

- ONLY change the language and nothing else.
{rules}"""

CHANGE_READING_LEVEL_PROMPT = """\
You are tasked with re-writing the following artifact to be at a {value} reading level.
Ensure you do not change the meaning of the artifact, simply change the language to be \
easier or more complex to read, as appropriate for a {value} reading level.

Here is the current content of the artifact:
<artifact>
{artifact}
</artifact>

{reflections}

{rules}"""

CHANGE_TO_PIRATE_PROMPT = """\
You are tasked with re-writing the following artifact to sound like a pirate.
Ensure you do not change the meaning or story behind the artifact, simply update the language \
to sound like a pirate.

Here is the current content of the artifact:
<artifact>
{artifact}
</artifact>

{reflections}

{rules}"""

CHANGE_LENGTH_PROMPT = """\
You are tasked with re-writing the following artifact to be {value}.
Ensure you do not change the meaning or story behind the artifact, simply update the \
artifact's length to be {value}.

Here is the current content of the artifact:
<artifact>
{artifact}
</artifact>

{reflections}

{rules}"""

ADD_EMOJIS_PROMPT = """\
You are tasked with revising the following artifact by adding emojis to it.
Ensure you do not change the meaning or story behind the artifact, simply include emojis \
throughout the text where appropriate.

Here is the current content of the artifact:
<artifact>
{artifact}
</artifact>

{reflections}

{rules}"""

ADD_COMMENTS_PROMPT = """\
You are an expert software engineer, tasked with updating the following code by adding comments to it.
Ensure you do NOT modify any logic or functionality of the code, simply add comments to explain the code.

Here is the code to add comments to:
<code>
{artifact}
</code>

{reflections}

{rules}"""

ADD_LOGS_PROMPT = """\
You are an expert software engineer, tasked with updating the following code by adding log statements to it.
Ensure you do NOT modify any logic or functionality of the code, simply add logs throughout \
the code to help with debugging.

Here is the code to add logs to:
<code>
{artifact}
</code>

{reflections}

{rules}"""

FIX_BUGS_PROMPT = """\
You are an expert software engineer, tasked with fixing any bugs in the following code.
Read through all the code carefully before making any changes. Think through the logic, and \
ensure you do not introduce any new bugs.

Here is the code to fix:
<code>
{artifact}
</code>

{reflections}

- Maintain the existing code style and conventions.
{rules}"""

PORT_LANGUAGE_PROMPT = """\
You are an expert software engineer, tasked with re-writing the following code in {value}.
Read through all the code carefully before making any changes. Think through the logic, and \
ensure you do not introduce bugs.

Here is the code to port to {value}:
<code>
{artifact}
</code>

{reflections}

{rules}"""

LENGTH_DESCRIPTIONS = {
    "shortest": "much shorter than it currently is",
    "short": "slightly shorter than it currently is",
    "long": "slightly longer than it currently is",
    "longest": "much longer than it currently is",
}

READING_LEVEL_DESCRIPTIONS = {
    "child": "elementary school student",
    "teenager": "high school student",
    "college": "college student",
    "phd": "PhD student",
}

TEXT_PROMPTS = {
    "language": CHANGE_LANGUAGE_PROMPT,
    "artifact_length": CHANGE_LENGTH_PROMPT,
    "reading_level": CHANGE_READING_LEVEL_PROMPT,
    "regenerate_with_emojis": ADD_EMOJIS_PROMPT,
}

CODE_PROMPTS = {
    "add_comments": ADD_COMMENTS_PROMPT,
    "add_logs": ADD_LOGS_PROMPT,
    "fix_bugs": FIX_BUGS_PROMPT,
    "port_language": PORT_LANGUAGE_PROMPT,
}


def build_quick_action_prompt(kind: str, value, artifact: str, reflections: str) -> str:
    """Return the instruction prompt for a catalog quick action."""
    if kind == "reading_level" and value == "pirate":
        template = CHANGE_TO_PIRATE_PROMPT
    elif kind in TEXT_PROMPTS:
        template = TEXT_PROMPTS[kind]
    elif kind in CODE_PROMPTS:
        template = CODE_PROMPTS[kind]
    else:
        raise ValueError(f"Unknown quick action '{kind}'.")

    if kind == "artifact_length":
        value = LENGTH_DESCRIPTIONS[value]
    elif kind == "reading_level":
        value = READING_LEVEL_DESCRIPTIONS.get(value, value)

    return template.format(
        value=value,
        artifact=artifact,
        reflections=REFLECTIONS_SECTION.format(reflections=reflections),
        rules=BODY_ONLY_RULES,
    )


def _apply_quick_action(state: CanvasState, config: RunnableConfig, store: BaseStore) -> tuple[dict, str]:
    request = quick_action_request(state)
    current = current_content(state["artifact"])
    reflections = load_reflections(store, config)

    # Code quick actions only see the style rules.
    formatted = format_reflections(reflections, only_style=current["type"] == "code")
    prompt = build_quick_action_prompt(
        request["kind"], request["value"], content_body(current), formatted
    )

    llm = get_chat_model("primary")
    response = invoke_with_retry(llm, [{"role": "user", "content": prompt}])
    return request, message_text(response)


def rewrite_artifact_theme_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Apply a text quick action (language, length, reading level, emojis)."""
    _, body = _apply_quick_action(state, config, store)
    current = current_content(state["artifact"])
    return {"artifact": append_version(state["artifact"], with_body(current, body.strip()))}


def rewrite_code_artifact_theme_node(state: CanvasState, config: RunnableConfig, *, store: BaseStore) -> dict:
    """Apply a code quick action (comments, logs, bug fixes, port language)."""
    request, body = _apply_quick_action(state, config, store)
    current = current_content(state["artifact"])
    code = strip_fences(body)

    if request["kind"] == "port_language":
        new_content = code_content(current["title"], code, str(request["value"]).strip().lower())
    else:
        new_content = with_body(current, code)

    return {"artifact": append_version(state["artifact"], new_content)}
