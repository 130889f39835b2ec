"""Shared parsing and LLM utilities for node responses."""

import re
import sys

import anthropic
import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from canvas.errors import ModelInvocationError, StructuredOutputError

# A response that is nothing but one fenced block, e.g. ```python\n...\n```
_WRAPPING_FENCE_RE = re.compile(r"^```[\w+#.-]*[ \t]*\n(.*?)\n?```$", re.DOTALL)

_TRANSIENT_STATUS_CODES = (429, 500, 502, 503, 529)


def strip_fences(text: str) -> str:
    """Strip a markdown code fence wrapping the whole response, if present.

    Fences inside the body (e.g. code blocks in a markdown document) are kept.
    """
    stripped = text.strip()
    match = _WRAPPING_FENCE_RE.match(stripped)
    return match.group(1) if match else stripped


def message_text(response) -> str:
    """Return the text of a chat model response.

    Some providers return content as a list of blocks rather than a string.
    """
    content = response.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _is_transient(exc: BaseException) -> bool:
    """Return True if the exception is a transient HTTP/network error worth retrying."""
    if isinstance(exc, (httpx.TimeoutException, httpx.ConnectError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _TRANSIENT_STATUS_CODES
    if isinstance(exc, anthropic.APIConnectionError):
        return True
    if isinstance(exc, anthropic.APIStatusError):
        return exc.status_code in _TRANSIENT_STATUS_CODES
    return False


def invoke_with_retry(llm, messages, max_retries: int = 3):
    """Call llm.invoke(messages) with exponential backoff on transient errors.

    Retries on HTTP 429/500/502/503/529, connection errors, and timeouts.
    Whatever still fails is raised as ModelInvocationError carrying the
    provider message, with the original exception chained.
    """
    from canvas.config import get_config

    config = get_config()
    retries = config.get("llm_max_retries", max_retries)

    @retry(
        stop=stop_after_attempt(retries + 1),  # +1 because first attempt counts
        wait=wait_exponential(multiplier=1, min=2, max=16),
        retry=retry_if_exception(_is_transient),
        reraise=True,
        before_sleep=lambda state: print(
            f"[Canvas] Transient error: {state.outcome.exception()!r}. "
            f"Retrying in {state.next_action.sleep:.0f}s "
            f"(attempt {state.attempt_number}/{retries})...",
            file=sys.stderr,
        ),
    )
    def _invoke():
        return llm.invoke(messages)

    try:
        return _invoke()
    except Exception as exc:
        raise ModelInvocationError(f"Model invocation failed: {exc}") from exc


def invoke_tool(llm, messages, tool, tool_name: str) -> dict:
    """Force a single tool call and return its arguments.

    Raises StructuredOutputError when the model answers without calling
    the tool.
    """
    bound = llm.bind_tools([tool], tool_choice=tool_name)
    response = invoke_with_retry(bound, messages)

    for call in getattr(response, "tool_calls", None) or []:
        if call.get("name") == tool_name and isinstance(call.get("args"), dict):
            return call["args"]

    raise StructuredOutputError(f"Model did not return a '{tool_name}' tool call.")
