"""Versioned artifact documents.

A document is an append-only list of content versions plus a pointer to the
version currently shown. Every function here returns a new document and leaves
its input untouched.
"""

from canvas.errors import ArtifactError
from canvas.state import ArtifactCode, ArtifactContent, ArtifactDocument, ArtifactText

CONTENT_TYPES = ("text", "code")


def text_content(title: str, full_markdown: str, index: int = 0) -> ArtifactText:
    """Build a text variant. The index is assigned when the version is appended."""
    return {"index": index, "type": "text", "title": title, "full_markdown": full_markdown}


def code_content(title: str, code: str, language: str, index: int = 0) -> ArtifactCode:
    """Build a code variant. The index is assigned when the version is appended."""
    return {"index": index, "type": "code", "title": title, "code": code, "language": language}


def content_body(content: ArtifactContent) -> str:
    """Return the document body of either variant.

    Raises ArtifactError on an unrecognised variant tag.
    """
    ctype = content.get("type")
    if ctype == "text":
        return content["full_markdown"]
    if ctype == "code":
        return content["code"]
    raise ArtifactError(f"Unknown artifact content type '{ctype}'.")


def with_body(content: ArtifactContent, body: str) -> ArtifactContent:
    """Return a copy of content with its body replaced, same variant and title."""
    ctype = content.get("type")
    if ctype == "text":
        return text_content(content["title"], body)
    if ctype == "code":
        return code_content(content["title"], body, content["language"])
    raise ArtifactError(f"Unknown artifact content type '{ctype}'.")


def new_document(content: ArtifactContent) -> ArtifactDocument:
    """Start a version history whose first (and current) version is index 1."""
    first = {**content, "index": 1}
    return {"current_index": 1, "contents": [first]}


def append_version(document: ArtifactDocument | None, content: ArtifactContent) -> ArtifactDocument:
    """Append content as the next-highest index and make it current.

    The next index is always max(existing) + 1, even when the current version
    was rewound to an older one.
    """
    if not document or not document.get("contents"):
        return new_document(content)

    next_index = max(c["index"] for c in document["contents"]) + 1
    appended = {**content, "index": next_index}
    return {
        "current_index": next_index,
        "contents": [*document["contents"], appended],
    }


def current_content(document: ArtifactDocument) -> ArtifactContent:
    """Return the version whose index matches current_index."""
    for content in document["contents"]:
        if content["index"] == document["current_index"]:
            return content
    raise ArtifactError(
        f"Current index {document['current_index']} not found in artifact contents."
    )


def rewind(document: ArtifactDocument, target_index: int) -> ArtifactDocument:
    """Point current_index at an existing older (or newer) version.

    History is never truncated; the next append still allocates max + 1.
    """
    if not any(c["index"] == target_index for c in document["contents"]):
        raise ArtifactError(f"No artifact version with index {target_index}.")
    return {"current_index": target_index, "contents": list(document["contents"])}


def get_version(document: ArtifactDocument, index: int) -> ArtifactContent:
    """Return a specific historical version by index."""
    for content in document["contents"]:
        if content["index"] == index:
            return content
    raise ArtifactError(f"No artifact version with index {index}.")


def validate_document(document: ArtifactDocument) -> None:
    """Raise ArtifactError if the document breaks any versioning invariant."""
    contents = document.get("contents") or []
    if not contents:
        raise ArtifactError("Artifact document has no contents.")

    indices = [c.get("index") for c in contents]
    if len(set(indices)) != len(indices):
        raise ArtifactError(f"Duplicate artifact indices: {indices}")
    if indices != sorted(indices):
        raise ArtifactError(f"Artifact contents are not sorted by index: {indices}")
    if document.get("current_index") not in indices:
        raise ArtifactError(
            f"Current index {document.get('current_index')} not in {indices}"
        )

    for content in contents:
        if content.get("type") not in CONTENT_TYPES:
            raise ArtifactError(f"Unknown artifact content type '{content.get('type')}'.")


def splice(body: str, start: int, end: int, replacement: str) -> str:
    """Replace body[start:end] with replacement, leaving everything else untouched."""
    if start < 0 or end < start or end > len(body):
        raise ArtifactError(
            f"Highlight span [{start}, {end}) is outside the artifact body (length {len(body)})."
        )
    return body[:start] + replacement + body[end:]


def locate_excerpt(body: str, excerpt: str, start_hint: int | None = None) -> tuple[int, int]:
    """Find the span of a highlighted excerpt inside body.

    A start hint that points at the excerpt wins; otherwise the first
    occurrence is used. Hints that are not a valid offset are ignored.
    """
    if not excerpt:
        raise ArtifactError("Highlighted excerpt is empty.")
    usable_hint = (
        isinstance(start_hint, int)
        and not isinstance(start_hint, bool)
        and 0 <= start_hint <= len(body)
    )
    if usable_hint and body[start_hint:start_hint + len(excerpt)] == excerpt:
        return start_hint, start_hint + len(excerpt)

    start = body.find(excerpt)
    if start == -1:
        raise ArtifactError("Highlighted excerpt not found in the current artifact.")
    return start, start + len(excerpt)
