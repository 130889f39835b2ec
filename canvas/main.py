"""Entry point: validates a turn, streams the graph, persists the resulting artifact."""

import sys

from langchain_core.messages import convert_to_messages
from langgraph.checkpoint.memory import MemorySaver
from langgraph.store.base import BaseStore
from langgraph.store.memory import InMemoryStore

from canvas.agents import reflect as reflection
from canvas.artifacts import rewind
from canvas.errors import CanvasError, TurnValidationError
from canvas.graph import ARTIFACT_NODES, compile_graph
from canvas.persistence import CheckpointThreadStore, DebouncedArtifactWriter, ThreadStateStore
from canvas.state import DIRECTIVE_FIELDS, ArtifactDocument, CanvasState
from canvas.utils.formatter import render_artifact
from canvas.utils.parsing import message_text
from canvas.utils.validator import validate_turn

# Nodes whose model output is shown to the user as it streams
_MESSAGE_NODES = ("respond_to_query", "generate_followup")


class CanvasSession:
    """Binds the compiled graph to its memory store and durable thread store."""

    def __init__(
        self,
        store: BaseStore | None = None,
        thread_store: ThreadStateStore | None = None,
        writer: DebouncedArtifactWriter | None = None,
    ):
        self.store = store if store is not None else InMemoryStore()
        if thread_store is None:
            thread_store = CheckpointThreadStore(compile_graph(self.store, checkpointer=MemorySaver()))
        self.thread_store = thread_store
        self.writer = writer if writer is not None else DebouncedArtifactWriter(self.thread_store)
        self.graph = compile_graph(self.store)

    def open_thread(self, thread_id: str) -> ArtifactDocument | None:
        """Switch the active thread and return its stored artifact, if any."""
        return self.writer.switch_thread(thread_id).get("artifact")

    def stream_turn(
        self,
        thread_id: str,
        assistant_id: str,
        messages: list,
        artifact: ArtifactDocument | None = None,
        user_id: str | None = None,
        **directives,
    ):
        """Run one turn and yield its events.

        Yields {"event": "message_delta"} and {"event": "artifact_delta"}
        chunks while models stream, then {"event": "artifact"} when the turn
        produced or kept an artifact, then {"event": "end"} with the final
        state. Raises TurnValidationError before any model call for a
        malformed turn.
        """
        unknown = set(directives) - set(DIRECTIVE_FIELDS)
        if unknown:
            raise TurnValidationError(f"Unknown directive(s): {', '.join(sorted(unknown))}.")

        if artifact is None and thread_id:
            artifact = self.writer.load(thread_id)

        state: CanvasState = {
            "messages": convert_to_messages(messages),
            "artifact": artifact,
            **{field: directives.get(field) for field in DIRECTIVE_FIELDS},
        }
        validate_turn(thread_id, assistant_id, state, user_id=user_id)

        if thread_id != self.writer.active_thread:
            self.writer.switch_thread(thread_id)
        self.writer.begin_turn(thread_id)
        config = {
            "configurable": {
                "thread_id": thread_id,
                "assistant_id": assistant_id,
                "user_id": user_id,
            }
        }

        final_state = state
        completed = False
        try:
            for mode, chunk in self.graph.stream(state, config, stream_mode=["messages", "values"]):
                if mode == "values":
                    final_state = chunk
                    continue

                message, metadata = chunk
                node = metadata.get("langgraph_node")
                text = message_text(message)
                if not text:
                    continue
                if node in _MESSAGE_NODES:
                    yield {"event": "message_delta", "node": node, "content": text}
                elif node in ARTIFACT_NODES:
                    yield {"event": "artifact_delta", "node": node, "content": text}
            completed = True
        finally:
            # Failed or abandoned turn: the artifact it started from is still the newest state.
            if not completed and artifact:
                self.writer.schedule(thread_id, artifact, respect_guard=False)

        final_artifact = final_state.get("artifact")
        if final_artifact:
            self.writer.schedule(thread_id, final_artifact, respect_guard=False)
            yield {
                "event": "artifact",
                "current_index": final_artifact["current_index"],
                "artifact": final_artifact,
            }
        yield {"event": "end", "state": final_state}

    def run_turn(self, thread_id: str, assistant_id: str, messages: list, **kwargs) -> CanvasState:
        """Run a turn to completion and return the final state."""
        final_state = None
        for event in self.stream_turn(thread_id, assistant_id, messages, **kwargs):
            if event["event"] == "end":
                final_state = event["state"]
        return final_state

    def rewind(self, thread_id: str, artifact: ArtifactDocument, target_index: int) -> ArtifactDocument:
        """Point the thread's artifact at an older version and schedule its write."""
        rewound = rewind(artifact, target_index)
        self.writer.schedule(thread_id, rewound, respect_guard=False)
        return rewound

    def close(self) -> None:
        """Flush pending artifact writes and wait for reflection jobs."""
        self.writer.flush()
        self.writer.shutdown()
        reflection.shutdown(wait=True)


def _parse_action(text: str) -> dict:
    """Parse '/action <directive> [value]' into a directives dict."""
    parts = text.split(maxsplit=2)
    if len(parts) < 2:
        raise TurnValidationError("Usage: /action <directive> [value]")
    name = parts[1]
    value = parts[2] if len(parts) > 2 else True
    return {name: value}


def run(thread_id: str, assistant_id: str, user_id: str | None = None) -> None:
    """Interactive chat session against in-memory stores."""
    session = CanvasSession()
    artifact = session.open_thread(thread_id)
    messages = []

    print(f"[Canvas] Thread {thread_id}, assistant {assistant_id}. /quit to exit.")
    try:
        while True:
            try:
                line = input("> ").strip()
            except EOFError:
                break
            if not line:
                continue
            if line == "/quit":
                break
            if line == "/show":
                print(render_artifact(artifact) if artifact else "[Canvas] No artifact yet.")
                continue
            if line.startswith("/rewind"):
                try:
                    artifact = session.rewind(thread_id, artifact, int(line.split()[1]))
                    print(render_artifact(artifact))
                except (CanvasError, IndexError, ValueError, TypeError) as exc:
                    print(f"[Canvas] {exc}", file=sys.stderr)
                continue

            try:
                if line.startswith("/action"):
                    directives = _parse_action(line)
                    turn_messages = messages
                else:
                    directives = {}
                    turn_messages = messages + [{"role": "user", "content": line}]

                final_state = None
                for event in session.stream_turn(
                    thread_id, assistant_id, turn_messages,
                    artifact=artifact, user_id=user_id, **directives,
                ):
                    if event["event"] == "message_delta":
                        print(event["content"], end="", flush=True)
                    elif event["event"] == "end":
                        final_state = event["state"]
                print()
            except CanvasError as exc:
                print(f"[Canvas] {exc}", file=sys.stderr)
                continue

            messages = list(final_state["messages"])
            if final_state.get("artifact") and final_state["artifact"] != artifact:
                artifact = final_state["artifact"]
                print(render_artifact(artifact))
    finally:
        session.close()


def main() -> None:
    """CLI entry point — `canvas [--thread ID] [--assistant ID] [--user ID]`."""
    args = sys.argv[1:]
    options = {"--thread": "default", "--assistant": "default", "--user": None}

    while args:
        flag = args.pop(0)
        if flag not in options or not args:
            print("Usage: canvas [--thread ID] [--assistant ID] [--user ID]", file=sys.stderr)
            sys.exit(2)
        options[flag] = args.pop(0)

    run(options["--thread"], options["--assistant"], user_id=options["--user"])


if __name__ == "__main__":
    main()
