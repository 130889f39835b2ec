"""Durable thread state and the debounced artifact writer.

In-memory artifact changes are visible to the next step immediately. The
durable write is coalesced: each schedule() restarts a per-thread timer, so a
burst of edits produces one write once the thread has been quiet for
`persistence.debounce_seconds`. Starting a turn or switching threads cancels
the pending write, and a generation token makes a timer that already fired
drop its stale payload instead of racing the newer state.
"""

import sys
import threading
import time
from typing import Callable, Protocol

from canvas.config import get_config
from canvas.state import ArtifactDocument


class ThreadStateStore(Protocol):
    def update_state(self, thread_id: str, values: dict) -> None: ...

    def get_state(self, thread_id: str) -> dict: ...


class CheckpointThreadStore:
    """Thread-state store backed by a checkpointed graph.

    Writes go through graph.update_state as the node that ends a turn, so
    the thread is left with nothing scheduled to run.
    """

    def __init__(self, graph, as_node: str = "clean_state"):
        self.graph = graph
        self.as_node = as_node

    @staticmethod
    def _config(thread_id: str) -> dict:
        return {"configurable": {"thread_id": thread_id}}

    def update_state(self, thread_id: str, values: dict) -> None:
        self.graph.update_state(self._config(thread_id), values, as_node=self.as_node)

    def get_state(self, thread_id: str) -> dict:
        return dict(self.graph.get_state(self._config(thread_id)).values)


class DebouncedArtifactWriter:
    """Coalesces artifact writes per thread behind a cancellable timer."""

    def __init__(
        self,
        thread_store: ThreadStateStore,
        delay: float | None = None,
        guard_window: float | None = None,
        timer_factory: Callable = threading.Timer,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_config().get("persistence", {})
        self.thread_store = thread_store
        self.delay = delay if delay is not None else settings.get("debounce_seconds", 5)
        self.guard_window = (
            guard_window if guard_window is not None
            else settings.get("thread_switch_guard_seconds", 1)
        )
        self._timer_factory = timer_factory
        self._clock = clock

        self._lock = threading.Lock()
        self._timers: dict[str, object] = {}
        self._pending: dict[str, ArtifactDocument] = {}
        self._generation: dict[str, int] = {}
        self.active_thread: str | None = None
        self._guard_until = 0.0

    # --- scheduling ---

    def schedule(self, thread_id: str, artifact: ArtifactDocument, respect_guard: bool = True) -> bool:
        """Queue a durable write of artifact for thread_id, restarting the quiet window.

        State-triggered writes (respect_guard=True) inside the guard window
        that follows a thread switch are ignored. Returns whether the write
        was queued.
        """
        with self._lock:
            if respect_guard and self._clock() < self._guard_until:
                print(
                    f"[Canvas] Ignoring artifact write for thread {thread_id} "
                    "inside the thread-switch guard window.",
                    file=sys.stderr,
                )
                return False

            self._cancel_timer_locked(thread_id)
            generation = self._generation.get(thread_id, 0) + 1
            self._generation[thread_id] = generation
            self._pending[thread_id] = artifact

            timer = self._timer_factory(self.delay, self._fire, args=(thread_id, generation))
            timer.daemon = True
            self._timers[thread_id] = timer
            timer.start()
            return True

    def cancel(self, thread_id: str) -> bool:
        """Drop the pending write for thread_id. Returns whether one existed."""
        with self._lock:
            had_pending = thread_id in self._pending
            self._cancel_timer_locked(thread_id)
            self._pending.pop(thread_id, None)
            self._generation[thread_id] = self._generation.get(thread_id, 0) + 1
            return had_pending

    def begin_turn(self, thread_id: str) -> None:
        """Cancel any write still pending for thread_id before a new turn mutates it."""
        self.cancel(thread_id)

    def switch_thread(self, thread_id: str) -> dict:
        """Make thread_id active and return its stored state.

        The previous thread's pending write is cancelled and the guard window
        starts.
        """
        previous = self.active_thread
        if previous is not None and previous != thread_id:
            if self.cancel(previous):
                print(
                    f"[Canvas] Dropped pending artifact write for thread {previous} on thread switch.",
                    file=sys.stderr,
                )
        with self._lock:
            self.active_thread = thread_id
            self._guard_until = self._clock() + self.guard_window
        return self.thread_store.get_state(thread_id)

    def load(self, thread_id: str) -> ArtifactDocument | None:
        """Return the newest known artifact: the pending one, else the stored one."""
        with self._lock:
            if thread_id in self._pending:
                return self._pending[thread_id]
        return self.thread_store.get_state(thread_id).get("artifact")

    def pending(self, thread_id: str) -> ArtifactDocument | None:
        with self._lock:
            return self._pending.get(thread_id)

    # --- writing ---

    def flush(self, thread_id: str | None = None) -> None:
        """Write pending artifacts now instead of waiting for their timers."""
        with self._lock:
            thread_ids = [thread_id] if thread_id is not None else list(self._pending)
            batch = []
            for tid in thread_ids:
                if tid not in self._pending:
                    continue
                self._cancel_timer_locked(tid)
                batch.append((tid, self._generation.get(tid, 0), self._pending[tid]))

        for tid, generation, artifact in batch:
            self._write(tid, generation, artifact)

    def shutdown(self) -> None:
        """Cancel every timer without writing."""
        with self._lock:
            for tid in list(self._timers):
                self._cancel_timer_locked(tid)

    def _fire(self, thread_id: str, generation: int) -> None:
        with self._lock:
            if self._generation.get(thread_id) != generation:
                print(
                    f"[Canvas] Dropping stale artifact write for thread {thread_id}.",
                    file=sys.stderr,
                )
                return
            self._timers.pop(thread_id, None)
            artifact = self._pending.get(thread_id)
        if artifact is not None:
            self._write(thread_id, generation, artifact)

    def _write(self, thread_id: str, generation: int, artifact: ArtifactDocument) -> None:
        try:
            self.thread_store.update_state(thread_id, {"artifact": artifact})
        except Exception as exc:
            # Keep the pending value so flush() or the next schedule() retries.
            print(
                f"[Canvas] Failed to persist artifact for thread {thread_id}: {exc!r}",
                file=sys.stderr,
            )
            return

        with self._lock:
            if self._generation.get(thread_id) == generation:
                self._pending.pop(thread_id, None)

    def _cancel_timer_locked(self, thread_id: str) -> None:
        timer = self._timers.pop(thread_id, None)
        if timer is not None:
            timer.cancel()
