"""Rolling conversation summaries for chat rooms.

Summaries are cached per room in a bounded LRU with per-entry expiry and
refreshed in the background once a conversation grows long.
"""

import time
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Callable, Iterable, Mapping, Optional

from document_analyzer.analysis import AnalysisClient
from document_analyzer.config import SummaryCacheConfig
from document_analyzer.logger import get_logger

logger = get_logger(__name__)

Message = Mapping[str, str]

DEFAULT_ROOM = "demo"
ROOM_KEY_LENGTH = 64

SUMMARY_OPTIONS = {"temperature": 0.2, "num_predict": 256}


class SummaryCache:
    """Thread-safe LRU cache whose entries also expire after ``ttl_seconds``."""

    def __init__(
        self,
        max_size: int = 256,
        ttl_seconds: float = 1800,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()
        self._lock = Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + self.ttl_seconds)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted summary", extra_data={"room": evicted[:32]})

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._clock() < entry[1]


def room_key(history: Iterable[Message]) -> str:
    """Stable key for a conversation built from its first three user messages."""
    user_messages = [m.get("content", "") for m in history if m.get("role") == "user"][:3]
    key = "|".join(user_messages)[:ROOM_KEY_LENGTH]
    return key or DEFAULT_ROOM


def build_summary_prompt(history: list[Message], window: int = 50) -> str:
    transcript = "\n".join(
        f"{m.get('role', 'user')}: {m.get('content', '')}" for m in history[-window:]
    )
    return (
        "You are a helpful assistant. Summarize the following conversation for future "
        "reference in 5-8 concise bullet points. Include names, decisions, formulas, and "
        "key preferences. Only output the summary bullets.\n\n"
        f"{transcript}\n\nSummary:"
    )


class SummaryRefresher:
    """Owns the summary cache and refreshes entries on a background thread pool."""

    def __init__(
        self,
        client: AnalysisClient,
        config: Optional[SummaryCacheConfig] = None,
        cache: Optional[SummaryCache] = None,
    ):
        self.client = client
        self.config = config or SummaryCacheConfig()
        self.cache = cache or SummaryCache(self.config.max_size, self.config.ttl_seconds)
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="summary-refresh"
        )
        self._in_flight: set[str] = set()
        self._in_flight_lock = Lock()

    def summary_for(self, history: list[Message]) -> tuple[str, Optional[str]]:
        """Cached summary for the conversation's room, scheduling a refresh if due.

        Returns:
            Tuple of (room key, cached summary or None)
        """
        room = room_key(history)
        summary = self.cache.get(room)
        self.refresh_async(room, history)
        return room, summary

    def should_refresh(self, history: list[Message]) -> bool:
        return len(history) > self.config.refresh_threshold

    def refresh(self, room: str, history: list[Message]) -> Optional[str]:
        """Summarize ``history`` now and store the result under ``room``.

        Raises:
            httpx.HTTPError: If the model call fails
            ValueError: If the model returns an unexpected body
        """
        model = self.client.select_model()
        if not model:
            logger.warning("No model available for summary refresh", extra_data={"room": room[:32]})
            return None

        prompt = build_summary_prompt(history, self.config.history_window)
        summary = self.client.generate(prompt, model, SUMMARY_OPTIONS)
        if summary:
            self.cache.set(room, summary)
            logger.info(
                "Conversation summary refreshed",
                extra_data={"room": room[:32], "model": model, "characters": len(summary)},
            )
        return summary or None

    def refresh_async(self, room: str, history: list[Message]) -> Optional[Future]:
        """Start a detached refresh; failures are logged by the done callback.

        At most one refresh per room is queued or running at a time. Returns None
        when the history is too short or the room is already being refreshed.
        """
        if not self.should_refresh(history):
            return None

        with self._in_flight_lock:
            if room in self._in_flight:
                logger.debug("Summary refresh already running", extra_data={"room": room[:32]})
                return None
            self._in_flight.add(room)

        try:
            future = self._executor.submit(self._refresh_in_flight, room, list(history))
        except RuntimeError:
            self._release(room)
            raise
        future.add_done_callback(lambda f: self._log_outcome(room, f))
        return future

    def _release(self, room: str) -> None:
        with self._in_flight_lock:
            self._in_flight.discard(room)

    def _refresh_in_flight(self, room: str, history: list[Message]) -> Optional[str]:
        try:
            return self.refresh(room, history)
        finally:
            self._release(room)

    def _log_outcome(self, room: str, future: Future) -> None:
        if future.cancelled():
            self._release(room)
            logger.warning("Summary refresh cancelled", extra_data={"room": room[:32]})
            return
        exc = future.exception()
        if exc is not None:
            logger.error(
                "Background summary refresh failed",
                extra_data={"room": room[:32], "error_type": type(exc).__name__, "error": str(exc)},
                exc_info=exc,
            )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
