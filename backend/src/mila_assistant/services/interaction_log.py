"""
In-process interaction log.

Keeps the most recent interactions in a bounded ring buffer and derives
learning hints (words that appeared in successful queries) from them.
"""

import logging
import re
import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"[a-z0-9][a-z0-9.\-]*[a-z0-9]|[a-z0-9]")

STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "can", "do", "does", "for", "from", "how", "i",
    "in", "is", "it", "me", "my", "of", "on", "or", "please", "show", "tell", "that", "the",
    "this", "to", "what", "whats", "when", "where", "which", "who", "why", "with", "you",
})


@dataclass(frozen=True)
class InteractionRecord:
    user_id: Optional[str]
    form_type: Optional[str]
    query: str
    response: str
    success: bool
    path: str
    intent: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


def tokenize(text: str) -> List[str]:
    return [token for token in TOKEN_PATTERN.findall(text.lower()) if token not in STOPWORDS]


class InteractionLog:
    """Fixed-capacity log; the oldest record is evicted first."""

    def __init__(self, capacity: int = 50):
        if capacity < 1:
            raise ValueError("Interaction log capacity must be at least 1")
        self.capacity = capacity
        self._records: Deque[InteractionRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def record(self, record: InteractionRecord) -> None:
        with self._lock:
            self._records.append(record)
        logger.debug(f"Recorded interaction (success={record.success}, {len(self._records)}/{self.capacity})")

    def recent(self, limit: Optional[int] = None) -> List[InteractionRecord]:
        """Newest last."""
        with self._lock:
            records = list(self._records)
        return records[-limit:] if limit else records

    def top_tokens(self, user_id: Optional[str] = None, form_type: Optional[str] = None, limit: int = 5) -> List[str]:
        """Most frequent words of successful queries matching the filters."""
        counts: Counter = Counter()
        for record in self.recent():
            if not record.success:
                continue
            if user_id is not None and record.user_id != user_id:
                continue
            if form_type is not None and record.form_type != form_type:
                continue
            counts.update(tokenize(record.query))
        return [token for token, _ in counts.most_common(limit)]

    def insights(self) -> Dict[str, Any]:
        records = self.recent()
        successes = sum(1 for record in records if record.success)
        paths = Counter(record.path for record in records)
        intents = Counter(record.intent for record in records if record.intent)
        return {
            "total_interactions": len(records),
            "successful_interactions": successes,
            "success_rate": round(successes / len(records), 3) if records else 0.0,
            "capacity": self.capacity,
            "by_path": dict(paths),
            "top_intents": [name for name, _ in intents.most_common(5)],
            "top_tokens": self.top_tokens(limit=10),
        }

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
