"""Intent models and the in-memory intent queue."""

from .models import TRANSITIONS, Intent, IntentRecord, IntentState, PersistedIntent, utc_now
from .queue import IntentQueue, ReadWriteLock, SharedIntentQueue

__all__ = [
    "Intent",
    "IntentQueue",
    "IntentRecord",
    "IntentState",
    "PersistedIntent",
    "ReadWriteLock",
    "SharedIntentQueue",
    "TRANSITIONS",
    "utc_now",
]
