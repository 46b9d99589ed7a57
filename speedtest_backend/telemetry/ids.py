"""Time-sortable record identifiers."""

from __future__ import annotations

import threading
from typing import Optional

from ulid import ULID


class MonotonicULIDGenerator:
    """Hands out ULIDs that sort strictly after every earlier one.

    Two ULIDs created in the same millisecond are randomly ordered, so a
    candidate that does not sort after the previous id is replaced by the
    previous id plus one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: Optional[ULID] = None

    def new(self) -> str:
        with self._lock:
            candidate = ULID()
            if self._last is not None and int(candidate) <= int(self._last):
                candidate = ULID.from_int(int(self._last) + 1)
            self._last = candidate
            return str(candidate)
