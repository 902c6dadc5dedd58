"""Frame replacement policies for the buffer pool."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import OrderedDict


class Replacer(ABC):
    """Tracks which frames may be evicted and chooses a victim."""

    @abstractmethod
    def victim(self) -> int | None:
        """Remove and return the frame chosen for eviction, or None."""

    @abstractmethod
    def pin(self, frame_id: int) -> None:
        """Mark a frame as in use, so it cannot be evicted."""

    @abstractmethod
    def unpin(self, frame_id: int) -> None:
        """Mark a frame as evictable."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of frames that can currently be evicted."""


class LRUReplacer(Replacer):
    """Evicts the frame that was unpinned longest ago."""

    def __init__(self, num_pages: int) -> None:
        self._max_size = num_pages
        self._lock = threading.Lock()
        # Oldest unpinned frame first, most recent last.
        self._frames: OrderedDict[int, None] = OrderedDict()

    def _evict(self) -> int | None:
        if not self._frames:
            return None
        frame_id, _ = self._frames.popitem(last=False)
        return frame_id

    def victim(self) -> int | None:
        with self._lock:
            return self._evict()

    def pin(self, frame_id: int) -> None:
        with self._lock:
            self._frames.pop(frame_id, None)

    def unpin(self, frame_id: int) -> None:
        with self._lock:
            if frame_id in self._frames:
                return
            if len(self._frames) >= self._max_size:
                self._evict()
            self._frames[frame_id] = None

    def __len__(self) -> int:
        return len(self._frames)