"""
history.py — Per-Buoy Bounded Snapshot History
===============================================

Keeps the most recent tick snapshots of every buoy for the anomaly and
insight rules.

Retention is enforced on append, two ways:
    1. Count: each buoy owns a deque(maxlen=capacity); appending to a full
       deque drops the oldest snapshot in O(1).
    2. Age (optional): snapshots older than max_age relative to the newest
       one are evicted from the left.

Insertion order is the only order. Snapshots are appended once per tick,
so oldest-first iteration is also time order.
"""

import logging
from collections import deque
from datetime import datetime, timedelta
from itertools import islice
from typing import Optional

import numpy as np
import pandas as pd

from . import config
from .features import parameter_series
from .models import Snapshot

logger = logging.getLogger("simulation.history")


class HistoricalStore:
    """
    Fixed-capacity ring buffer of snapshots per buoy.

    Attributes:
        capacity (int): Maximum snapshots kept per buoy.
        max_age (timedelta | None): Age bound relative to the newest snapshot.
        _buffers (dict[str, deque]): Snapshot buffer per buoy id.
    """

    def __init__(self, capacity: int = None, max_age: Optional[timedelta] = None):
        self.capacity = capacity if capacity is not None else config.HISTORY_CAPACITY
        if self.capacity <= 0:
            raise config.ConfigurationError("capacity must be positive")
        self.max_age = max_age
        self._buffers: dict[str, deque] = {}

    def append(self, buoy_id: str, snapshot: Snapshot) -> None:
        """
        Append one tick snapshot for a buoy.

        Args:
            buoy_id: Buoy identifier.
            snapshot: Snapshot captured this tick.
        """
        buffer = self._buffers.get(buoy_id)
        if buffer is None:
            buffer = deque(maxlen=self.capacity)
            self._buffers[buoy_id] = buffer
        buffer.append(snapshot)
        self._evict_stale(buffer)

    def _evict_stale(self, buffer: deque) -> None:
        """Drop snapshots that fall outside max_age relative to the newest."""
        if self.max_age is None or not buffer:
            return
        cutoff = buffer[-1].timestamp - self.max_age
        while buffer and buffer[0].timestamp < cutoff:
            buffer.popleft()

    def recent(self, buoy_id: str, n: int) -> list[Snapshot]:
        """
        The last ``n`` snapshots of a buoy, oldest-first.

        Unknown buoys and non-positive ``n`` give an empty list.
        """
        buffer = self._buffers.get(buoy_id)
        if not buffer or n <= 0:
            return []
        window = list(islice(reversed(buffer), n))
        window.reverse()
        return window

    def since(self, buoy_id: str, duration: timedelta,
              now: Optional[datetime] = None) -> list[Snapshot]:
        """
        Snapshots newer than ``now - duration``, oldest-first.

        Args:
            buoy_id: Buoy identifier.
            duration: Look-back period.
            now: Reference time. Defaults to the newest snapshot's timestamp.
        """
        buffer = self._buffers.get(buoy_id)
        if not buffer:
            return []
        reference = now if now is not None else buffer[-1].timestamp
        cutoff = reference - duration
        window = []
        for snapshot in reversed(buffer):
            if snapshot.timestamp <= cutoff:
                break
            window.append(snapshot)
        window.reverse()
        return window

    def values(self, buoy_id: str, parameter: str, n: int) -> np.ndarray:
        """Numeric readings of one parameter over the last ``n`` snapshots."""
        return parameter_series(self.recent(buoy_id, n), parameter)

    def size(self, buoy_id: str) -> int:
        """Number of snapshots held for a buoy."""
        buffer = self._buffers.get(buoy_id)
        return len(buffer) if buffer else 0

    def buoy_ids(self) -> list[str]:
        return list(self._buffers)

    def clear(self, buoy_id: str = None) -> None:
        """Forget one buoy's history, or everything when no id is given."""
        if buoy_id is None:
            self._buffers.clear()
            logger.info("History store cleared")
        else:
            self._buffers.pop(buoy_id, None)

    def to_frame(self, buoy_id: str, hours: float = None) -> pd.DataFrame:
        """
        Export a buoy's history as a DataFrame indexed by timestamp.

        Args:
            buoy_id: Buoy identifier.
            hours: Only include the last ``hours`` relative to the newest
                snapshot. Defaults to the whole retained history.

        Returns:
            One column per parameter, one row per snapshot. Empty frame for
            unknown buoys.
        """
        if hours is None:
            snapshots = self.recent(buoy_id, self.capacity)
        else:
            snapshots = self.since(buoy_id, timedelta(hours=hours))
        if not snapshots:
            return pd.DataFrame()
        frame = pd.DataFrame(
            [dict(s.values) for s in snapshots],
            index=pd.DatetimeIndex([s.timestamp for s in snapshots], name="timestamp"),
        )
        return frame
