from __future__ import annotations

import time
from typing import Callable, Dict, Optional

from explorer.ports.node_port import NodePort


class BlockTimestampResolver:
    """
    Block height <-> timestamp lookups for a single discovery run.

    The cache is never shared between runs so that a fresh run always sees
    the current chain head.
    """

    def __init__(self, node: NodePort, now: Callable[[], float] = time.time) -> None:
        self._node = node
        self._now = now
        self._cache: Dict[int, int] = {}

        self.latest_block = 0
        self.latest_timestamp = 0
        self.earliest_timestamp = 0

    def prime(self) -> None:
        latest = self._node.get_latest_block()
        self.latest_block = int(latest.block_number)
        self.latest_timestamp = (
            int(latest.timestamp) if latest.timestamp is not None else int(self._now())
        )
        self._cache[self.latest_block] = self.latest_timestamp
        self.earliest_timestamp = self.get_timestamp(0)

    def remember(self, block_number: int, timestamp: Optional[int]) -> None:
        if timestamp is not None and block_number not in self._cache:
            self._cache[block_number] = int(timestamp)

    def get_timestamp(self, block_number: Optional[int]) -> int:
        if block_number is None:
            return int(self._now())
        if block_number in self._cache:
            return self._cache[block_number]

        header = self._node.get_block(block_number)
        ts = int(header.timestamp) if header.timestamp is not None else int(self._now())
        self._cache[block_number] = ts
        return ts

    def find_boundary_block(self, target_ts: Optional[int], direction: str) -> Optional[int]:
        """
        direction="from": smallest height with timestamp >= target_ts
        direction="to":   largest height with timestamp <= target_ts

        None means no block of the chain can satisfy the bound.
        """
        if direction not in ("from", "to"):
            raise ValueError(f"direction must be 'from' or 'to', got {direction!r}")

        if target_ts is None:
            return 0 if direction == "from" else self.latest_block

        if direction == "from":
            if target_ts > self.latest_timestamp:
                return None
            if target_ts <= self.earliest_timestamp:
                return 0
        else:
            if target_ts < self.earliest_timestamp:
                return None
            if target_ts >= self.latest_timestamp:
                return self.latest_block

        low, high = 0, self.latest_block
        result = self.latest_block if direction == "from" else 0

        while low <= high:
            mid = (low + high) // 2
            ts = self.get_timestamp(mid)
            if direction == "from":
                if ts >= target_ts:
                    result = mid
                    high = mid - 1
                else:
                    low = mid + 1
            else:
                if ts <= target_ts:
                    result = mid
                    low = mid + 1
                else:
                    high = mid - 1

        return result
