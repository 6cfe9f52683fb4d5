from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from explorer.core.activity import ActivityLog
from explorer.core.dto import (
    BlockHeader,
    BlockWithTxs,
    EventsPage,
    NodeTransaction,
    Receipt,
    TransactionTrace,
)


class NodePort(ABC):
    """
    Abstract Class for the node capabilities the discovery engine relies on.
    """

    def with_activity(self, activity: ActivityLog) -> "NodePort":
        """Same node, reporting throttling/retries to ``activity``."""
        return self

    # --- Blocks ---

    @abstractmethod
    def get_latest_block(self) -> BlockHeader:
        raise NotImplementedError

    @abstractmethod
    def get_block(self, block_number: int) -> BlockHeader:
        raise NotImplementedError

    @abstractmethod
    def get_block_with_txs(self, block_number: int) -> BlockWithTxs:
        raise NotImplementedError

    # --- Event log ---

    @abstractmethod
    def get_events(
        self,
        address: str,
        from_block: Optional[int],
        to_block: Optional[int],
        chunk_size: int,
        continuation_token: Optional[str] = None,
    ) -> EventsPage:
        raise NotImplementedError

    # --- Transactions ---

    @abstractmethod
    def get_transaction_receipt(self, tx_hash: str) -> Optional[Receipt]:
        raise NotImplementedError

    @abstractmethod
    def get_transaction(self, tx_hash: str) -> Optional[NodeTransaction]:
        raise NotImplementedError

    @abstractmethod
    def get_transaction_trace(self, tx_hash: str) -> TransactionTrace:
        raise NotImplementedError
