from explorer.ports.node_port import NodePort
from explorer.core.dto import (
    BlockHeader,
    BlockWithTxs,
    EmittedEvent,
    EventsPage,
    NodeTransaction,
    Receipt,
    TransactionTrace,
)
from explorer.core.errors import DataSourceError, NodeError
from typing import Any, Dict, List, Optional, Tuple

class StaticNodeAdapter(NodePort):
    """
    In-memory node for dev/testing. Records every call in ``calls``.

    ``failures`` maps a method name to exceptions raised, in order, by its
    next calls before the normal answer is returned.
    """
    def __init__(self,
                 blocks: Optional[List[BlockWithTxs]] = None,
                 events: Optional[List[EmittedEvent]] = None,
                 receipts: Optional[Dict[str, Receipt]] = None,
                 transactions: Optional[Dict[str, NodeTransaction]] = None,
                 traces: Optional[Dict[str, TransactionTrace]] = None,
                 events_per_page: Optional[int] = None,
                 failures: Optional[Dict[str, List[Exception]]] = None,
                 ):
        self._blocks = {b.block_number: b for b in (blocks or [])}
        self._events = events or []
        self._receipts = receipts or {}
        self._txs = transactions or {}
        self._traces = traces or {}
        self._events_per_page = events_per_page
        self._failures = {k: list(v) for k, v in (failures or {}).items()}
        self.calls: List[Tuple[str, Any]] = []

    def _record(self, method, arg=None):
        self.calls.append((method, arg))
        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)

    def calls_to(self, method) -> List[Any]:
        return [arg for m, arg in self.calls if m == method]

    def _block(self, block_number):
        b = self._blocks.get(int(block_number))
        if b is None:
            raise DataSourceError(f"Block not found: {block_number}")
        return b

    def get_latest_block(self):
        self._record("get_latest_block")
        if not self._blocks:
            return BlockHeader(block_number=0, timestamp=0)
        b = self._blocks[max(self._blocks)]
        return BlockHeader(block_number=b.block_number, timestamp=b.timestamp)

    def get_block(self, block_number):
        self._record("get_block", block_number)
        b = self._block(block_number)
        return BlockHeader(block_number=b.block_number, timestamp=b.timestamp)

    def get_block_with_txs(self, block_number):
        self._record("get_block_with_txs", block_number)
        return self._block(block_number)

    def get_events(self, address, from_block, to_block, chunk_size, continuation_token=None):
        self._record("get_events", continuation_token)
        ad = address.lower()
        items = [
            e for e in self._events
            if e.from_address.lower() == ad
            and (from_block is None or e.block_number is None or e.block_number >= from_block)
            and (to_block is None or e.block_number is None or e.block_number <= to_block)
        ]
        size = int(chunk_size)
        if self._events_per_page:
            size = min(size, self._events_per_page)
        start = int(continuation_token) if continuation_token else 0
        end = start + size
        token = str(end) if end < len(items) else None
        return EventsPage(events=items[start:end], continuation_token=token)

    def get_transaction_receipt(self, tx_hash):
        self._record("get_transaction_receipt", tx_hash)
        return self._receipts.get(tx_hash)

    def get_transaction(self, tx_hash):
        self._record("get_transaction", tx_hash)
        return self._txs.get(tx_hash)

    def get_transaction_trace(self, tx_hash):
        self._record("get_transaction_trace", tx_hash)
        trace = self._traces.get(tx_hash)
        if trace is None:
            raise NodeError(f"No trace for {tx_hash}", code=29)
        return trace
