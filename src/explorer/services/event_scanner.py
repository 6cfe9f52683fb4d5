from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from explorer.core.activity import ActivityLog
from explorer.core.dto import EmittedEvent, NodeTransaction, Receipt
from explorer.core.errors import DataSourceError, NodeError
from explorer.core.models import Network, TransactionRow, TxKind
from explorer.ports.node_port import NodePort
from explorer.services.block_resolver import BlockTimestampResolver
from explorer.services.result_assembler import ResultAssembler
from explorer.services.row_builder import decode_selector, parse_fee, receipt_status, same_address


@dataclass
class EventScanOutcome:
    reached_limit: bool = False
    continuation_token: Optional[str] = None
    pages: int = 0


class EventScanner:
    """
    Walks the address-filtered event log page by page and turns every newly
    seen transaction into a row.

    Stops when the node returns no continuation token, or as soon as enough
    filter-passing rows exist for the requested page.
    """

    def __init__(
        self,
        node: NodePort,
        resolver: BlockTimestampResolver,
        assembler: ResultAssembler,
        activity: ActivityLog,
        chunk_size: int = 100,
    ) -> None:
        self.node = node
        self.resolver = resolver
        self.assembler = assembler
        self.activity = activity
        self.chunk_size = max(1, int(chunk_size))

    def scan(
        self,
        address: str,
        network: Network,
        from_block: Optional[int],
        to_block: Optional[int],
    ) -> EventScanOutcome:
        outcome = EventScanOutcome()
        continuation: Optional[str] = None

        while True:
            page = self.node.get_events(
                address,
                from_block,
                to_block,
                chunk_size=self.chunk_size,
                continuation_token=continuation,
            )
            outcome.pages += 1
            continuation = page.continuation_token
            outcome.continuation_token = continuation

            for event in page.events:
                tx_hash = event.transaction_hash
                if not tx_hash or not self.assembler.claim(tx_hash):
                    continue

                try:
                    row = self._build_row(address, network, tx_hash, event)
                except NodeError as e:
                    self.activity.warn(f"Skipping {tx_hash}: {e.__class__.__name__}: {e}")
                    continue
                except DataSourceError:
                    raise
                except Exception as e:
                    self.activity.warn(f"Skipping {tx_hash}: {e.__class__.__name__}: {e}")
                    continue
                if row is None:
                    continue

                self.assembler.add(row)
                if self.assembler.threshold_reached:
                    outcome.reached_limit = True
                    outcome.continuation_token = None
                    return outcome

            if not continuation:
                return outcome

    # -------------------------
    # Helpers
    # -------------------------

    def _build_row(
        self,
        address: str,
        network: Network,
        tx_hash: str,
        event: EmittedEvent,
    ) -> Optional[TransactionRow]:
        receipt = self.node.get_transaction_receipt(tx_hash)
        if receipt is None:
            return None

        block_number = receipt.block_number if receipt.block_number is not None else event.block_number
        timestamp = self.resolver.get_timestamp(block_number)

        tx = self.node.get_transaction(tx_hash)
        contract_event = self._event_for_contract(receipt, address)

        return TransactionRow(
            timestamp=timestamp,
            tx_hash=tx_hash,
            kind=TxKind.normalize(receipt.type or (tx.type if tx else None)),
            entrypoint=decode_selector(self._selector(tx, contract_event)),
            caller=self._caller(receipt, tx),
            target_address=address,
            fee=parse_fee(receipt.fee_amount),
            status=receipt_status(receipt),
            network=network,
        )

    @staticmethod
    def _event_for_contract(receipt: Receipt, address: str) -> Optional[EmittedEvent]:
        for e in receipt.events:
            if same_address(e.from_address, address):
                return e
        return None

    @staticmethod
    def _selector(tx: Optional[NodeTransaction], event: Optional[EmittedEvent]) -> Optional[str]:
        if tx is not None:
            selector = tx.entry_point_selector_name or tx.entry_point_selector
            if selector:
                return selector
        if event is not None and event.keys:
            return event.keys[0]
        return None

    @staticmethod
    def _caller(receipt: Receipt, tx: Optional[NodeTransaction]) -> str:
        if receipt.sender_address:
            return receipt.sender_address
        if tx is not None:
            return tx.sender_address or tx.contract_address or "0x0"
        return "0x0"
