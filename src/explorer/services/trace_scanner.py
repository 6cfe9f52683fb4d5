from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from explorer.core.activity import ActivityLog
from explorer.core.dto import FunctionInvocation, NodeTransaction, TransactionTrace
from explorer.core.errors import DataSourceError, NodeError
from explorer.core.models import Network, TransactionRow, TxKind
from explorer.ports.node_port import NodePort
from explorer.services.block_resolver import BlockTimestampResolver
from explorer.services.result_assembler import ResultAssembler
from explorer.services.row_builder import decode_selector, parse_fee, receipt_status, same_address


def find_invocation(node: FunctionInvocation, address: str) -> Optional[FunctionInvocation]:
    """Depth-first search of an invocation tree for a call into ``address``."""
    if same_address(node.contract_address, address):
        return node
    for child in node.calls:
        found = find_invocation(child, address)
        if found is not None:
            return found
    return None


def find_in_trace(trace: TransactionTrace, address: str) -> Optional[FunctionInvocation]:
    for root in trace.roots():
        found = find_invocation(root, address)
        if found is not None:
            return found
    return None


@dataclass
class TraceScanOutcome:
    complete: bool = True
    budget_exhausted: bool = False
    lookups: int = 0
    blocks_scanned: int = 0


class TraceFallbackScanner:
    """
    Catches interactions invisible to the event log (e.g. calls that emit
    no event) by tracing every unseen transaction in the block range,
    newest block first.

    Every block fetch and every trace fetch costs one unit of the lookup
    budget.
    """

    def __init__(
        self,
        node: NodePort,
        resolver: BlockTimestampResolver,
        assembler: ResultAssembler,
        activity: ActivityLog,
        lookup_budget: int = 200,
    ) -> None:
        self.node = node
        self.resolver = resolver
        self.assembler = assembler
        self.activity = activity
        self.lookup_budget = max(0, int(lookup_budget))

    def scan(
        self,
        address: str,
        network: Network,
        from_block: int,
        to_block: int,
    ) -> TraceScanOutcome:
        outcome = TraceScanOutcome()
        remaining = self.lookup_budget

        for height in range(to_block, from_block - 1, -1):
            if self.assembler.threshold_reached:
                outcome.complete = False
                return outcome
            if remaining <= 0:
                return self._exhausted(outcome)
            remaining -= 1
            outcome.lookups += 1

            try:
                block = self.node.get_block_with_txs(height)
            except Exception as e:
                self.activity.warn(f"Skipping block {height}: {e.__class__.__name__}: {e}")
                continue
            outcome.blocks_scanned += 1

            self.resolver.remember(height, block.timestamp)
            # last resort: wall clock
            timestamp = self.resolver.get_timestamp(None if block.timestamp is None else height)

            for tx in block.transactions:
                tx_hash = tx.transaction_hash
                if not tx_hash or self.assembler.is_claimed(tx_hash):
                    continue
                if self.assembler.threshold_reached:
                    outcome.complete = False
                    return outcome
                if remaining <= 0:
                    return self._exhausted(outcome)
                remaining -= 1
                outcome.lookups += 1
                self.assembler.claim(tx_hash)

                try:
                    row = self._build_row(address, network, tx, timestamp)
                except NodeError as e:
                    self.activity.warn(f"Skipping trace of {tx_hash}: {e.__class__.__name__}: {e}")
                    continue
                except DataSourceError:
                    raise
                except Exception as e:
                    self.activity.warn(f"Skipping trace of {tx_hash}: {e.__class__.__name__}: {e}")
                    continue
                if row is not None:
                    self.assembler.add(row)

        return outcome

    def _exhausted(self, outcome: TraceScanOutcome) -> TraceScanOutcome:
        outcome.complete = False
        outcome.budget_exhausted = True
        self.activity.warn(
            f"Trace lookup budget exhausted after {outcome.lookups} lookup(s) "
            f"(budget={self.lookup_budget}); older interactions may be missing"
        )
        return outcome

    def _build_row(
        self,
        address: str,
        network: Network,
        tx: NodeTransaction,
        timestamp: int,
    ) -> Optional[TransactionRow]:
        trace = self.node.get_transaction_trace(tx.transaction_hash)
        match = find_in_trace(trace, address)
        if match is None:
            return None

        receipt = self.node.get_transaction_receipt(tx.transaction_hash)
        if receipt is None:
            return None

        caller = match.caller_address or receipt.sender_address or tx.sender_address or "0x0"
        return TransactionRow(
            timestamp=timestamp,
            tx_hash=tx.transaction_hash,
            kind=TxKind.normalize(receipt.type or tx.type),
            entrypoint=decode_selector(match.entry_point_selector),
            caller=caller,
            target_address=match.contract_address,
            fee=parse_fee(receipt.fee_amount),
            status=receipt_status(receipt),
            network=network,
        )
