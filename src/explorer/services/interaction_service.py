from __future__ import annotations

import logging
from typing import Optional

from explorer.adapters.node.rpc_node_adapter import RpcNodeAdapter
from explorer.config import settings
from explorer.core.activity import ActivityLog
from explorer.core.errors import InvalidQueryError
from explorer.core.models import InteractionQuery, LogSink, Network, QueryResult
from explorer.ports.node_port import NodePort
from explorer.services.block_resolver import BlockTimestampResolver
from explorer.services.event_scanner import EventScanner
from explorer.services.result_assembler import ResultAssembler
from explorer.services.trace_scanner import TraceFallbackScanner

logger = logging.getLogger(__name__)


class InteractionService:
    """
    Finds every transaction that touched a contract within a time range.

    - Window: block heights resolved from timestamps by binary search
    - Data: address-filtered event log, then a budgeted trace scan of the
      window for calls that emitted no event
    - Output: one filtered, newest-first page

    A run either returns a full result or raises; per-transaction failures
    are skipped, node failures outside them propagate.
    """

    def __init__(
        self,
        node: NodePort,
        trace_lookup_budget: int = settings.TRACE_LOOKUP_BUDGET,
        event_chunk_size: int = settings.EVENT_CHUNK_SIZE,
    ) -> None:
        self.node = node
        self.trace_lookup_budget = trace_lookup_budget
        self.event_chunk_size = event_chunk_size

    def fetch_interactions(self, query: InteractionQuery, log: Optional[LogSink] = None) -> QueryResult:
        self._validate(query)
        activity = ActivityLog(logger, log)
        node = self.node.with_activity(activity)

        # Block window
        resolver = BlockTimestampResolver(node)
        resolver.prime()
        from_block = resolver.find_boundary_block(query.from_ts, "from")
        to_block = resolver.find_boundary_block(query.to_ts, "to")

        if from_block is None or to_block is None:
            activity.info("Requested time range lies outside the chain history")
            return QueryResult(rows=[], total_estimated=0)
        if from_block > to_block:
            activity.info(f"Empty block range ({from_block} > {to_block})")
            return QueryResult(rows=[], total_estimated=0)

        activity.info(f"Scanning {query.address} on {query.network.value}, blocks {from_block}..{to_block}")
        assembler = ResultAssembler(query)

        # Events first: the event log owns every hash it reaches
        events = EventScanner(
            node,
            resolver,
            assembler,
            activity,
            chunk_size=max(self.event_chunk_size, query.page_size),
        ).scan(query.address, query.network, from_block, to_block)

        budget = query.trace_lookup_budget
        if budget is None:
            budget = self.trace_lookup_budget
        traces = TraceFallbackScanner(
            node,
            resolver,
            assembler,
            activity,
            lookup_budget=budget,
        ).scan(query.address, query.network, from_block, to_block)

        result = assembler.assemble(
            reached_limit=events.reached_limit,
            continuation_left=bool(events.continuation_token),
            trace_complete=traces.complete,
            budget_exhausted=traces.budget_exhausted,
        )
        activity.info(
            f"Fetched {len(result.rows)} row(s), {result.total_estimated} matching so far"
            f"{' (more may exist)' if result.has_more else ''}"
        )
        return result

    @staticmethod
    def _validate(query: InteractionQuery) -> None:
        if not query.address or not query.address.strip():
            raise InvalidQueryError("address is required")
        if not isinstance(query.network, Network):
            raise InvalidQueryError(f"unknown network: {query.network!r}")
        if int(query.page) < 1:
            raise InvalidQueryError("page must be >= 1")
        if int(query.page_size) < 1:
            raise InvalidQueryError("page_size must be >= 1")


def fetch_interactions(
    query: InteractionQuery,
    node: Optional[NodePort] = None,
    log: Optional[LogSink] = None,
) -> QueryResult:
    """One-shot helper: builds the JSON-RPC adapter for ``query.network``."""
    if node is None:
        node = RpcNodeAdapter(network=query.network.value)
    return InteractionService(node).fetch_interactions(query, log=log)
