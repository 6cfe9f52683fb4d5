from __future__ import annotations

from typing import Dict, List, Optional, Set

from explorer.core.models import (
    NO_ENTRYPOINT,
    InteractionFilters,
    InteractionQuery,
    QueryResult,
    TransactionRow,
)


def matches_filters(
    row: TransactionRow,
    filters: InteractionFilters,
    from_ts: Optional[int] = None,
    to_ts: Optional[int] = None,
) -> bool:
    if filters.kind is not None and row.kind != filters.kind:
        return False
    if filters.method and (row.entrypoint or NO_ENTRYPOINT) != filters.method:
        return False
    if filters.status is not None and row.status != filters.status:
        return False
    if filters.min_fee is not None and row.fee < filters.min_fee:
        return False
    if filters.max_fee is not None and row.fee > filters.max_fee:
        return False
    if from_ts is not None and row.timestamp < from_ts:
        return False
    if to_ts is not None and row.timestamp > to_ts:
        return False
    return True


class ResultAssembler:
    """
    Accumulates rows from both scanners and produces the requested page.

    Dedup is first-write-wins by transaction hash: whichever scanner reaches
    a hash first owns it, later discoveries of the same hash are ignored.
    """

    def __init__(self, query: InteractionQuery) -> None:
        self._query = query
        self._rows: Dict[str, TransactionRow] = {}
        self._claimed: Set[str] = set()
        self.matching_count = 0

    # -------------------------
    # Accumulation
    # -------------------------

    def is_claimed(self, tx_hash: str) -> bool:
        return tx_hash in self._claimed

    def claim(self, tx_hash: str) -> bool:
        """
        Reserve a hash before processing it. A claimed hash is never
        processed again, even when processing fails.
        """
        if tx_hash in self._claimed:
            return False
        self._claimed.add(tx_hash)
        return True

    def add(self, row: TransactionRow) -> bool:
        if row.tx_hash in self._rows:
            return False
        self._claimed.add(row.tx_hash)
        self._rows[row.tx_hash] = row
        if self.matches(row):
            self.matching_count += 1
        return True

    def matches(self, row: TransactionRow) -> bool:
        q = self._query
        return matches_filters(row, q.filters, q.from_ts, q.to_ts)

    @property
    def threshold_reached(self) -> bool:
        limit = self._query.match_threshold
        return limit > 0 and self.matching_count >= limit

    def __len__(self) -> int:
        return len(self._rows)

    # -------------------------
    # Final page
    # -------------------------

    def assemble(
        self,
        reached_limit: bool = False,
        continuation_left: bool = False,
        trace_complete: bool = True,
        budget_exhausted: bool = False,
    ) -> QueryResult:
        filtered: List[TransactionRow] = [r for r in self._rows.values() if self.matches(r)]
        filtered.sort(key=lambda r: r.timestamp, reverse=True)

        start = (self._query.page - 1) * self._query.page_size
        end = start + self._query.page_size
        page = filtered[start:end]

        has_more = (
            end < len(filtered)
            or reached_limit
            or continuation_left
            or not trace_complete
        )
        return QueryResult(
            rows=page,
            total_estimated=len(filtered),
            has_more=has_more,
            trace_complete=trace_complete,
            budget_exhausted=budget_exhausted,
        )
