from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
import time
from typing import List, Optional

from explorer.adapters.node.rpc_node_adapter import RpcNodeAdapter
from explorer.adapters.node.static_node_adapter import StaticNodeAdapter
from explorer.config import settings
from explorer.core.models import (
    InteractionFilters,
    InteractionQuery,
    LogEntry,
    Network,
    TxKind,
    TxStatus,
)
from explorer.io.output_writer import write_rows_csv, write_rows_json, write_summary_md
from explorer.services.interaction_service import InteractionService


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="contract-explorer", description="Starknet contract interaction explorer")
    p.add_argument("--address", required=True, help="Contract address to inspect")
    p.add_argument("--network", choices=[n.value for n in Network], default=Network.MAINNET.value, help="Starknet network")
    p.add_argument("--from-date", help="Start date (YYYY-MM-DD, UTC)")
    p.add_argument("--to-date", help="End date (YYYY-MM-DD, UTC, inclusive)")
    p.add_argument("--days", type=int, default=7, help="Lookback window in days when --from-date is not given")
    p.add_argument("--page", type=int, default=1, help="Page number (1-based)")
    p.add_argument("--page-size", type=int, default=50, help="Rows per page")
    p.add_argument("--type", choices=["ALL"] + [k.value for k in TxKind], default="ALL", help="Transaction type filter")
    p.add_argument("--method", help="Entrypoint name filter")
    p.add_argument("--status", choices=["ALL"] + [s.value for s in TxStatus], default="ALL", help="Status filter")
    p.add_argument("--min-fee", type=int, help="Minimum fee (wei)")
    p.add_argument("--max-fee", type=int, help="Maximum fee (wei)")
    p.add_argument("--trace-budget", type=int, help=f"Trace fallback lookups (default {settings.TRACE_LOOKUP_BUDGET})")
    p.add_argument("--out", default="out", help="Output folder")
    p.add_argument("--csv", action="store_true", help="Also write interactions.csv")
    p.add_argument("--use-static", action="store_true", help="Use static in-memory node (dev/testing)")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    return p


def _parse_date(value: str) -> int:
    d = dt.datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=dt.timezone.utc)
    return int(d.timestamp())


def resolve_time_range(args: argparse.Namespace, now_ts: Optional[int] = None) -> tuple:
    now_ts = now_ts or int(time.time())
    to_ts = _parse_date(args.to_date) + 86399 if args.to_date else now_ts
    if args.from_date:
        from_ts = _parse_date(args.from_date)
    else:
        from_ts = to_ts - int(args.days) * 24 * 3600
    return from_ts, to_ts


def build_query(args: argparse.Namespace, now_ts: Optional[int] = None) -> InteractionQuery:
    from_ts, to_ts = resolve_time_range(args, now_ts)
    filters = InteractionFilters(
        kind=None if args.type == "ALL" else TxKind(args.type),
        method=args.method or None,
        status=None if args.status == "ALL" else TxStatus(args.status),
        min_fee=args.min_fee,
        max_fee=args.max_fee,
    )
    return InteractionQuery(
        address=args.address,
        network=Network(args.network),
        from_ts=from_ts,
        to_ts=to_ts,
        page=args.page,
        page_size=args.page_size,
        filters=filters,
        trace_lookup_budget=args.trace_budget,
    )


def _make_activity_printer():
    def _ts() -> str:
        return dt.datetime.now().strftime("%H:%M:%S")

    def sink(entry: LogEntry) -> None:
        stream = sys.stderr if entry.level == "error" else sys.stdout
        print(f"[{_ts()}] {entry.level.upper():5} {entry.message}", file=stream)

    return sink


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    query = build_query(args)
    sink = _make_activity_printer()

    # Ports
    if args.use_static:
        node = StaticNodeAdapter()
        adapter_label = "StaticNodeAdapter (dev/testing)"
    else:
        node = RpcNodeAdapter(network=query.network.value)
        adapter_label = f"RpcNodeAdapter ({settings.RPC_URLS[query.network.value]})"

    svc = InteractionService(node=node)
    print(f"Adapter: {adapter_label}")
    start_time = time.time()
    try:
        result = svc.fetch_interactions(query, log=sink)
    except Exception as exc:
        sink(LogEntry(level="error", message=f"{exc.__class__.__name__}: {exc}"))
        return 1
    print(f"Done in {time.time() - start_time:.1f}s • {len(result.rows)} row(s)")

    # Outputs
    print("Writing outputs...")
    json_path = write_rows_json(result, args.out)
    summary_path = write_summary_md(result, args.out, address=query.address, network=query.network)
    csv_path = write_rows_csv(result, args.out) if args.csv else None

    print(f"Wrote: {json_path}")
    print(f"Wrote: {summary_path}")
    if csv_path:
        print(f"Wrote: {csv_path}")
    if result.has_more:
        print(f"More data may exist; try --page {query.page + 1}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
