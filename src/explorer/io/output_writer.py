from __future__ import annotations

import csv
import datetime as dt
import json
from pathlib import Path
from typing import Optional

from explorer.config import settings
from explorer.core.models import Network, QueryResult
from explorer.io.schemas import ROW_FIELDS, result_to_dict, row_to_dict
from explorer.services.aggregations import kpis, method_counts, top_callers


def tx_link(network: Network, tx_hash: str) -> str:
    return f"{settings.EXPLORER_BASE_URLS[network.value]}/tx/{tx_hash}"


def contract_link(network: Network, address: str) -> str:
    return f"{settings.EXPLORER_BASE_URLS[network.value]}/contract/{address}"


def write_rows_json(result: QueryResult, out_dir: str, filename: str = "interactions.json") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(result_to_dict(result), f, indent=2)

    return str(out_path)


def write_rows_csv(result: QueryResult, out_dir: str, filename: str = "interactions.csv") -> str:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    with out_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=ROW_FIELDS)
        writer.writeheader()
        for r in result.rows:
            writer.writerow(row_to_dict(r))

    return str(out_path)


def write_summary_md(
    result: QueryResult,
    out_dir: str,
    filename: str = "summary.md",
    address: Optional[str] = None,
    network: Network = Network.MAINNET,
) -> str:
    """
    Minimal, operator-friendly summary of one fetched page.
    """
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)

    out_path = p / filename
    rows = result.rows
    metrics = kpis(rows)

    def fmt_time(ts: int) -> str:
        if not ts:
            return "—"
        return dt.datetime.fromtimestamp(ts, tz=dt.timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    def fmt_fee(fee: float) -> str:
        if fee == 0:
            return "0"
        units = ["wei", "k", "M", "G"]
        i, v = 0, float(fee)
        while v >= 1000 and i < len(units) - 1:
            v /= 1000
            i += 1
        return f"{v:.2f}".replace(".00", "") + f" {units[i]}"

    def short(addr: str) -> str:
        return addr if len(addr) <= 16 else f"{addr[:8]}…{addr[-6:]}"

    lines = []
    lines.append("# Contract Interactions\n")
    if address:
        lines.append(f"- Contract: **{address}** ([explorer]({contract_link(network, address)}))\n")
    lines.append(f"- Network: **{network.value}**\n")
    lines.append(f"- Rows in page: **{metrics.total}**\n")
    lines.append(f"- Matching rows found: **{result.total_estimated}**")
    lines.append(" (lower bound, more may exist)\n" if result.has_more else "\n")
    lines.append(f"- Unique callers: **{metrics.callers}**\n")
    lines.append(f"- Average fee: **{fmt_fee(metrics.avg_fee)}**\n")
    lines.append(f"- Last activity: **{fmt_time(metrics.last_ts)}**\n")
    lines.append("\n")

    lines.append("## Top Callers\n\n")
    callers = top_callers(rows, 10)
    if not callers:
        lines.append("_No callers in this page._\n\n")
    else:
        for caller, count in callers:
            lines.append(f"- **{count}** | {caller}\n")
        lines.append("\n")

    lines.append("## Methods\n\n")
    methods = method_counts(rows, 20)
    if not methods:
        lines.append("_No methods in this page._\n\n")
    else:
        for name, count in methods:
            lines.append(f"- **{count}** | {name}\n")
        lines.append("\n")

    lines.append("## Limitations\n\n")
    if result.budget_exhausted:
        lines.append("- Trace lookup budget was exhausted; calls that emitted no event may be missing.\n")
    elif not result.trace_complete:
        lines.append("- Trace fallback stopped early once the page was filled.\n")
    lines.append("- Only the event log and a bounded trace scan are searched.\n\n")

    lines.append("## Transactions\n\n")
    if not rows:
        lines.append("_No interactions found in the selected window._\n")
    else:
        for r in rows:
            lines.append(
                f"- {fmt_time(r.timestamp)} | {r.kind.value} | {r.entrypoint or '—'} "
                f"| {short(r.caller)} | fee {fmt_fee(r.fee)} | {r.status.value} "
                f"| [{short(r.tx_hash)}]({tx_link(r.network, r.tx_hash)})\n"
            )

    with out_path.open("w", encoding="utf-8") as f:
        f.writelines(lines)

    return str(out_path)
