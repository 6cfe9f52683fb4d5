import tempfile
import unittest
from pathlib import Path

from explorer.cli.main import build_arg_parser, build_query, main
from explorer.core.models import Network, TxKind, TxStatus

NOW = 1700000000


class CliTests(unittest.TestCase):
    def _args(self, *argv):
        return build_arg_parser().parse_args(["--address", "0xC0FFEE", *argv])

    def test_defaults(self) -> None:
        q = build_query(self._args(), now_ts=NOW)

        self.assertEqual(q.network, Network.MAINNET)
        self.assertEqual(q.to_ts, NOW)
        self.assertEqual(q.from_ts, NOW - 7 * 24 * 3600)
        self.assertEqual((q.page, q.page_size), (1, 50))
        self.assertIsNone(q.filters.kind)
        self.assertIsNone(q.filters.status)
        self.assertIsNone(q.trace_lookup_budget)

    def test_dates_are_inclusive_utc_days(self) -> None:
        q = build_query(self._args("--from-date", "2024-01-01", "--to-date", "2024-01-02"), now_ts=NOW)

        self.assertEqual(q.from_ts, 1704067200)
        self.assertEqual(q.to_ts, 1704153600 + 86399)

    def test_days_count_back_from_to_date(self) -> None:
        q = build_query(self._args("--to-date", "2024-01-02", "--days", "1"), now_ts=NOW)

        self.assertEqual(q.to_ts - q.from_ts, 24 * 3600)

    def test_filters(self) -> None:
        q = build_query(
            self._args(
                "--network", "sepolia",
                "--type", "DECLARE",
                "--status", "REJECTED",
                "--method", "transfer",
                "--min-fee", "10",
                "--max-fee", "20",
                "--trace-budget", "5",
                "--page", "3",
            ),
            now_ts=NOW,
        )

        self.assertEqual(q.network, Network.SEPOLIA)
        self.assertEqual(q.filters.kind, TxKind.DECLARE)
        self.assertEqual(q.filters.status, TxStatus.REJECTED)
        self.assertEqual(q.filters.method, "transfer")
        self.assertEqual((q.filters.min_fee, q.filters.max_fee), (10, 20))
        self.assertEqual(q.trace_lookup_budget, 5)
        self.assertEqual(q.page, 3)

    def test_static_run_writes_outputs(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code = main(["--address", "0xc", "--use-static", "--csv", "--out", tmp])

            self.assertEqual(code, 0)
            for name in ("interactions.json", "summary.md", "interactions.csv"):
                self.assertTrue((Path(tmp) / name).exists(), name)

    def test_invalid_query_exits_non_zero(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code = main(["--address", "0xc", "--use-static", "--page", "0", "--out", tmp])

            self.assertEqual(code, 1)
            self.assertFalse((Path(tmp) / "interactions.json").exists())


if __name__ == "__main__":
    unittest.main()
