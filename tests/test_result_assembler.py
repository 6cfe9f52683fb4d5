import unittest

from explorer.core.dto import Receipt
from explorer.core.models import (
    InteractionFilters,
    InteractionQuery,
    Network,
    TransactionRow,
    TxKind,
    TxStatus,
)
from explorer.services.result_assembler import ResultAssembler, matches_filters
from explorer.services.row_builder import decode_selector, parse_fee, receipt_status, same_address


def _row(tx_hash, ts, fee=0, kind=TxKind.INVOKE, entrypoint="ping", status=TxStatus.ACCEPTED, caller="0xa"):
    return TransactionRow(
        timestamp=ts,
        tx_hash=tx_hash,
        kind=kind,
        entrypoint=entrypoint,
        caller=caller,
        target_address="0xc",
        fee=fee,
        status=status,
        network=Network.MAINNET,
    )


class RowBuilderTests(unittest.TestCase):
    def test_decode_selector(self) -> None:
        self.assertEqual(decode_selector("0x70696e67"), "ping")
        self.assertEqual(decode_selector("0x7472616e73666572"), "transfer")
        self.assertEqual(decode_selector("approve"), "approve")
        self.assertIsNone(decode_selector(None))
        self.assertIsNone(decode_selector(""))

    def test_decode_selector_passes_through_hashes(self) -> None:
        selector = "0x83afd3f4caedc6eebf44246fe54e38c95e3179a5ec9ea81740eca5b482d12e"
        self.assertEqual(decode_selector(selector), selector)
        self.assertEqual(decode_selector("0x01"), "0x01")   # not printable
        self.assertEqual(decode_selector("0xzz"), "0xzz")

    def test_parse_fee(self) -> None:
        self.assertEqual(parse_fee("0x10"), 16)
        self.assertEqual(parse_fee("0x2386f26fc10000"), 10**16)
        self.assertEqual(parse_fee(None), 0)
        self.assertEqual(parse_fee("not-a-number"), 0)
        self.assertEqual(parse_fee("010"), 10)
        self.assertEqual(parse_fee("0X1f"), 31)
        self.assertEqual(parse_fee(42), 42)
        self.assertEqual(parse_fee("-5"), 0)

    def test_receipt_status(self) -> None:
        self.assertEqual(receipt_status(Receipt("0x1", execution_status="SUCCEEDED")), TxStatus.ACCEPTED)
        self.assertEqual(receipt_status(Receipt("0x1", execution_status="REVERTED")), TxStatus.REJECTED)
        self.assertEqual(receipt_status(Receipt("0x1", revert_reason="out of gas")), TxStatus.REJECTED)

    def test_same_address(self) -> None:
        self.assertTrue(same_address("0xABC", "0xabc"))
        self.assertTrue(same_address("0x0abc", "0xabc"))
        self.assertFalse(same_address("0xabc", "0xabd"))
        self.assertFalse(same_address(None, "0xabc"))

    def test_kind_normalization(self) -> None:
        self.assertEqual(TxKind.normalize("invoke"), TxKind.INVOKE)
        self.assertEqual(TxKind.normalize("DEPLOY_ACCOUNT"), TxKind.DEPLOY)
        self.assertEqual(TxKind.normalize("DECLARE"), TxKind.DECLARE)
        self.assertEqual(TxKind.normalize("L1_HANDLER"), TxKind.L1_HANDLER)
        self.assertEqual(TxKind.normalize("SOMETHING_NEW"), TxKind.INVOKE)
        self.assertEqual(TxKind.normalize(None), TxKind.INVOKE)


class ResultAssemblerTests(unittest.TestCase):
    def _query(self, **overrides):
        defaults = dict(address="0xc", page=1, page_size=10)
        defaults.update(overrides)
        return InteractionQuery(**defaults)

    def test_first_write_wins(self) -> None:
        asm = ResultAssembler(self._query())
        self.assertTrue(asm.add(_row("0x1", 100, fee=1)))
        self.assertFalse(asm.add(_row("0x1", 200, fee=2)))

        res = asm.assemble()
        self.assertEqual(len(res.rows), 1)
        self.assertEqual(res.rows[0].fee, 1)
        self.assertEqual(asm.matching_count, 1)

    def test_claim_is_exclusive(self) -> None:
        asm = ResultAssembler(self._query())
        self.assertTrue(asm.claim("0x1"))
        self.assertFalse(asm.claim("0x1"))
        self.assertTrue(asm.is_claimed("0x1"))
        self.assertEqual(len(asm), 0)

    def test_filters(self) -> None:
        f = InteractionFilters(kind=TxKind.DECLARE)
        self.assertFalse(matches_filters(_row("0x1", 1), f))
        self.assertTrue(matches_filters(_row("0x1", 1, kind=TxKind.DECLARE), f))

        f = InteractionFilters(method="—")
        self.assertTrue(matches_filters(_row("0x1", 1, entrypoint=None), f))
        self.assertFalse(matches_filters(_row("0x1", 1), f))

        f = InteractionFilters(min_fee=10, max_fee=20)
        self.assertFalse(matches_filters(_row("0x1", 1, fee=9), f))
        self.assertTrue(matches_filters(_row("0x1", 1, fee=10), f))
        self.assertTrue(matches_filters(_row("0x1", 1, fee=20), f))
        self.assertFalse(matches_filters(_row("0x1", 1, fee=21), f))

        f = InteractionFilters(status=TxStatus.REJECTED)
        self.assertFalse(matches_filters(_row("0x1", 1), f))

        self.assertTrue(matches_filters(_row("0x1", 10), InteractionFilters(), 10, 10))
        self.assertFalse(matches_filters(_row("0x1", 11), InteractionFilters(), 10, 10))

    def test_paging_and_sort(self) -> None:
        asm = ResultAssembler(self._query(page=2, page_size=2))
        for i, ts in enumerate([300, 100, 500, 200, 400]):
            asm.add(_row(f"0x{i}", ts))

        res = asm.assemble()
        self.assertEqual([r.timestamp for r in res.rows], [300, 200])
        self.assertEqual(res.total_estimated, 5)
        self.assertTrue(res.has_more)
        self.assertTrue(asm.threshold_reached)

    def test_has_more_flags(self) -> None:
        asm = ResultAssembler(self._query())
        asm.add(_row("0x1", 1))

        self.assertFalse(asm.assemble().has_more)
        self.assertTrue(asm.assemble(reached_limit=True).has_more)
        self.assertTrue(asm.assemble(continuation_left=True).has_more)
        self.assertTrue(asm.assemble(trace_complete=False).has_more)

    def test_non_matching_rows_do_not_count_towards_threshold(self) -> None:
        asm = ResultAssembler(self._query(page_size=1, filters=InteractionFilters(status=TxStatus.REJECTED)))
        asm.add(_row("0x1", 1))
        self.assertFalse(asm.threshold_reached)
        asm.add(_row("0x2", 2, status=TxStatus.REJECTED))
        self.assertTrue(asm.threshold_reached)


if __name__ == "__main__":
    unittest.main()
