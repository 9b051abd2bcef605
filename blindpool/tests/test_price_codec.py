"""
Tests for the Q96 and confidential-unit price codec.

Prerequisites:
- None (pure functions)

Run with: python -m pytest blindpool/tests/test_price_codec.py
"""

import unittest

from blindpool.core.errors import EncodingRangeExceeded, InvalidInput, InvalidPrice
from blindpool.core.price_codec import (
    CONFIDENTIAL_MAX,
    Q96,
    check_confidential_range,
    decode_price,
    encode_price,
    format_ether,
    parse_ether,
    snap_up_to_tick,
    to_confidential_units,
)


class TestEncodePrice(unittest.TestCase):
    """Decimal string -> Q96."""

    def test_whole_and_fractional_prices(self):
        self.assertEqual(encode_price("1"), Q96)
        self.assertEqual(encode_price("0.5"), Q96 // 2)
        self.assertEqual(encode_price("3"), 3 * Q96)
        self.assertEqual(encode_price(" 2 "), 2 * Q96)
        print("\n✓ Whole and fractional prices encode exactly")

    def test_tiny_price_encodes_to_zero(self):
        """Zero is the too-small sentinel, never a valid price."""
        self.assertEqual(encode_price("1e-40"), 0)
        print("\n✓ Sub-resolution price encodes to 0")

    def test_rejects_non_positive_and_malformed(self):
        for text in ["0", "-1", "abc", "", "   ", "inf", "NaN", "1e100"]:
            with self.assertRaises(InvalidPrice) as ctx:
                encode_price(text)
            self.assertEqual(ctx.exception.field, "price")
        print("\n✓ Malformed, zero, negative and non-finite prices rejected")

    def test_invalid_price_is_invalid_input(self):
        with self.assertRaises(InvalidInput):
            encode_price("-0.1")


class TestDecodePrice(unittest.TestCase):
    """Q96 -> decimal string."""

    def test_decode_basic(self):
        self.assertEqual(decode_price(0), "0")
        self.assertEqual(decode_price(Q96), "1")
        self.assertEqual(decode_price(Q96 // 2), "0.5")
        self.assertEqual(decode_price(5 * Q96 // 4), "1.25")
        print("\n✓ Q96 values decode to trimmed decimals")

    def test_round_trip_up_to_eight_decimals(self):
        for text in ["0.1", "0.00000001", "123.45678901", "42", "0.99999999", "1000000.5"]:
            self.assertEqual(decode_price(encode_price(text)), text)
        print("\n✓ decode(encode(x)) == x for up to 8 fractional digits")

    def test_decode_rounds_to_eight_decimals(self):
        self.assertEqual(decode_price(Q96 // 3), "0.33333333")
        self.assertEqual(decode_price(2 * Q96 // 3), "0.66666667")

    def test_decode_carries_into_whole_part(self):
        self.assertEqual(decode_price(2 * Q96 - 1), "2")


class TestSnapUpToTick(unittest.TestCase):

    def test_snaps_up_never_down(self):
        self.assertEqual(snap_up_to_tick(101, 10), 110)
        self.assertEqual(snap_up_to_tick(100, 10), 100)
        self.assertEqual(snap_up_to_tick(1, 10), 10)
        print("\n✓ Prices snap up to the tick grid")

    def test_result_is_aligned_and_not_smaller(self):
        for tick in (1, 7, 1000, Q96 // 100, Q96):
            for value in (1, 6, 999, Q96 // 3, 5 * Q96 + 1):
                snapped = snap_up_to_tick(value, tick)
                self.assertEqual(snapped % tick, 0)
                self.assertGreaterEqual(snapped, value)
                self.assertLess(snapped - value, tick)
                self.assertEqual(snap_up_to_tick(snapped, tick), snapped)

    def test_zero_tick_leaves_value(self):
        self.assertEqual(snap_up_to_tick(12345, 0), 12345)


class TestConfidentialUnits(unittest.TestCase):
    """8-decimal scaling for the blind pool."""

    def test_scaling(self):
        self.assertEqual(to_confidential_units("1", "amount"), 100_000_000)
        self.assertEqual(to_confidential_units("0.00000001", "amount"), 1)
        print("\n✓ Values scale to 8-decimal integers")

    def test_rounding_direction(self):
        self.assertEqual(to_confidential_units("0.000000015", "price", round_up=True), 2)
        self.assertEqual(to_confidential_units("0.000000015", "amount"), 1)
        self.assertEqual(to_confidential_units("0.000000001", "price", round_up=True), 1)
        print("\n✓ Price rounds up, amount rounds down")

    def test_amount_that_rounds_to_zero_is_rejected(self):
        with self.assertRaises(InvalidInput) as ctx:
            to_confidential_units("0.000000001", "amount")
        self.assertEqual(ctx.exception.field, "amount")

    def test_range_boundary(self):
        self.assertEqual(to_confidential_units("184467440737.09551615", "amount"), CONFIDENTIAL_MAX)
        with self.assertRaises(EncodingRangeExceeded) as ctx:
            to_confidential_units("184467440737.09551616", "amount")
        self.assertEqual(ctx.exception.field, "amount")
        self.assertEqual(ctx.exception.maximum, CONFIDENTIAL_MAX)
        print("\n✓ 2^64-1 accepted, one unit more rejected")

    def test_check_confidential_range(self):
        self.assertEqual(check_confidential_range(CONFIDENTIAL_MAX, "price"), CONFIDENTIAL_MAX)
        with self.assertRaises(EncodingRangeExceeded):
            check_confidential_range(CONFIDENTIAL_MAX + 1, "price")
        with self.assertRaises(InvalidInput):
            check_confidential_range(-1, "price")


class TestEther(unittest.TestCase):

    def test_parse_ether(self):
        self.assertEqual(parse_ether("1.5"), 1_500_000_000_000_000_000)
        self.assertEqual(parse_ether("0.000000000000000001"), 1)

    def test_parse_ether_rejects_sub_wei(self):
        with self.assertRaises(InvalidInput) as ctx:
            parse_ether("0.0000000000000000001")
        self.assertEqual(ctx.exception.field, "amount")

    def test_format_ether(self):
        self.assertEqual(format_ether(0), "0")
        self.assertEqual(format_ether(10 ** 18), "1")
        self.assertEqual(format_ether(1_500_000_000_000_000_000), "1.5")
        print("\n✓ Wei amounts render as trimmed ETH decimals")


if __name__ == "__main__":
    unittest.main(verbosity=2)
