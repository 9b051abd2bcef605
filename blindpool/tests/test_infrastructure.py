"""
Tests for infrastructure helpers: data classes, revert decoding, encryption.

Prerequisites:
- None

Run with: python -m pytest blindpool/tests/test_infrastructure.py
"""

import unittest
import asyncio

from eth_abi import encode
from web3.exceptions import ContractLogicError

from blindpool.config import BlindPoolConfig
from blindpool.core.errors import EncodingRangeExceeded, WalletOrNetworkFailure
from blindpool.core.price_codec import CONFIDENTIAL_MAX, Q96
from blindpool.infrastructure.auction_data import Auction, Bid, TxReceipt, sort_bids_newest_first
from blindpool.infrastructure.blockchain_client import extract_revert_reason
from blindpool.infrastructure.confidential import (
    ConfidentialEncryptor,
    EncryptedInputs,
    HttpEncryptor,
    encrypt_bid_inputs,
    to_hex,
)

BLIND_POOL = "0x" + "cc" * 20
OWNER = "0x" + "bb" * 20


class FakeEncryptor(ConfidentialEncryptor):
    """Returns one deterministic handle per plaintext."""

    def __init__(self, handle_count=None):
        self.calls = []
        self.handle_count = handle_count

    async def encrypt(self, contract_address, user_address, values):
        self.calls.append((contract_address, user_address, list(values)))
        count = len(values) if self.handle_count is None else self.handle_count
        handles = tuple(to_hex(bytes([i + 1]) * 32) for i in range(count))
        return EncryptedInputs(handles=handles, input_proof=to_hex(b"\xab\xcd"))


class TestDataClasses(unittest.TestCase):

    def test_auction_display(self):
        auction = Auction(
            address="0x" + "aa" * 20,
            token=OWNER,
            auction_number=7,
            start_block=1,
            end_block=2,
            clearing_price_raw=3 * Q96 // 2,
            floor_price_raw=Q96,
            tick_spacing=Q96 // 100,
            bid_count=4,
            currency_raised=25 * 10 ** 17,
            total_supply=10 ** 21,
        )
        self.assertEqual(auction.display_name, "CCA7")
        data = auction.to_dict()
        self.assertEqual(data['clearing_price'], "1.5")
        self.assertEqual(data['currency_raised'], "2.5")
        self.assertEqual(data['total_supply'], "1000")
        self.assertIsNone(data['status'])
        print("\n✓ Auction renders decoded prices and ETH amounts")

    def test_sort_bids_newest_first(self):
        bids = [
            Bid(bid_id=1, owner=OWNER, block_number=10),
            Bid(bid_id=3, owner=OWNER, block_number=12),
            Bid(bid_id=2, owner=OWNER, block_number=12),
        ]
        self.assertEqual([b.bid_id for b in sort_bids_newest_first(bids)], [3, 2, 1])

    def test_receipt_from_web3(self):
        raw = {
            'transactionHash': bytes.fromhex("12" * 32),
            'blockNumber': 42,
            'status': 1,
            'gasUsed': 21000,
            'logs': [],
        }
        receipt = TxReceipt.from_web3(raw)
        self.assertEqual(receipt.tx_hash, "0x" + "12" * 32)
        self.assertTrue(receipt.succeeded)
        self.assertEqual(receipt.to_dict()['blockNumber'], 42)


class TestRevertReason(unittest.TestCase):

    def test_error_string_payload_decoded(self):
        data = "0x08c379a0" + encode(["string"], ["Bid too low"]).hex()
        error = ContractLogicError("execution reverted", data=data)
        self.assertEqual(extract_revert_reason(error), "Bid too low")
        print("\n✓ Error(string) revert data decoded")

    def test_prefix_stripped_from_message(self):
        error = ContractLogicError("execution reverted: AuctionNotStarted")
        self.assertEqual(extract_revert_reason(error), "AuctionNotStarted")

    def test_custom_error_message_kept(self):
        error = ContractLogicError("0xdeadbeef", data="0xdeadbeef")
        self.assertEqual(extract_revert_reason(error), "0xdeadbeef")


class TestConfidential(unittest.TestCase):

    def test_to_hex(self):
        self.assertEqual(to_hex("abcd"), "0xabcd")
        self.assertEqual(to_hex("0xabcd"), "0xabcd")
        self.assertEqual(to_hex(b"\xab\xcd"), "0xabcd")

    def test_encrypt_bid_inputs(self):
        async def _test():
            encryptor = FakeEncryptor()
            encrypted = await encrypt_bid_inputs(encryptor, BLIND_POOL, OWNER, 300_000_000, 100_000_000)

            self.assertEqual(len(encrypted.handles), 2)
            self.assertEqual(encrypted.input_proof, "0xabcd")
            self.assertEqual(encryptor.calls, [(BLIND_POOL, OWNER, [300_000_000, 100_000_000])])
            print("\n✓ Bid inputs encrypted as (maxPrice, amount)")

        asyncio.run(_test())

    def test_values_range_checked_before_encryption(self):
        async def _test():
            encryptor = FakeEncryptor()
            with self.assertRaises(EncodingRangeExceeded):
                await encrypt_bid_inputs(encryptor, BLIND_POOL, OWNER, CONFIDENTIAL_MAX + 1, 1)
            self.assertEqual(encryptor.calls, [])

        asyncio.run(_test())

    def test_wrong_handle_count(self):
        async def _test():
            with self.assertRaises(WalletOrNetworkFailure):
                await encrypt_bid_inputs(FakeEncryptor(handle_count=1), BLIND_POOL, OWNER, 1, 1)

        asyncio.run(_test())

    def test_http_encryptor_requires_url(self):
        with self.assertRaises(ValueError):
            HttpEncryptor(client_config=BlindPoolConfig(encryption_service_url=None))

        encryptor = HttpEncryptor("http://localhost:8787/")
        self.assertEqual(encryptor.base_url, "http://localhost:8787")


if __name__ == "__main__":
    unittest.main(verbosity=2)
