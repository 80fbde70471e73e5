import pytest

from conftest import NAMESPACE
from nft_ledger import (
    ZERO_ADDRESS,
    StoreError,
    TokenLedger,
    dispatch_event,
    token_hex,
    token_key,
)

ALICE = "0xAAA"
BOB = "0xBBB"
CAROL = "0xCCC"


def stored(store, token_id):
    return store.load(NAMESPACE, token_key(token_id), None)


def test_token_hex_pads_to_even_length():
    assert token_hex(0) == "0x00"
    assert token_hex(1) == "0x01"
    assert token_hex(255) == "0xff"
    assert token_hex(256) == "0x0100"
    assert token_hex("0x1") == "0x01"
    assert token_hex("4096") == "0x1000"
    assert token_key(9999) == "token-0x270f"


@pytest.mark.parametrize("bad", [-1, 2**256, "0xzz", "", True, 1.5, None, "1_0", "0x_1", " 1", "1\n", "-1", "0x"])
def test_token_hex_rejects_invalid_ids(bad):
    with pytest.raises(ValueError):
        token_hex(bad)


def test_transfer_on_empty_store_creates_record(ledger, store):
    ledger.apply_transfer(ZERO_ADDRESS, ALICE, 42)

    assert stored(store, 42) == {
        "owner": ALICE,
        "previousOwner": ZERO_ADDRESS,
        "approved": None,
        "tokenId": "0x2a",
    }


def test_transfer_always_clears_approval(ledger, store):
    ledger.apply_transfer(ZERO_ADDRESS, ALICE, 7)
    ledger.apply_approval(ALICE, BOB, 7)
    assert stored(store, 7)["approved"] == BOB

    record = ledger.apply_transfer(ALICE, CAROL, 7)

    assert record.approved is None
    assert stored(store, 7) == {
        "owner": CAROL,
        "previousOwner": ALICE,
        "approved": None,
        "tokenId": "0x07",
    }


def test_approval_on_empty_store_uses_owner_hint(ledger, store):
    ledger.apply_approval(ALICE, BOB, 3)

    assert stored(store, 3) == {
        "owner": ALICE,
        "previousOwner": None,
        "approved": BOB,
        "tokenId": "0x03",
    }


def test_approval_keeps_owner_and_previous_owner(ledger, store):
    ledger.apply_transfer(ALICE, BOB, 5)

    ledger.apply_approval(CAROL, "0xDDD", 5)

    assert stored(store, 5) == {
        "owner": BOB,
        "previousOwner": ALICE,
        "approved": "0xDDD",
        "tokenId": "0x05",
    }


def test_approval_can_clear(ledger, store):
    ledger.apply_transfer(ALICE, BOB, 5)
    ledger.apply_approval(BOB, CAROL, 5)

    ledger.apply_approval(BOB, None, 5)

    assert stored(store, 5)["approved"] is None


def test_transfer_is_idempotent(ledger, store):
    ledger.apply_transfer(ALICE, BOB, 11)
    once = stored(store, 11)

    ledger.apply_transfer(ALICE, BOB, 11)

    assert stored(store, 11) == once


def test_extra_fields_survive_updates(ledger, store):
    store.store(NAMESPACE, token_key(8), {
        "owner": ALICE,
        "previousOwner": None,
        "approved": None,
        "tokenId": "0x08",
        "metadataUri": "ipfs://ape/8",
    })

    ledger.apply_transfer(ALICE, BOB, 8)
    ledger.apply_approval(BOB, CAROL, 8)

    record = stored(store, 8)
    assert record["metadataUri"] == "ipfs://ape/8"
    assert record["owner"] == BOB
    assert record["approved"] == CAROL


def test_one_read_one_write_per_operation(store):
    calls = []

    class RecordingStore:
        def load(self, namespace, key, default=None):
            calls.append(("load", namespace, key))
            return store.load(namespace, key, default)

        def store(self, namespace, key, value):
            calls.append(("store", namespace, key))
            store.store(namespace, key, value)

    ledger = TokenLedger(RecordingStore(), NAMESPACE)
    ledger.apply_transfer(ALICE, BOB, 1)
    ledger.apply_approval(BOB, CAROL, 1)

    assert calls == [
        ("load", NAMESPACE, "token-0x01"),
        ("store", NAMESPACE, "token-0x01"),
        ("load", NAMESPACE, "token-0x01"),
        ("store", NAMESPACE, "token-0x01"),
    ]


@pytest.mark.parametrize("from_address, to_address", [("", BOB), (ALICE, ""), (ALICE, None)])
def test_transfer_rejects_missing_addresses(ledger, store, from_address, to_address):
    with pytest.raises(ValueError):
        ledger.apply_transfer(from_address, to_address, 1)
    assert store.writes == 0


def test_store_failure_propagates_and_keeps_prior_record(ledger, store):
    ledger.apply_transfer(ALICE, BOB, 2)
    before = stored(store, 2)

    class BrokenStore:
        def load(self, namespace, key, default=None):
            return store.load(namespace, key, default)

        def store(self, namespace, key, value):
            raise StoreError("quota exceeded")

    with pytest.raises(StoreError, match="quota exceeded"):
        TokenLedger(BrokenStore(), NAMESPACE).apply_transfer(BOB, CAROL, 2)

    assert stored(store, 2) == before


def test_namespaces_are_isolated(store):
    TokenLedger(store, "BAYC-storage").apply_transfer(ALICE, BOB, 1)
    TokenLedger(store, "MAYC-storage").apply_transfer(ALICE, CAROL, 1)

    assert store.load("BAYC-storage", "token-0x01")["owner"] == BOB
    assert store.load("MAYC-storage", "token-0x01")["owner"] == CAROL


def test_transfer_approval_transfer_scenario(ledger, store):
    ledger.apply_transfer("0x0", ALICE, "0x1")
    assert stored(store, 1) == {"owner": ALICE, "previousOwner": "0x0", "approved": None, "tokenId": "0x01"}

    ledger.apply_approval(ALICE, BOB, "0x1")
    assert stored(store, 1) == {"owner": ALICE, "previousOwner": "0x0", "approved": BOB, "tokenId": "0x01"}

    ledger.apply_transfer(ALICE, CAROL, "0x1")
    assert stored(store, 1) == {"owner": CAROL, "previousOwner": ALICE, "approved": None, "tokenId": "0x01"}


def test_dispatch_routes_transfer_and_approval(ledger, store):
    dispatch_event(ledger, {"name": "Transfer", "args": {"from": ALICE, "to": BOB, "tokenId": 4}})
    dispatch_event(ledger, {"name": "Approval", "args": {"owner": BOB, "approved": CAROL, "tokenId": 4}})

    assert ledger.get(4).owner == BOB
    assert ledger.get(4).approved == CAROL


def test_dispatch_maps_zero_address_approval_to_none(ledger, store):
    ledger.apply_transfer(ALICE, BOB, 4)
    ledger.apply_approval(BOB, CAROL, 4)

    record = dispatch_event(ledger, {"name": "Approval", "args": {"owner": BOB, "approved": ZERO_ADDRESS, "tokenId": 4}})

    assert record.approved is None


@pytest.mark.parametrize("event", [
    {"name": "ApprovalForAll", "args": {"owner": ALICE, "operator": BOB, "approved": True}},
    {"name": "OwnershipTransferred", "args": {"previousOwner": ALICE, "newOwner": BOB}},
    {"name": "Mint", "args": {}},
])
def test_dispatch_ignores_other_events(ledger, store, event):
    assert dispatch_event(ledger, event) is None
    assert store.writes == 0


def test_stored_record_without_token_id_takes_it_from_key(ledger, store):
    store.store(NAMESPACE, "token-0x01", {"owner": ALICE})

    record = ledger.apply_approval(BOB, CAROL, 1)

    assert record.owner == ALICE
    assert stored(store, 1) == {"owner": ALICE, "previousOwner": None, "approved": CAROL, "tokenId": "0x01"}


@pytest.mark.parametrize("bad_record", [{"tokenId": "0x01"}, {"owner": None, "tokenId": "0x01"}, "0xAAA", [ALICE]])
def test_stored_record_without_owner_raises_store_error(ledger, store, bad_record):
    store.store(NAMESPACE, "token-0x01", bad_record)

    with pytest.raises(StoreError):
        ledger.apply_approval(BOB, CAROL, 1)

    assert stored(store, 1) == bad_record
    assert store.writes == 1
