import pytest

from kv_store import InMemoryStore
from nft_ledger import TokenLedger

NAMESPACE = "BAYC-storage"


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def ledger(store):
    return TokenLedger(store, NAMESPACE)
