"""
BAYC Ledger Function - Python

Indexing function triggered by logs from the Bored Ape Yacht Club contract.
Decodes each log with web3.py and keeps token ownership/approval records in a
namespaced key-value store.

Usage:
    python bayc_function.py logs.json [store.json]

logs.json is a JSON array of raw log entries ({"topics": [...], "data": "0x...",
...}) as delivered by the trigger.
"""

from web3 import Web3
from web3.exceptions import Web3Exception
from eth_abi.exceptions import DecodingError
from eth_utils import event_abi_to_log_topic
from hexbytes import HexBytes
from typing import Any, Dict, List, Mapping, Optional
import json
import logging
import os
import sys

from kv_store import JsonFileStore
from nft_ledger import DecodeError, TokenLedger, dispatch_event

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration
# ============================================================================

BAYC_ADDRESS = "0xBC4CA0EdA7647A8aB7C2061c2E118A18a936f13D"
STORAGE_NAMESPACE = os.getenv("LEDGER_NAMESPACE", "BAYC-storage")
STORE_PATH = os.getenv("LEDGER_STORE_PATH", "bayc-store.json")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ============================================================================
# Event signature set
# ============================================================================

BAYC_EVENT_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "owner", "type": "address"},
            {"indexed": True, "name": "approved", "type": "address"},
            {"indexed": True, "name": "tokenId", "type": "uint256"}
        ],
        "name": "Approval",
        "type": "event"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "owner", "type": "address"},
            {"indexed": True, "name": "operator", "type": "address"},
            {"indexed": False, "name": "approved", "type": "bool"}
        ],
        "name": "ApprovalForAll",
        "type": "event"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "previousOwner", "type": "address"},
            {"indexed": True, "name": "newOwner", "type": "address"}
        ],
        "name": "OwnershipTransferred",
        "type": "event"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": True, "name": "tokenId", "type": "uint256"}
        ],
        "name": "Transfer",
        "type": "event"
    }
]


class EventDecoder:
    """Decode raw logs against a fixed event ABI using web3.py."""

    def __init__(self, abi: List[Dict[str, Any]], w3: Optional[Web3] = None) -> None:
        self.w3 = w3 or Web3()
        self.contract = self.w3.eth.contract(abi=abi)
        self.events_by_topic = {
            bytes(event_abi_to_log_topic(item)): item["name"]
            for item in abi
            if item.get("type") == "event" and not item.get("anonymous")
        }

    def parse(self, log: Mapping[str, Any]) -> Dict[str, Any]:
        if not isinstance(log, Mapping):
            raise DecodeError(f"Log entry must be a mapping, got {type(log).__name__}")
        topics = log.get("topics") or []
        if not topics:
            raise DecodeError("Log has no topics")

        try:
            entry = {
                "address": log.get("address"),
                "blockHash": log.get("blockHash"),
                "blockNumber": log.get("blockNumber"),
                "logIndex": log.get("logIndex"),
                "transactionHash": log.get("transactionHash"),
                "transactionIndex": log.get("transactionIndex"),
                "topics": [HexBytes(topic) for topic in topics],
                "data": HexBytes(log.get("data") or b""),
            }
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Malformed log entry: {e}") from e

        name = self.events_by_topic.get(bytes(entry["topics"][0]))
        if name is None:
            raise DecodeError(f"Unknown event topic {entry['topics'][0].hex()}")

        event = getattr(self.contract.events, name)()
        try:
            decoded = event.process_log(entry)
        except (Web3Exception, DecodingError, ValueError) as e:
            raise DecodeError(f"Cannot decode {name} log: {e}") from e

        return {"name": decoded["event"], "args": dict(decoded["args"])}


# ============================================================================
# Function entry point
# ============================================================================

class BaycFunction:
    """Trigger handler: ``function(context, data)`` for every BAYC log."""

    def __init__(self, store, decoder: Optional[EventDecoder] = None,
                 namespace: str = STORAGE_NAMESPACE) -> None:
        self.decoder = decoder or EventDecoder(BAYC_EVENT_ABI)
        self.ledger = TokenLedger(store, namespace)

    def __call__(self, context: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        event = self.decoder.parse(data)
        record = dispatch_event(self.ledger, event)
        if record is None:
            return None
        logger.info("%s %s -> owner %s", event["name"], record.token_id, record.owner)
        return record.to_dict()


def main() -> None:
    """Replay a file of raw logs through the function."""

    if len(sys.argv) < 2:
        print("Usage: python bayc_function.py logs.json [store.json]")
        sys.exit(2)

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    logs_path = sys.argv[1]
    store_path = sys.argv[2] if len(sys.argv) > 2 else STORE_PATH

    with open(logs_path) as fh:
        logs = json.load(fh)

    print(f"Replaying {len(logs)} logs into {store_path} (namespace {STORAGE_NAMESPACE})\n")

    function = BaycFunction(JsonFileStore(store_path))
    handled = 0
    for index, log in enumerate(logs):
        record = function({"index": index}, log)
        if record is None:
            print(f"  [{index}] skipped")
            continue
        handled += 1
        print(f"  [{index}] token {record['tokenId']}: owner={record['owner']} approved={record['approved']}")

    print()
    print(f"✓ Applied {handled} of {len(logs)} events")


if __name__ == "__main__":
    try:
        main()
    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

"""
Example Output:

Replaying 3 logs into bayc-store.json (namespace BAYC-storage)

  [0] token 0x01: owner=0x1234567890123456789012345678901234567890 approved=None
  [1] skipped
  [2] token 0x01: owner=0x1234567890123456789012345678901234567890 approved=0x9876543210987654321098765432109876543210

✓ Applied 2 of 3 events
"""
