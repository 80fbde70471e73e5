"""
NFT Ledger - Python

Keeps one ownership/approval record per ERC-721 token, driven by decoded
Transfer and Approval events.

Records live in a namespaced key-value store under "token-<hex id>":

    {"owner": ..., "previousOwner": ..., "approved": ..., "tokenId": "0x01"}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union
import logging
import re

logger = logging.getLogger(__name__)

TOKEN_KEY_PREFIX = "token-"
ZERO_ADDRESS = "0x" + "0" * 40
MAX_UINT256 = 2**256 - 1

TokenId = Union[int, str]
TOKEN_ID_PATTERN = re.compile(r"0[xX][0-9a-fA-F]+|[0-9]+")


class LedgerError(Exception):
    """Base class for ledger function failures."""


class DecodeError(LedgerError):
    """Raw log data does not match the known event set."""


class StoreError(LedgerError):
    """A load or store against the key-value backend failed."""


# ============================================================================
# Token record
# ============================================================================

def to_token_int(token_id: TokenId) -> int:
    if isinstance(token_id, bool):
        raise ValueError(f"Invalid token id: {token_id!r}")
    if isinstance(token_id, str):
        if not TOKEN_ID_PATTERN.fullmatch(token_id):
            raise ValueError(f"Invalid token id: {token_id!r}")
        token_id = int(token_id, 16) if token_id.lower().startswith("0x") else int(token_id)
    if not isinstance(token_id, int):
        raise ValueError(f"Invalid token id: {token_id!r}")
    if token_id < 0 or token_id > MAX_UINT256:
        raise ValueError(f"Token id out of uint256 range: {token_id}")
    return token_id


def token_hex(token_id: TokenId) -> str:
    """Render a token id the way BigNumber.toHexString does: even digit count."""
    digits = format(to_token_int(token_id), "x")
    if len(digits) % 2:
        digits = "0" + digits
    return "0x" + digits


def token_key(token_id: TokenId) -> str:
    return TOKEN_KEY_PREFIX + token_hex(token_id)


@dataclass
class TokenRecord:
    token_id: str
    owner: str
    previous_owner: Optional[str] = None
    approved: Optional[str] = None
    # Fields written by someone else; carried through untouched.
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], token_id: Optional[str] = None) -> "TokenRecord":
        extra = {
            k: v for k, v in data.items()
            if k not in ("tokenId", "owner", "previousOwner", "approved")
        }
        return cls(
            token_id=data.get("tokenId", token_id),
            owner=data["owner"],
            previous_owner=data.get("previousOwner"),
            approved=data.get("approved"),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "owner": self.owner,
            "previousOwner": self.previous_owner,
            "approved": self.approved,
            "tokenId": self.token_id,
        })
        return data


def _require_address(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty address string, got {value!r}")
    return value


# ============================================================================
# Ledger updater
# ============================================================================

class TokenLedger:
    """Read-modify-write updates of token records in a key-value store."""

    def __init__(self, store, namespace: str) -> None:
        self.store = store
        self.namespace = namespace

    def _load(self, key: str) -> Optional[TokenRecord]:
        data = self.store.load(self.namespace, key, None)
        if data is None:
            return None
        if not isinstance(data, dict) or not data.get("owner"):
            raise StoreError(f"Stored record {self.namespace}/{key} has no owner: {data!r}")
        return TokenRecord.from_dict(data, token_id=key[len(TOKEN_KEY_PREFIX):])

    def _save(self, key: str, record: TokenRecord) -> TokenRecord:
        self.store.store(self.namespace, key, record.to_dict())
        return record

    def get(self, token_id: TokenId) -> Optional[TokenRecord]:
        return self._load(token_key(token_id))

    def apply_transfer(self, from_address: str, to_address: str, token_id: TokenId) -> TokenRecord:
        """Record a Transfer: new owner, previous owner, approval cleared."""
        _require_address("from_address", from_address)
        _require_address("to_address", to_address)
        hex_id = token_hex(token_id)
        key = TOKEN_KEY_PREFIX + hex_id

        record = self._load(key)
        if record is None:
            record = TokenRecord(token_id=hex_id, owner=to_address, previous_owner=from_address)
        else:
            record.previous_owner = from_address
            record.owner = to_address
            record.approved = None

        logger.debug("Transfer %s: %s -> %s", hex_id, from_address, to_address)
        return self._save(key, record)

    def apply_approval(self, owner_address: str, approved_address: Optional[str], token_id: TokenId) -> TokenRecord:
        """Record an Approval.

        On an existing record only ``approved`` changes. A token seen for the
        first time takes ``owner_address`` as its owner.
        """
        _require_address("owner_address", owner_address)
        if approved_address is not None:
            _require_address("approved_address", approved_address)
        hex_id = token_hex(token_id)
        key = TOKEN_KEY_PREFIX + hex_id

        record = self._load(key)
        if record is None:
            record = TokenRecord(token_id=hex_id, owner=owner_address, approved=approved_address)
        else:
            record.approved = approved_address

        logger.debug("Approval %s: %s approved %s", hex_id, owner_address, approved_address)
        return self._save(key, record)


# ============================================================================
# Dispatcher
# ============================================================================

def dispatch_event(ledger: TokenLedger, event: Dict[str, Any]) -> Optional[TokenRecord]:
    """Apply a decoded ``{"name", "args"}`` event; unhandled names are ignored."""
    name = event.get("name")
    args = event.get("args", {})

    if name == "Transfer":
        return ledger.apply_transfer(args["from"], args["to"], args["tokenId"])

    if name == "Approval":
        approved = args["approved"]
        if approved is not None and approved.lower() == ZERO_ADDRESS:
            approved = None
        return ledger.apply_approval(args["owner"], approved, args["tokenId"])

    logger.debug("Ignoring %s event", name)
    return None
