"""
Transaction ids shared by the intake handlers and the webhook.

Gateway:   DON_<entity>_<epoch ms>_<HEX6>
Simulated: DON_<epoch ms>_<HEX6>

The prefix alone decides which table the reconciler touches.
"""
import time
import secrets
from typing import Optional

DONATION = 'DON'
SUBSCRIPTION = 'SUB'
KINDS = (DONATION, SUBSCRIPTION)

ENTITY_FRAGMENT_LENGTH = 8


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _random_suffix() -> str:
    return secrets.token_hex(3).upper()


def generate_txn_id(kind: str, entity_id=None, simulated: bool = False) -> str:
    """Build a new transaction id for a donation or subscription payment"""
    if kind not in KINDS:
        raise ValueError(f"Unknown transaction kind: {kind!r}")

    if simulated:
        return f"{kind}_{_timestamp_ms()}_{_random_suffix()}"

    if entity_id is None:
        raise ValueError("entity_id is required for gateway transaction ids")

    fragment = str(entity_id)[:ENTITY_FRAGMENT_LENGTH]
    return f"{kind}_{fragment}_{_timestamp_ms()}_{_random_suffix()}"


def kind_of(txn_id: Optional[str]) -> Optional[str]:
    """Return DON / SUB from the prefix, or None for anything else"""
    if not txn_id:
        return None
    for kind in KINDS:
        if txn_id.startswith(f"{kind}_"):
            return kind
    return None
