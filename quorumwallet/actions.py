"""
QuorumWallet Actions

A ProposedAction is what owners sign: a destination, a value and an opaque
payload. It is never stored, only hashed and dispatched.

Owner-set governance is the same kind of action addressed to the wallet
itself, with a GovernanceCall encoded as the payload. The engine routes such
actions in-process instead of dispatching them to the host, so they are
quorum-gated exactly like any outbound call.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .canonicalization import canonicalize
from .identity import from_hex, to_hex


@dataclass(frozen=True)
class ProposedAction:
    destination: bytes
    value: int = 0
    payload: bytes = b""

    def __post_init__(self):
        if not isinstance(self.value, int) or isinstance(self.value, bool) or self.value < 0:
            raise ValueError("value must be an unsigned integer")
        if not isinstance(self.payload, (bytes, bytearray)):
            raise ValueError("payload must be bytes")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destination": to_hex(self.destination),
            "value": self.value,
            "payload": "0x" + bytes(self.payload).hex(),
        }


class GovernanceOp(str, Enum):
    ADD_OWNER = "add_owner"
    REMOVE_OWNER = "remove_owner"
    CHANGE_THRESHOLD = "change_threshold"


@dataclass(frozen=True)
class GovernanceCall:
    """An owner-set change, carried as the payload of a self-addressed action."""
    op: GovernanceOp
    threshold: int
    owner: Optional[bytes] = None

    def encode(self) -> bytes:
        body = {"op": self.op.value, "threshold": self.threshold}
        if self.owner is not None:
            body["owner"] = self.owner
        return canonicalize({"governance": body})

    @classmethod
    def decode(cls, payload: bytes) -> 'GovernanceCall':
        """
        Raises:
            ValueError: payload is not a governance call
        """
        try:
            body = json.loads(payload.decode('utf-8'))["governance"]
        except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as e:
            raise ValueError(f"Not a governance payload: {e}")
        if not isinstance(body, dict):
            raise ValueError("Governance body must be an object")
        if "op" not in body or "threshold" not in body:
            raise ValueError("Governance body requires op and threshold")

        op = GovernanceOp(body["op"])
        threshold = body["threshold"]
        owner = body.get("owner")
        if owner is not None:
            if not isinstance(owner, str):
                raise ValueError("Governance owner must be a hex string")
            owner = from_hex(owner)
        if not isinstance(threshold, int) or isinstance(threshold, bool):
            raise ValueError("Governance threshold must be an integer")
        if op != GovernanceOp.CHANGE_THRESHOLD and owner is None:
            raise ValueError(f"{op.value} requires an owner")
        return cls(op=op, threshold=threshold, owner=owner)

    def to_action(self, wallet: bytes) -> ProposedAction:
        return ProposedAction(destination=wallet, value=0, payload=self.encode())


def add_owner_action(wallet: bytes, owner: bytes, new_threshold: int) -> ProposedAction:
    return GovernanceCall(GovernanceOp.ADD_OWNER, new_threshold, owner).to_action(wallet)


def remove_owner_action(wallet: bytes, owner: bytes, new_threshold: int) -> ProposedAction:
    return GovernanceCall(GovernanceOp.REMOVE_OWNER, new_threshold, owner).to_action(wallet)


def change_threshold_action(wallet: bytes, new_threshold: int) -> ProposedAction:
    return GovernanceCall(GovernanceOp.CHANGE_THRESHOLD, new_threshold).to_action(wallet)
