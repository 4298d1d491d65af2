"""
QuorumWallet Observable Events

Append-only records of what a wallet did. Subscribers read them from an
EventLog; the wallet never rewrites or removes an entry.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .hashing import digest_hex
from .identity import to_hex

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    DEPOSIT = "Deposit"
    EXECUTE_TRANSACTION = "ExecuteTransaction"
    OWNER_CHANGED = "OwnerChanged"


def _timestamp() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Deposit:
    sender: bytes
    amount: int
    new_balance: int
    timestamp: datetime = field(default_factory=_timestamp, compare=False)

    event_type = EventType.DEPOSIT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type.value,
            "sender": to_hex(self.sender),
            "amount": self.amount,
            "new_balance": self.new_balance,
        }


@dataclass(frozen=True)
class ExecuteTransaction:
    """Execution record emitted after a successful dispatch."""
    initiator: bytes
    destination: bytes
    value: int
    payload: bytes
    nonce: int
    digest: bytes
    result: bytes
    timestamp: datetime = field(default_factory=_timestamp, compare=False)

    event_type = EventType.EXECUTE_TRANSACTION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type.value,
            "initiator": to_hex(self.initiator),
            "destination": to_hex(self.destination),
            "value": self.value,
            "payload": "0x" + self.payload.hex(),
            "nonce": self.nonce,
            "digest": digest_hex(self.digest),
            "result": "0x" + self.result.hex(),
        }


@dataclass(frozen=True)
class OwnerChanged:
    identity: bytes
    added: bool
    timestamp: datetime = field(default_factory=_timestamp, compare=False)

    event_type = EventType.OWNER_CHANGED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": self.event_type.value,
            "identity": to_hex(self.identity),
            "added": self.added,
        }


class EventLog(ABC):
    """
    Abstract interface for the wallet's event stream.
    """

    @abstractmethod
    def append(self, event):
        pass

    @abstractmethod
    def query(self, event_type: Optional[EventType] = None) -> List[Any]:
        pass

    @abstractmethod
    def subscribe(self, callback: Callable[[Any], None]):
        pass


class InMemoryEventLog(EventLog):
    """
    In-memory event log.

    Subscribers are invoked synchronously on append, in subscription order.
    A subscriber that raises is logged and skipped; the event stays recorded
    and the remaining subscribers still run.
    """

    def __init__(self):
        self._events: List[Any] = []
        self._subscribers: List[Callable[[Any], None]] = []
        self._lock = threading.Lock()

    def append(self, event):
        with self._lock:
            self._events.append(event)
            subscribers = self._subscribers[:]
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("event subscriber failed on %s", type(event).__name__)

    def query(self, event_type: Optional[EventType] = None) -> List[Any]:
        with self._lock:
            events = self._events[:]
        if event_type:
            events = [e for e in events if e.event_type == event_type]
        return events

    def subscribe(self, callback: Callable[[Any], None]):
        with self._lock:
            self._subscribers.append(callback)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
