"""
QuorumWallet Host Environment and Revenue Source

The wallet never holds value itself; the host keeps native balances for
every identity, moves value between them and dispatches calls to
destinations. The revenue source is the external metering service that
accrues funds for a wallet instance and releases them on request.

Both are external collaborators known only by their interface. The in-memory
implementations here are what tests and local tooling run against.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import RevenueSourceError
from .identity import to_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallContext:
    """What a destination handler sees when it is dispatched to."""
    sender: bytes
    destination: bytes
    value: int
    payload: bytes


@dataclass(frozen=True)
class CallResult:
    success: bool
    data: bytes = b""


CallHandler = Callable[[CallContext], Optional[bytes]]


class Host(ABC):
    """
    Abstract interface for the execution environment.

    Implementations must be:
    - Conserving (value is moved, never created, by transfer and call)
    - Atomic per operation (a failed transfer or call moves nothing)
    """

    @abstractmethod
    def balance_of(self, identity: bytes) -> int:
        pass

    @abstractmethod
    def transfer(
        self,
        sender: bytes,
        recipient: bytes,
        amount: int,
        gas_limit: Optional[int] = None
    ) -> bool:
        """
        Move value directly.

        Returns:
            True on success, False if the transfer was refused
        """
        pass

    @abstractmethod
    def call(
        self,
        sender: bytes,
        destination: bytes,
        value: int,
        payload: bytes
    ) -> CallResult:
        """Move value to destination and run its handler."""
        pass


@dataclass
class _Account:
    handler: Optional[CallHandler] = None
    receive_gas: int = 0
    accepts_transfers: bool = True


class InMemoryHost(Host):
    """
    In-memory host for development/testing.

    Destinations can register a handler that runs on call, and declare how
    much gas receiving a plain transfer costs them. A handler that raises
    makes the call fail; the value moved for that call is returned to the
    sender.
    """

    def __init__(self):
        self._balances: Dict[bytes, int] = {}
        self._accounts: Dict[bytes, _Account] = {}
        self._lock = threading.RLock()

    def register(
        self,
        identity: bytes,
        handler: Optional[CallHandler] = None,
        receive_gas: int = 0,
        accepts_transfers: bool = True
    ):
        with self._lock:
            self._accounts[identity] = _Account(
                handler=handler,
                receive_gas=receive_gas,
                accepts_transfers=accepts_transfers
            )

    def mint(self, identity: bytes, amount: int):
        """Credit new value to an identity (genesis/test funding)."""
        if amount < 0:
            raise ValueError("amount must be unsigned")
        with self._lock:
            self._balances[identity] = self._balances.get(identity, 0) + amount

    def balance_of(self, identity: bytes) -> int:
        with self._lock:
            return self._balances.get(identity, 0)

    def _move(self, sender: bytes, recipient: bytes, amount: int) -> bool:
        if amount < 0 or self._balances.get(sender, 0) < amount:
            return False
        if amount:
            self._balances[sender] -= amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount
        return True

    def transfer(
        self,
        sender: bytes,
        recipient: bytes,
        amount: int,
        gas_limit: Optional[int] = None
    ) -> bool:
        with self._lock:
            account = self._accounts.get(recipient)
            if account is not None:
                if not account.accepts_transfers:
                    logger.debug("transfer refused by %s", to_hex(recipient))
                    return False
                if gas_limit is not None and account.receive_gas > gas_limit:
                    logger.debug(
                        "transfer to %s needs %d gas, limit %d",
                        to_hex(recipient), account.receive_gas, gas_limit
                    )
                    return False
            return self._move(sender, recipient, amount)

    def call(
        self,
        sender: bytes,
        destination: bytes,
        value: int,
        payload: bytes
    ) -> CallResult:
        with self._lock:
            if not self._move(sender, destination, value):
                return CallResult(False, b"insufficient balance")
            account = self._accounts.get(destination)

        if account is None or account.handler is None:
            return CallResult(True, b"")

        ctx = CallContext(sender=sender, destination=destination, value=value, payload=payload)
        try:
            data = account.handler(ctx)
        except Exception as e:
            with self._lock:
                self._move(destination, sender, value)
            logger.debug("call to %s failed: %s", to_hex(destination), e)
            return CallResult(False, str(e).encode('utf-8'))
        return CallResult(True, data or b"")


class RevenueSource(ABC):
    """
    Abstract interface for the external revenue-metering service.

    Implementations should report failures as RevenueSourceError. The wallet
    treats any exception from a revenue source as a skipped fee distribution.
    """

    @abstractmethod
    def query_balance(self, handle: bytes) -> int:
        """
        Revenue currently accrued for a wallet instance.

        Raises:
            RevenueSourceError: the service could not be queried
        """
        pass

    @abstractmethod
    def withdraw(self, handle: bytes, recipient: bytes, amount: int) -> int:
        """
        Release accrued revenue to recipient.

        Returns:
            The amount actually released

        Raises:
            RevenueSourceError: nothing was released
        """
        pass


class InMemoryRevenueSource(RevenueSource):
    """
    In-memory revenue source holding accrued funds in its own host account.
    """

    def __init__(self, host: InMemoryHost, address: bytes):
        self.host = host
        self.address = address
        self._accrued: Dict[bytes, int] = {}
        self._lock = threading.Lock()

    def accrue(self, handle: bytes, amount: int):
        """Record revenue for a wallet and fund it on the host."""
        self.host.mint(self.address, amount)
        with self._lock:
            self._accrued[handle] = self._accrued.get(handle, 0) + amount

    def query_balance(self, handle: bytes) -> int:
        with self._lock:
            return self._accrued.get(handle, 0)

    def withdraw(self, handle: bytes, recipient: bytes, amount: int) -> int:
        with self._lock:
            available = self._accrued.get(handle, 0)
            if amount > available:
                raise RevenueSourceError(
                    f"Requested {amount}, only {available} accrued",
                    handle=to_hex(handle)
                )
            if not self.host.transfer(self.address, recipient, amount):
                raise RevenueSourceError("Revenue transfer refused", handle=to_hex(handle))
            self._accrued[handle] = available - amount
        return amount
