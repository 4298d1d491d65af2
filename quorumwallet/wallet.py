"""
QuorumWallet Execution Engine

Dispatches value-bearing calls only when a quorum of owners has signed them.

Per invocation:

    Hash -> Verify -> Distribute-Fee -> Dispatch -> Emit

1. The current nonce is captured, the digest derived and the nonce advanced
   immediately. The advance is never rolled back, even if verification or
   dispatch fails, which closes the window for re-submitting the same
   signatures.
2. Signatures are verified against the digest.
3. Accrued revenue is pulled and split. A revenue-source failure is logged
   and does not block dispatch.
4. The call is dispatched through the host. A failed call raises
   ExecutionFailed; the host returns the value it moved for that call.
5. An ExecuteTransaction record is emitted and the raw result returned.

Actions addressed to the wallet itself carry a GovernanceCall and are
applied in-process; owner-set changes have no other entry point.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .actions import GovernanceCall, GovernanceOp, ProposedAction
from .config import CHAIN_ID, FEE_PERCENTAGE, TRANSFER_GAS
from .errors import (
    AlreadyInitialized,
    ExecutionFailed,
    RevenueSourceError,
    TransferFailed,
    Unauthorized,
    WalletError,
)
from .events import Deposit, EventLog, ExecuteTransaction, InMemoryEventLog, OwnerChanged
from .fees import Distribution, FeeLedger
from .hashing import digest_hex, transaction_hash
from .host import Host, RevenueSource
from .identity import to_hex
from .logging_config import audit_log
from .owners import OwnerRegistry
from .settlement import Settlement, WithdrawalReceipt
from .signing import Ed25519Recoverer, SignatureRecoverer
from .verifier import SignatureVerifier

logger = logging.getLogger(__name__)


class MultiSigWallet:
    """
    One wallet instance.

    Usage:
        wallet = factory.create("treasury", [alice, bob, carol], threshold=2)

        digest = wallet.get_transaction_hash(wallet.nonce, dest, 100, b"")
        sigs = sort_signatures(digest, [alice_key.sign(digest), bob_key.sign(digest)])
        result = wallet.execute_transaction(dest, 100, b"", sigs, caller=relayer)
    """

    def __init__(
        self,
        address: bytes,
        host: Host,
        factory,
        name: str = "",
        chain_id: int = CHAIN_ID,
        recoverer: Optional[SignatureRecoverer] = None,
        revenue_source: Optional[RevenueSource] = None,
        revenue_handle: Optional[bytes] = None,
        fee_percentage: int = FEE_PERCENTAGE,
        transfer_gas: int = TRANSFER_GAS,
        event_log: Optional[EventLog] = None
    ):
        """
        Args:
            address: this wallet's identity
            host: execution environment holding balances
            factory: collaborator with an ``address`` and
                ``notify_owners_changed(wallet, owners, threshold)``
            revenue_source: metering service; None disables fee distribution
            revenue_handle: this wallet's handle at the revenue source
        """
        self.address = address
        self.host = host
        self.factory = factory
        self.name = name
        self.chain_id = chain_id
        self.events = event_log or InMemoryEventLog()

        self._registry = OwnerRegistry()
        self._verifier = SignatureVerifier(self._registry, recoverer or Ed25519Recoverer())
        self._ledger = FeeLedger(
            address,
            revenue_source=revenue_source,
            revenue_handle=revenue_handle,
            fee_percentage=fee_percentage
        )
        self._settlement = Settlement(address, host, self._registry, self._ledger, transfer_gas)
        self._nonce = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self, owners: Sequence[bytes], threshold: int, caller: bytes):
        """One-time owner setup, accepted only from the factory."""
        with self._lock:
            if caller != self.factory.address:
                raise Unauthorized("Only the factory may initialize", caller=to_hex(caller))
            if self._registry.initialized:
                raise AlreadyInitialized("Wallet already initialized")
            self._registry.initialize(owners, threshold, reserved=(self.address,))
            logger.info(
                "wallet %s initialized with %d owners, threshold %d",
                to_hex(self.address), len(owners), threshold
            )

    def _require_initialized(self):
        if not self._registry.initialized:
            raise Unauthorized("Wallet not initialized")

    # ------------------------------------------------------------------
    # Query surface
    # ------------------------------------------------------------------

    @property
    def owners(self) -> List[bytes]:
        return self._registry.owners

    @property
    def threshold(self) -> int:
        return self._registry.threshold

    @property
    def owner_count(self) -> int:
        return self._registry.owner_count

    @property
    def nonce(self) -> int:
        return self._nonce

    @property
    def balance(self) -> int:
        return self.host.balance_of(self.address)

    @property
    def fee_percentage(self) -> int:
        return self._ledger.fee_percentage

    @property
    def undistributed(self) -> int:
        return self._ledger.undistributed

    def is_owner(self, identity: bytes) -> bool:
        return self._registry.is_owner(identity)

    def allocation(self, identity: bytes) -> int:
        return self._ledger.allocation(identity)

    def info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": to_hex(self.address),
            "owners": [to_hex(o) for o in self.owners],
            "threshold": self.threshold,
            "nonce": self.nonce,
            "balance": self.balance,
        }

    def get_transaction_hash(
        self,
        nonce: int,
        destination: bytes,
        value: int,
        payload: bytes
    ) -> bytes:
        return transaction_hash(self.chain_id, self.address, nonce, destination, value, payload)

    def action_hash(self, action: ProposedAction, nonce: Optional[int] = None) -> bytes:
        """Digest of an action at the given nonce (default: the next one)."""
        if nonce is None:
            nonce = self._nonce
        return self.get_transaction_hash(nonce, action.destination, action.value, action.payload)

    # ------------------------------------------------------------------
    # Deposits
    # ------------------------------------------------------------------

    def receive(self, sender: bytes, amount: int) -> int:
        """
        Accept funds from sender.

        Returns:
            The wallet's new balance
        """
        with self._lock:
            if not self.host.transfer(sender, self.address, amount):
                raise TransferFailed(
                    f"Deposit of {amount} from {to_hex(sender)} refused",
                    sender=to_hex(sender)
                )
            new_balance = self.balance
            self.events.append(Deposit(sender=sender, amount=amount, new_balance=new_balance))
            return new_balance

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_transaction(
        self,
        destination: bytes,
        value: int,
        payload: bytes,
        signatures: Sequence[bytes],
        caller: bytes
    ) -> bytes:
        """
        Run one action through the full pipeline.

        Returns:
            Raw result bytes from the destination

        Raises:
            InvalidSigner, DuplicateOrUnorderedSignatures,
            InsufficientValidSignatures: verification failed
            ExecutionFailed: the dispatched call failed
        """
        action = ProposedAction(destination=destination, value=value, payload=payload)
        with self._lock:
            self._require_initialized()

            nonce = self._nonce
            digest = self.get_transaction_hash(nonce, destination, value, payload)
            self._nonce = nonce + 1

            audit_log.execution_request(
                wallet=to_hex(self.address),
                nonce=nonce,
                digest=digest_hex(digest),
                destination=to_hex(destination),
                value=value
            )

            try:
                verification = self._verifier.verify(digest, signatures)
            except WalletError as e:
                audit_log.signature_rejected(
                    wallet=to_hex(self.address),
                    nonce=nonce,
                    kind=e.kind.value,
                    reason=str(e)
                )
                raise

            self._distribute_fees(verification.approvers, caller)

            try:
                result = self._dispatch(action)
            except ExecutionFailed as e:
                audit_log.execution_failed(
                    wallet=to_hex(self.address),
                    nonce=nonce,
                    digest=digest_hex(digest),
                    reason=str(e)
                )
                raise

            self.events.append(ExecuteTransaction(
                initiator=caller,
                destination=destination,
                value=value,
                payload=bytes(payload),
                nonce=nonce,
                digest=digest,
                result=result
            ))
            audit_log.execution_complete(
                wallet=to_hex(self.address),
                nonce=nonce,
                digest=digest_hex(digest),
                result_size=len(result)
            )
            return result

    def execute(self, action: ProposedAction, signatures: Sequence[bytes], caller: bytes) -> bytes:
        return self.execute_transaction(
            action.destination, action.value, action.payload, signatures, caller
        )

    def execute_batch(
        self,
        items: Sequence[Tuple[ProposedAction, Sequence[bytes]]],
        caller: bytes
    ) -> List[bytes]:
        """
        Execute actions in order, each signed for its own nonce.

        There is no atomicity across items: the first failure propagates,
        items before it stay committed and items after it never run.
        """
        results = []
        with self._lock:
            for action, signatures in items:
                results.append(self.execute(action, signatures, caller))
        return results

    def _distribute_fees(self, approvers: List[bytes], executor: bytes) -> Optional[Distribution]:
        # Any metering failure = skip the fee, never block dispatch
        try:
            return self._ledger.distribute(approvers, executor)
        except RevenueSourceError as e:
            audit_log.security_event(
                "fee_distribution_skipped",
                severity="medium",
                wallet=to_hex(self.address),
                reason=str(e)
            )
        except Exception as e:
            audit_log.security_event(
                "fee_distribution_skipped",
                severity="high",
                wallet=to_hex(self.address),
                error_type=type(e).__name__,
                reason=str(e)
            )
        return None

    def _dispatch(self, action: ProposedAction) -> bytes:
        if action.destination == self.address:
            return self._apply_governance(action)

        outcome = self.host.call(self.address, action.destination, action.value, action.payload)
        if not outcome.success:
            raise ExecutionFailed(
                f"Call to {to_hex(action.destination)} failed",
                result=outcome.data,
                destination=to_hex(action.destination)
            )
        return outcome.data

    # ------------------------------------------------------------------
    # Governance (reachable only through execution)
    # ------------------------------------------------------------------

    def _apply_governance(self, action: ProposedAction) -> bytes:
        if action.value:
            raise ExecutionFailed("Governance actions cannot carry value")
        try:
            call = GovernanceCall.decode(bytes(action.payload))
        except ValueError as e:
            raise ExecutionFailed(f"Unrecognized self-call: {e}")

        if call.op == GovernanceOp.ADD_OWNER:
            self.add_owner(call.owner, call.threshold, caller=self.address)
        elif call.op == GovernanceOp.REMOVE_OWNER:
            self.remove_owner(call.owner, call.threshold, caller=self.address)
        else:
            self.change_threshold(call.threshold, caller=self.address)
        return b""

    def _require_self(self, caller: bytes):
        if caller != self.address:
            raise Unauthorized(
                "Owner-set changes must be executed by the wallet itself",
                caller=to_hex(caller)
            )

    def add_owner(self, identity: bytes, new_threshold: int, caller: bytes):
        with self._lock:
            self._require_self(caller)
            self._registry.add_owner(identity, new_threshold, reserved=(self.address,))
            self._owners_changed(identity, added=True)

    def remove_owner(self, identity: bytes, new_threshold: int, caller: bytes):
        with self._lock:
            self._require_self(caller)
            self._registry.remove_owner(identity, new_threshold)
            self._owners_changed(identity, added=False)

    def change_threshold(self, new_threshold: int, caller: bytes):
        with self._lock:
            self._require_self(caller)
            self._registry.change_threshold(new_threshold)
            self.factory.notify_owners_changed(self.address, self.owners, self.threshold)

    def _owners_changed(self, identity: bytes, added: bool):
        self.events.append(OwnerChanged(identity=identity, added=added))
        audit_log.owner_changed(
            wallet=to_hex(self.address),
            identity=to_hex(identity),
            added=added,
            threshold=self.threshold
        )
        self.factory.notify_owners_changed(self.address, self.owners, self.threshold)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def withdraw(self) -> WithdrawalReceipt:
        """Permissionless payout of allocations and residual funds."""
        with self._lock:
            self._require_initialized()
            return self._settlement.withdraw()
