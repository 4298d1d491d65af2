"""
QuorumWallet Withdrawal Settlement

Permissionless sweep of the wallet's balance:

1. every owner's nonzero allocation is zeroed and paid, in owner order
2. any other credited identity (an executor who is not an owner) is paid
3. the residual balance (division remainders and funds received outside
   the fee mechanism) is split evenly across the current owners

Transfers carry a capped gas stipend. If any transfer is refused the
whole withdrawal is reverted: completed transfers are returned and the
ledger is restored. An allocation whose payout cannot be returned stays
zeroed, so it is never paid twice.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from .config import TRANSFER_GAS
from .errors import NoFeeToWithdraw, TransferFailed
from .fees import FeeLedger
from .host import Host
from .identity import to_hex
from .logging_config import audit_log
from .owners import OwnerRegistry

logger = logging.getLogger(__name__)


class PayoutKind(str, Enum):
    ALLOCATION = "ALLOCATION"
    RESIDUAL = "RESIDUAL"


@dataclass
class Payout:
    recipient: bytes
    amount: int
    kind: PayoutKind

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipient": to_hex(self.recipient),
            "amount": self.amount,
            "kind": self.kind.value,
        }


@dataclass
class WithdrawalReceipt:
    payouts: List[Payout] = field(default_factory=list)
    remaining_balance: int = 0

    @property
    def total(self) -> int:
        return sum(p.amount for p in self.payouts)

    def paid_to(self, identity: bytes) -> int:
        return sum(p.amount for p in self.payouts if p.recipient == identity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "payouts": [p.to_dict() for p in self.payouts],
            "remaining_balance": self.remaining_balance,
        }


class Settlement:
    """Pays out allocations and residual funds for one wallet."""

    def __init__(
        self,
        wallet: bytes,
        host: Host,
        registry: OwnerRegistry,
        ledger: FeeLedger,
        transfer_gas: int = TRANSFER_GAS
    ):
        self.wallet = wallet
        self.host = host
        self.registry = registry
        self.ledger = ledger
        self.transfer_gas = transfer_gas

    def plan(self) -> List[Payout]:
        """Compute payouts without moving anything."""
        balance = self.host.balance_of(self.wallet)
        owners = self.registry.owners
        allocations = self.ledger.allocations()

        payouts = [
            Payout(owner, allocations[owner], PayoutKind.ALLOCATION)
            for owner in owners if allocations.get(owner)
        ]
        owner_set = set(owners)
        payouts.extend(
            Payout(identity, amount, PayoutKind.ALLOCATION)
            for identity, amount in allocations.items() if identity not in owner_set
        )

        allocated = sum(p.amount for p in payouts)
        if allocated > balance:
            raise TransferFailed(
                f"Allocations of {allocated} exceed balance {balance}",
                allocated=allocated,
                balance=balance
            )

        residual = balance - allocated
        if owners and residual >= len(owners):
            share = residual // len(owners)
            payouts.extend(Payout(owner, share, PayoutKind.RESIDUAL) for owner in owners)
        return payouts

    def withdraw(self) -> WithdrawalReceipt:
        """
        Raises:
            NoFeeToWithdraw: the wallet holds nothing
            TransferFailed: a payout was refused; completed payouts were
                returned and the ledger restored
        """
        if self.host.balance_of(self.wallet) == 0:
            raise NoFeeToWithdraw("Wallet balance is zero")

        payouts = self.plan()
        ledger_snapshot = self.ledger.snapshot()
        undistributed = self.ledger.undistributed

        # Zero every allocation before any value leaves the wallet.
        for payout in payouts:
            if payout.kind == PayoutKind.ALLOCATION:
                self.ledger.clear(payout.recipient)

        completed: List[Payout] = []
        for payout in payouts:
            ok = self.host.transfer(
                self.wallet, payout.recipient, payout.amount, gas_limit=self.transfer_gas
            )
            if not ok:
                unrecovered = self._revert(completed)
                self.ledger.restore(ledger_snapshot, undistributed)
                # Paid and not returned: the entry stays settled
                for kept in unrecovered:
                    if kept.kind == PayoutKind.ALLOCATION:
                        self.ledger.clear(kept.recipient)
                raise TransferFailed(
                    f"Transfer of {payout.amount} to {to_hex(payout.recipient)} failed",
                    recipient=to_hex(payout.recipient),
                    amount=payout.amount
                )
            completed.append(payout)

        remaining = self.host.balance_of(self.wallet)
        self.ledger.undistributed = remaining
        receipt = WithdrawalReceipt(payouts=payouts, remaining_balance=remaining)
        audit_log.withdrawal(
            wallet=to_hex(self.wallet),
            total=receipt.total,
            payouts=[p.to_dict() for p in payouts]
        )
        return receipt

    def _revert(self, completed: List[Payout]) -> List[Payout]:
        """Return completed payouts to the wallet; report those that could not be."""
        unrecovered = []
        for payout in reversed(completed):
            if not self.host.transfer(payout.recipient, self.wallet, payout.amount):
                unrecovered.append(payout)
                audit_log.security_event(
                    "withdrawal_revert_failed",
                    severity="critical",
                    wallet=to_hex(self.wallet),
                    recipient=to_hex(payout.recipient),
                    amount=payout.amount
                )
        return unrecovered
