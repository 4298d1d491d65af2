"""
QuorumWallet Fee Distribution Ledger

Once per execution, before dispatch, revenue accrued for the wallet is
pulled from the revenue source into the wallet's custody and split:

- fee_percentage of it to the first approver
- the same fee_percentage to the executor (the caller running the action)
- the rest evenly across the approvers after the first

Shares are credited to the allocation ledger and paid out later by
withdrawal settlement. Integer-division remainders stay in the wallet's
balance and are tracked in ``undistributed`` until the next withdrawal
splits them across owners.

A single approver leaves no one to share the rest with; in that case the
rest is credited to the sole approver.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .config import FEE_PERCENTAGE, validate_fee_percentage
from .host import RevenueSource
from .identity import to_hex
from .logging_config import audit_log

logger = logging.getLogger(__name__)


@dataclass
class Distribution:
    """Result of splitting one revenue pull."""
    revenue: int
    credits: Dict[bytes, int] = field(default_factory=dict)
    undistributed: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "revenue": self.revenue,
            "credits": {to_hex(k): v for k, v in self.credits.items()},
            "undistributed": self.undistributed,
        }


def split_revenue(
    revenue: int,
    approvers: Sequence[bytes],
    executor: bytes,
    fee_percentage: int
) -> Distribution:
    """
    Pure split of a revenue amount. Never divides by zero.

    The credited amounts plus ``undistributed`` always sum to ``revenue``.
    """
    dist = Distribution(revenue=revenue)
    if revenue <= 0:
        return dist

    def credit(identity: bytes, amount: int):
        if amount:
            dist.credits[identity] = dist.credits.get(identity, 0) + amount

    fee = revenue * fee_percentage // 100
    credit(executor, fee)

    if not approvers:
        # Nobody approved (cannot happen past verification): keep the rest.
        dist.undistributed = revenue - fee
        return dist

    first = approvers[0]
    credit(first, fee)
    remaining = revenue - 2 * fee

    rest = list(approvers[1:])
    if not rest:
        credit(first, remaining)
        return dist

    share = remaining // len(rest)
    for approver in rest:
        credit(approver, share)
    dist.undistributed = remaining - share * len(rest)
    return dist


class FeeLedger:
    """
    Per-wallet allocation ledger plus the revenue-source binding.
    """

    def __init__(
        self,
        wallet: bytes,
        revenue_source: Optional[RevenueSource] = None,
        revenue_handle: Optional[bytes] = None,
        fee_percentage: int = FEE_PERCENTAGE
    ):
        self.wallet = wallet
        self.revenue_source = revenue_source
        self.revenue_handle = revenue_handle if revenue_handle is not None else wallet
        self.fee_percentage = validate_fee_percentage(fee_percentage)
        self.undistributed = 0
        self._allocations: Dict[bytes, int] = {}
        self._lock = threading.RLock()

    def allocation(self, identity: bytes) -> int:
        with self._lock:
            return self._allocations.get(identity, 0)

    def allocations(self) -> Dict[bytes, int]:
        """Nonzero allocations in first-credit order."""
        with self._lock:
            return {k: v for k, v in self._allocations.items() if v}

    def total_allocated(self) -> int:
        with self._lock:
            return sum(self._allocations.values())

    def credit(self, identity: bytes, amount: int):
        if amount < 0:
            raise ValueError("credit amount must be unsigned")
        with self._lock:
            self._allocations[identity] = self._allocations.get(identity, 0) + amount

    def clear(self, identity: bytes) -> int:
        """Zero an allocation, returning what it held."""
        with self._lock:
            amount = self._allocations.get(identity, 0)
            if amount:
                self._allocations[identity] = 0
            return amount

    def restore(self, snapshot: Dict[bytes, int], undistributed: int):
        with self._lock:
            self._allocations = dict(snapshot)
            self.undistributed = undistributed

    def snapshot(self) -> Dict[bytes, int]:
        with self._lock:
            return dict(self._allocations)

    def distribute(self, approvers: List[bytes], executor: bytes) -> Optional[Distribution]:
        """
        Pull accrued revenue and credit the shares.

        Returns:
            The Distribution applied, or None when nothing had accrued

        Raises:
            RevenueSourceError: the revenue source failed; nothing is credited
        """
        if self.revenue_source is None:
            return None

        accrued = self.revenue_source.query_balance(self.revenue_handle)
        if accrued <= 0:
            logger.debug("no revenue accrued for %s", to_hex(self.wallet))
            return None

        received = self.revenue_source.withdraw(self.revenue_handle, self.wallet, accrued)
        dist = split_revenue(received, approvers, executor, self.fee_percentage)

        with self._lock:
            for identity, amount in dist.credits.items():
                self.credit(identity, amount)
            self.undistributed += dist.undistributed

        audit_log.fee_distributed(wallet=to_hex(self.wallet), **dist.to_dict())
        return dist
