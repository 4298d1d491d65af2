"""
Withdrawal Settlement Test Suite
"""

import unittest

from quorumwallet import (
    InMemoryHost,
    InMemoryRevenueSource,
    InMemoryWalletFactory,
    NoFeeToWithdraw,
    PayoutKind,
    ProposedAction,
    TransferFailed,
    generate_key_pair,
)


class FreezableHost(InMemoryHost):
    """Host whose listed accounts cannot send."""

    def __init__(self):
        super().__init__()
        self.frozen = set()

    def transfer(self, sender, recipient, amount, gas_limit=None):
        if sender in self.frozen:
            return False
        return super().transfer(sender, recipient, amount, gas_limit=gas_limit)


class TestWithdraw(unittest.TestCase):

    def setUp(self):
        self.host = FreezableHost()
        self.source = InMemoryRevenueSource(self.host, bytes([0x5E]) * 32)
        self.factory = InMemoryWalletFactory(self.host, revenue_source=self.source, fee_percentage=20)
        self.a, self.b, self.c = sorted(
            (generate_key_pair(k) for k in ("a", "b", "c")),
            key=lambda k: k.identity
        )
        self.owners = [self.a.identity, self.b.identity, self.c.identity]
        self.executor = generate_key_pair("executor").identity
        self.wallet = self.factory.create("payroll", self.owners, 2)
        self.dest = bytes([0xD0]) * 32
        self.funder = bytes([0xF0]) * 32

    def deposit(self, amount):
        self.host.mint(self.funder, amount)
        self.wallet.receive(self.funder, amount)

    def execute(self, value=0):
        action = ProposedAction(self.dest, value, b"")
        digest = self.wallet.action_hash(action)
        keys = (self.a, self.b, self.c)
        self.wallet.execute(action, [k.sign(digest) for k in keys], caller=self.executor)

    def test_zero_balance_fails(self):
        with self.assertRaises(NoFeeToWithdraw):
            self.wallet.withdraw()

    def test_allocations_paid_and_zeroed(self):
        self.source.accrue(self.wallet.address, 100)
        self.execute()

        receipt = self.wallet.withdraw()

        self.assertEqual(self.host.balance_of(self.a.identity), 20)
        self.assertEqual(self.host.balance_of(self.b.identity), 30)
        self.assertEqual(self.host.balance_of(self.c.identity), 30)
        self.assertEqual(self.host.balance_of(self.executor), 20)
        for identity in self.owners + [self.executor]:
            self.assertEqual(self.wallet.allocation(identity), 0)
        self.assertEqual(receipt.total, 100)
        self.assertEqual(self.wallet.balance, 0)

        with self.assertRaises(NoFeeToWithdraw):
            self.wallet.withdraw()

    def test_owner_allocations_paid_first(self):
        self.source.accrue(self.wallet.address, 100)
        self.execute()

        receipt = self.wallet.withdraw()
        recipients = [p.recipient for p in receipt.payouts]

        self.assertEqual(recipients, self.owners + [self.executor])

    def test_residual_split_across_owners(self):
        self.deposit(10)
        self.source.accrue(self.wallet.address, 100)
        self.execute()

        receipt = self.wallet.withdraw()

        residual = [p for p in receipt.payouts if p.kind == PayoutKind.RESIDUAL]
        self.assertEqual([p.amount for p in residual], [3, 3, 3])
        self.assertEqual(receipt.paid_to(self.a.identity), 23)
        self.assertEqual(receipt.remaining_balance, 1)
        self.assertEqual(self.wallet.balance, 1)

    def test_funds_outside_fee_mechanism_swept(self):
        self.deposit(300)

        receipt = self.wallet.withdraw()

        for owner in self.owners:
            self.assertEqual(self.host.balance_of(owner), 100)
        self.assertEqual(receipt.remaining_balance, 0)

    def test_division_remainder_reconciled(self):
        self.source.accrue(self.wallet.address, 101)
        self.execute()
        self.assertEqual(self.wallet.undistributed, 1)
        self.deposit(2)

        receipt = self.wallet.withdraw()

        self.assertEqual(receipt.paid_to(self.a.identity), 21)
        self.assertEqual(receipt.paid_to(self.b.identity), 31)
        self.assertEqual(self.wallet.balance, 0)
        self.assertEqual(self.wallet.undistributed, 0)

    def test_refused_transfer_reverts_everything(self):
        self.deposit(30)
        self.source.accrue(self.wallet.address, 100)
        self.execute()
        self.host.register(self.c.identity, receive_gas=50_000)

        with self.assertRaises(TransferFailed):
            self.wallet.withdraw()

        self.assertEqual(self.wallet.balance, 130)
        self.assertEqual(self.host.balance_of(self.a.identity), 0)
        self.assertEqual(self.host.balance_of(self.b.identity), 0)
        self.assertEqual(self.wallet.allocation(self.a.identity), 20)
        self.assertEqual(self.wallet.allocation(self.c.identity), 30)

    def test_unreturned_payout_not_paid_twice(self):
        """A recipient who keeps a payout during a revert is settled, not re-credited."""
        self.deposit(30)
        self.source.accrue(self.wallet.address, 100)
        self.execute()
        self.host.register(self.c.identity, receive_gas=50_000)
        self.host.frozen.add(self.a.identity)

        with self.assertLogs("quorumwallet.audit", level="CRITICAL"):
            with self.assertRaises(TransferFailed):
                self.wallet.withdraw()

        self.assertEqual(self.host.balance_of(self.a.identity), 20)
        self.assertEqual(self.wallet.allocation(self.a.identity), 0)
        self.assertEqual(self.host.balance_of(self.b.identity), 0)
        self.assertEqual(self.wallet.allocation(self.b.identity), 30)
        self.assertEqual(self.wallet.balance, 110)

        self.host.frozen.clear()
        self.host.register(self.c.identity)
        self.wallet.withdraw()

        self.assertEqual(self.host.balance_of(self.a.identity), 30)
        self.assertEqual(self.host.balance_of(self.b.identity), 40)
        self.assertEqual(self.host.balance_of(self.c.identity), 40)
        self.assertEqual(self.host.balance_of(self.executor), 20)
        self.assertEqual(self.wallet.balance, 0)

    def test_recipient_within_gas_stipend_paid(self):
        self.deposit(30)
        self.host.register(self.b.identity, receive_gas=2300)

        self.wallet.withdraw()
        self.assertEqual(self.host.balance_of(self.b.identity), 10)

    def test_allocations_above_balance_rejected(self):
        self.deposit(50)
        self.source.accrue(self.wallet.address, 100)
        self.execute(value=100)

        with self.assertRaises(TransferFailed):
            self.wallet.withdraw()
        self.assertEqual(self.wallet.balance, 50)
        self.assertEqual(self.wallet.allocation(self.b.identity), 30)

    def test_anyone_may_withdraw(self):
        """withdraw takes no caller: payouts go to owners, never to the trigger."""
        self.deposit(3)
        receipt = self.wallet.withdraw()
        self.assertEqual(sorted(p.recipient for p in receipt.payouts), sorted(self.owners))


if __name__ == "__main__":
    unittest.main()
