"""
QuorumWallet Factory / Registry

Creates wallet instances, initializes them exactly once and indexes them by
owner. Wallets call back ``notify_owners_changed`` after every owner-set
change so the index stays current.
"""

import hashlib
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Set

from .config import CHAIN_ID, FEE_PERCENTAGE, TRANSFER_GAS
from .host import Host, RevenueSource
from .identity import derive_wallet_address, to_hex
from .signing import SignatureRecoverer
from .wallet import MultiSigWallet

logger = logging.getLogger(__name__)

DEFAULT_FACTORY_ADDRESS = hashlib.sha256(b"quorumwallet:factory").digest()


class WalletFactory(ABC):
    """
    Abstract interface for the factory collaborator.
    """

    address: bytes

    @abstractmethod
    def notify_owners_changed(self, wallet: bytes, owners: Sequence[bytes], threshold: int):
        pass


class InMemoryWalletFactory(WalletFactory):
    """
    In-memory factory for development/testing.

    Every wallet it creates shares the factory's host, revenue source and
    chain id.
    """

    def __init__(
        self,
        host: Host,
        address: bytes = DEFAULT_FACTORY_ADDRESS,
        revenue_source: Optional[RevenueSource] = None,
        chain_id: int = CHAIN_ID,
        fee_percentage: int = FEE_PERCENTAGE,
        transfer_gas: int = TRANSFER_GAS,
        recoverer: Optional[SignatureRecoverer] = None
    ):
        self.host = host
        self.address = address
        self.revenue_source = revenue_source
        self.chain_id = chain_id
        self.fee_percentage = fee_percentage
        self.transfer_gas = transfer_gas
        self.recoverer = recoverer
        self._wallets: Dict[bytes, MultiSigWallet] = {}
        self._by_owner: Dict[bytes, Set[bytes]] = {}
        self._snapshots: Dict[bytes, tuple] = {}
        self._salt = 0
        self._lock = threading.RLock()

    def create(
        self,
        name: str,
        owners: Sequence[bytes],
        threshold: int,
        revenue_handle: Optional[bytes] = None
    ) -> MultiSigWallet:
        """
        Create and initialize a wallet.

        Raises:
            InvalidOwner, InvalidThreshold, NotEnoughSigners: bad owner set;
            nothing is registered
        """
        with self._lock:
            address = derive_wallet_address(self.address, name, self._salt)
            wallet = MultiSigWallet(
                address=address,
                host=self.host,
                factory=self,
                name=name,
                chain_id=self.chain_id,
                recoverer=self.recoverer,
                revenue_source=self.revenue_source,
                revenue_handle=revenue_handle,
                fee_percentage=self.fee_percentage,
                transfer_gas=self.transfer_gas
            )
            wallet.initialize(owners, threshold, caller=self.address)
            self._salt += 1
            self._wallets[address] = wallet
            self._index(address, wallet.owners, wallet.threshold)
            logger.info("created wallet %s (%s)", name, to_hex(address))
            return wallet

    def get(self, address: bytes) -> Optional[MultiSigWallet]:
        with self._lock:
            return self._wallets.get(address)

    def wallets_of(self, owner: bytes) -> List[bytes]:
        with self._lock:
            return sorted(self._by_owner.get(owner, ()))

    def owners_of(self, wallet: bytes) -> Optional[tuple]:
        """Last broadcast (owners, threshold) for a wallet."""
        with self._lock:
            return self._snapshots.get(wallet)

    def notify_owners_changed(self, wallet: bytes, owners: Sequence[bytes], threshold: int):
        with self._lock:
            if wallet not in self._wallets:
                logger.warning("owner change from unknown wallet %s", to_hex(wallet))
                return
            self._index(wallet, owners, threshold)

    def _index(self, wallet: bytes, owners: Sequence[bytes], threshold: int):
        for members in self._by_owner.values():
            members.discard(wallet)
        for owner in owners:
            self._by_owner.setdefault(owner, set()).add(wallet)
        self._snapshots[wallet] = (list(owners), threshold)
