"""
QuorumWallet Owner Registry

Maintains the set of authorized identities and the quorum threshold.

Invariants (checked after every mutation, evaluated against the
post-mutation owner count):
- the owner list and the membership map agree, with no duplicates
- 0 < threshold <= len(owners)

A mutation that would break an invariant is rejected before any state is
touched.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .errors import (
    AlreadyInitialized,
    InvalidOwner,
    InvalidThreshold,
    NotEnoughSigners,
)
from .identity import is_identity, is_null, to_hex

logger = logging.getLogger(__name__)


def check_threshold(threshold: int, owner_count: int):
    """
    Raises:
        InvalidThreshold: threshold is not a positive integer
        NotEnoughSigners: threshold exceeds the owner count
    """
    if not isinstance(threshold, int) or isinstance(threshold, bool) or threshold <= 0:
        raise InvalidThreshold("Threshold must be a positive integer", threshold=threshold)
    if threshold > owner_count:
        raise NotEnoughSigners(
            f"Threshold {threshold} exceeds owner count {owner_count}",
            threshold=threshold,
            owner_count=owner_count
        )


class OwnerRegistry:
    """Owner set plus quorum threshold for one wallet instance."""

    def __init__(self):
        self._owners: List[bytes] = []
        self._is_owner: Dict[bytes, bool] = {}
        self._threshold = 0
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def owners(self) -> List[bytes]:
        return list(self._owners)

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def owner_count(self) -> int:
        return len(self._owners)

    def is_owner(self, identity: bytes) -> bool:
        return self._is_owner.get(identity, False)

    def initialize(self, owners: Iterable[bytes], threshold: int, reserved: Iterable[bytes] = ()):
        """
        One-time setup.

        Args:
            owners: initial owner identities, in order
            threshold: quorum size
            reserved: identities that may never be owners (the wallet itself)
        """
        if self._initialized:
            raise AlreadyInitialized("Owner registry already initialized")

        owners = list(owners)
        reserved = set(reserved)
        seen = set()
        for owner in owners:
            self._check_candidate(owner, reserved)
            if owner in seen:
                raise InvalidOwner("Duplicate owner", owner=to_hex(owner))
            seen.add(owner)
        check_threshold(threshold, len(owners))

        self._owners = owners
        self._is_owner = {owner: True for owner in owners}
        self._threshold = threshold
        self._initialized = True

    def add_owner(self, identity: bytes, new_threshold: int, reserved: Iterable[bytes] = ()):
        self._check_candidate(identity, set(reserved))
        if self.is_owner(identity):
            raise InvalidOwner("Already an owner", owner=to_hex(identity))
        check_threshold(new_threshold, len(self._owners) + 1)

        self._owners.append(identity)
        self._is_owner[identity] = True
        self._threshold = new_threshold
        logger.debug("owner added %s, threshold %d", to_hex(identity), new_threshold)

    def remove_owner(self, identity: bytes, new_threshold: int):
        """Remove an owner by swapping it with the last entry and truncating."""
        if not self.is_owner(identity):
            raise InvalidOwner("Not an owner", owner=to_hex(identity))
        check_threshold(new_threshold, len(self._owners) - 1)

        index = self._index_of(identity)
        last = len(self._owners) - 1
        self._owners[index] = self._owners[last]
        self._owners.pop()
        del self._is_owner[identity]
        self._threshold = new_threshold
        logger.debug("owner removed %s, threshold %d", to_hex(identity), new_threshold)

    def change_threshold(self, new_threshold: int):
        check_threshold(new_threshold, len(self._owners))
        self._threshold = new_threshold

    def _index_of(self, identity: bytes) -> Optional[int]:
        for i, owner in enumerate(self._owners):
            if owner == identity:
                return i
        return None

    @staticmethod
    def _check_candidate(identity: bytes, reserved: set):
        if not is_identity(identity):
            raise InvalidOwner("Owner must be a 32-byte identity")
        if is_null(identity):
            raise InvalidOwner("Null identity cannot be an owner")
        if identity in reserved:
            raise InvalidOwner("Reserved identity cannot be an owner", owner=to_hex(identity))
