"""
QuorumWallet Signature Verification

Validates a batch of signatures against a transaction digest.

Signatures must be submitted sorted by recovered identity, strictly
ascending. Checking order in a single pass doubles as the duplicate check:
a repeated identity can never be strictly greater than itself. One bad
entry rejects the whole batch.
"""

from dataclasses import dataclass, field
from typing import List, Sequence

from .errors import DuplicateOrUnorderedSignatures, InsufficientValidSignatures
from .identity import to_hex
from .owners import OwnerRegistry
from .signing import SignatureRecoverer


@dataclass
class VerificationResult:
    """Outcome of a successful verification."""
    valid_count: int
    # Owner identities that signed, in submission order
    approvers: List[bytes] = field(default_factory=list)


class SignatureVerifier:
    """
    Quorum check bound to an owner registry and a recovery capability.
    """

    def __init__(self, registry: OwnerRegistry, recoverer: SignatureRecoverer):
        self.registry = registry
        self.recoverer = recoverer

    def recover_all(self, digest: bytes, signatures: Sequence[bytes]) -> List[bytes]:
        """
        Recover every signer and enforce strictly increasing order.

        Raises:
            InvalidSigner: a blob is malformed or does not verify
            DuplicateOrUnorderedSignatures: order or uniqueness violated
        """
        signers: List[bytes] = []
        last = None
        for position, signature in enumerate(signatures):
            signer = self.recoverer.recover(digest, signature)
            if last is not None and signer <= last:
                raise DuplicateOrUnorderedSignatures(
                    "Signatures must be sorted by signer, ascending, without duplicates",
                    position=position,
                    signer=to_hex(signer),
                    previous=to_hex(last)
                )
            signers.append(signer)
            last = signer
        return signers

    def verify(self, digest: bytes, signatures: Sequence[bytes]) -> VerificationResult:
        """
        Count owner signatures and check them against the threshold.

        Raises:
            InsufficientValidSignatures: fewer owner signatures than threshold
        """
        signers = self.recover_all(digest, signatures)
        approvers = [s for s in signers if self.registry.is_owner(s)]

        if len(approvers) < self.registry.threshold:
            raise InsufficientValidSignatures(
                f"{len(approvers)} valid owner signatures, {self.registry.threshold} required",
                valid_count=len(approvers),
                threshold=self.registry.threshold
            )

        return VerificationResult(
            valid_count=len(approvers),
            approvers=approvers
        )
