"""
QuorumWallet Cryptographic Signing

Uses Ed25519 (RFC 8032) via PyNaCl for owner endorsements.

Ed25519 has no public-key recovery, so a signature blob carries the signer's
verify key in front of the signature:

    blob = verify_key (32 bytes) || signature (64 bytes)

"Recovering" a blob means checking the signature against the embedded key
and returning that key as the signer identity.
"""

import base64
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from nacl.exceptions import CryptoError
from nacl.signing import SigningKey, VerifyKey

from .errors import InvalidSigner
from .identity import IDENTITY_LENGTH, to_hex

SIGNATURE_LENGTH = 64
BLOB_LENGTH = IDENTITY_LENGTH + SIGNATURE_LENGTH


@dataclass
class KeyPair:
    """Ed25519 key pair for one owner."""
    key_id: str
    signing_key: bytes
    verify_key: bytes
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    algorithm: str = "Ed25519"

    @property
    def identity(self) -> bytes:
        return self.verify_key

    def sign(self, digest: bytes) -> bytes:
        return sign_digest(digest, self.signing_key)

    def to_key_file(self) -> Dict[str, Any]:
        """Key file format: kid plus base64 private key."""
        return {
            "kid": self.key_id,
            "algorithm": self.algorithm,
            "private_key_b64": base64.b64encode(self.signing_key).decode('utf-8'),
            "identity": to_hex(self.verify_key),
            "created_at": self.created_at.isoformat().replace("+00:00", "Z"),
        }

    @classmethod
    def from_key_file(cls, data: Dict[str, Any]) -> 'KeyPair':
        seed = base64.b64decode(data["private_key_b64"])
        sk = SigningKey(seed)
        created = data.get("created_at")
        kwargs = {}
        if created:
            kwargs["created_at"] = datetime.fromisoformat(created.replace("Z", "+00:00"))
        return cls(
            key_id=data["kid"],
            signing_key=bytes(sk),
            verify_key=bytes(sk.verify_key),
            **kwargs
        )


def generate_key_pair(key_id: str = "owner") -> KeyPair:
    """Generate a new Ed25519 key pair."""
    signing_key = SigningKey.generate()
    return KeyPair(
        key_id=key_id,
        signing_key=bytes(signing_key),
        verify_key=bytes(signing_key.verify_key),
    )


def save_key_file(key_pair: KeyPair, path: Union[str, Path]):
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(key_pair.to_key_file(), f, indent=2)


def load_key_file(path: Union[str, Path]) -> KeyPair:
    with open(path, 'r', encoding='utf-8') as f:
        return KeyPair.from_key_file(json.load(f))


def sign_digest(digest: bytes, signing_key: bytes) -> bytes:
    """Sign a transaction digest, returning a self-describing blob."""
    key = SigningKey(signing_key)
    signature = key.sign(digest).signature
    return bytes(key.verify_key) + signature


class SignatureRecoverer(ABC):
    """
    Capability that maps (digest, signature) to the signer identity.

    Implementations raise InvalidSigner for malformed or non-verifying input.
    """

    @abstractmethod
    def recover(self, digest: bytes, signature: bytes) -> bytes:
        pass


class Ed25519Recoverer(SignatureRecoverer):
    """Recover signer identities from verify-key-prefixed Ed25519 blobs."""

    def recover(self, digest: bytes, signature: bytes) -> bytes:
        if not isinstance(signature, (bytes, bytearray)) or len(signature) != BLOB_LENGTH:
            raise InvalidSigner(
                f"Malformed signature: expected {BLOB_LENGTH} bytes",
                length=len(signature) if isinstance(signature, (bytes, bytearray)) else None
            )

        signature = bytes(signature)
        public_key = signature[:IDENTITY_LENGTH]
        sig = signature[IDENTITY_LENGTH:]
        try:
            VerifyKey(public_key).verify(digest, sig)
        except (CryptoError, ValueError, TypeError) as e:
            raise InvalidSigner(
                "Signature does not verify for digest",
                signer=to_hex(public_key),
                reason=str(e)
            )
        return public_key


def sort_signatures(
    digest: bytes,
    signatures: Iterable[bytes],
    recoverer: Optional[SignatureRecoverer] = None
) -> List[bytes]:
    """
    Order signature blobs by recovered identity, ascending.

    Submitters must present signatures in this order; the verifier rejects
    anything else.
    """
    recoverer = recoverer or Ed25519Recoverer()
    return sorted(signatures, key=lambda sig: recoverer.recover(digest, sig))
