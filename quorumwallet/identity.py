"""
QuorumWallet identities.

An identity is a fixed-width 32-byte value. Owners are Ed25519 verify keys;
wallet instances get a hash-derived address of the same width. Identities
compare by raw byte order, which is the order signatures must be submitted in.
"""

import hashlib

IDENTITY_LENGTH = 32

NULL_IDENTITY = bytes(IDENTITY_LENGTH)


def is_identity(value) -> bool:
    return isinstance(value, bytes) and len(value) == IDENTITY_LENGTH


def is_null(identity: bytes) -> bool:
    return identity == NULL_IDENTITY


def to_hex(identity: bytes) -> str:
    """Render an identity as 0x-prefixed lowercase hex."""
    return "0x" + identity.hex()


def from_hex(value: str) -> bytes:
    """
    Parse a hex identity, with or without the 0x prefix.

    Raises:
        ValueError: if the value is not exactly 32 bytes of hex
    """
    text = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        raw = bytes.fromhex(text)
    except ValueError:
        raise ValueError(f"Invalid identity hex: {value!r}")
    if len(raw) != IDENTITY_LENGTH:
        raise ValueError(
            f"Invalid identity length: expected {IDENTITY_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def derive_wallet_address(factory: bytes, name: str, salt: int) -> bytes:
    """Deterministic address for a wallet created by a factory."""
    h = hashlib.sha256()
    h.update(b"quorumwallet:address:")
    h.update(factory)
    h.update(name.encode("utf-8"))
    h.update(salt.to_bytes(32, "big"))
    return h.digest()
