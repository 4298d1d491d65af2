"""
QuorumWallet Transaction Hashing

All digests use SHA-256. The transaction digest binds the chain/environment
identifier and the wallet's own identity in addition to the call fields and
nonce, so a signature collected for one wallet or one environment can never
be replayed against another.
"""

import hashlib

from .canonicalization import canonicalize

TRANSACTION_DOMAIN = b"quorumwallet:transaction:v1\x00"


def transaction_fields(
    chain_id: int,
    wallet: bytes,
    nonce: int,
    destination: bytes,
    value: int,
    payload: bytes
) -> dict:
    """The exact field set covered by a transaction digest."""
    if nonce < 0 or value < 0:
        raise ValueError("nonce and value must be unsigned")
    return {
        "chain_id": chain_id,
        "wallet": wallet,
        "nonce": nonce,
        "to": destination,
        "value": value,
        "data": payload,
    }


def transaction_hash(
    chain_id: int,
    wallet: bytes,
    nonce: int,
    destination: bytes,
    value: int,
    payload: bytes
) -> bytes:
    """
    Derive the 32-byte digest owners sign for one execution.

    digest = SHA-256(TRANSACTION_DOMAIN || CJE(fields))
    """
    fields = transaction_fields(chain_id, wallet, nonce, destination, value, payload)
    return hashlib.sha256(TRANSACTION_DOMAIN + canonicalize(fields)).digest()


def digest_hex(digest: bytes) -> str:
    return "0x" + digest.hex()


def verify_transaction_hash(
    declared: bytes,
    chain_id: int,
    wallet: bytes,
    nonce: int,
    destination: bytes,
    value: int,
    payload: bytes
) -> bool:
    """Recompute a digest from its source fields and compare."""
    computed = transaction_hash(chain_id, wallet, nonce, destination, value, payload)
    return computed == declared
