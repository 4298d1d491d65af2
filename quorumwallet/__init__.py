"""
QuorumWallet

Version: 1.0.0
License: Apache 2.0

Multi-party authorization and execution engine.

A wallet dispatches an outbound call carrying value and data only when a
quorum of its owners has signed the call's digest. Revenue accrued for the
wallet is split among the owners who approved an action and the party who
executed it, and paid out by a permissionless withdrawal.

Guarantees:
- Digests bind chain id, wallet identity and a monotonic nonce, so a
  signature can never be replayed on another wallet, environment or nonce
- Signatures must arrive sorted by signer; duplicates and disorder reject
  the whole batch
- The nonce advances before dispatch and is never rolled back

Usage:
    from quorumwallet import (
        InMemoryHost,
        InMemoryWalletFactory,
        generate_key_pair,
        sort_signatures,
    )

    host = InMemoryHost()
    factory = InMemoryWalletFactory(host)
    wallet = factory.create("treasury", [alice.identity, bob.identity], threshold=2)

    digest = wallet.get_transaction_hash(wallet.nonce, destination, 100, b"")
    signatures = sort_signatures(digest, [alice.sign(digest), bob.sign(digest)])
    result = wallet.execute_transaction(destination, 100, b"", signatures, caller=relayer)
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Identities
from .identity import (
    IDENTITY_LENGTH,
    NULL_IDENTITY,
    derive_wallet_address,
    from_hex,
    to_hex,
)

# Canonicalization and hashing
from .canonicalization import canonicalize, canonicalize_str
from .hashing import (
    transaction_hash,
    verify_transaction_hash,
    digest_hex,
)

# Errors
from .errors import (
    ErrorKind,
    WalletError,
    InvalidOwner,
    InvalidSigner,
    InvalidThreshold,
    NotEnoughSigners,
    DuplicateOrUnorderedSignatures,
    InsufficientValidSignatures,
    ExecutionFailed,
    NoFeeToDistribute,
    NoFeeToWithdraw,
    Unauthorized,
    AlreadyInitialized,
    TransferFailed,
    RevenueSourceError,
)

# Signing
from .signing import (
    KeyPair,
    SignatureRecoverer,
    Ed25519Recoverer,
    generate_key_pair,
    sign_digest,
    sort_signatures,
    load_key_file,
    save_key_file,
)

# Actions
from .actions import (
    ProposedAction,
    GovernanceCall,
    GovernanceOp,
    add_owner_action,
    remove_owner_action,
    change_threshold_action,
)

# Components
from .owners import OwnerRegistry
from .verifier import SignatureVerifier, VerificationResult
from .fees import FeeLedger, Distribution, split_revenue
from .settlement import Settlement, Payout, PayoutKind, WithdrawalReceipt

# Events
from .events import (
    EventType,
    Deposit,
    ExecuteTransaction,
    OwnerChanged,
    EventLog,
    InMemoryEventLog,
)

# Collaborators
from .host import (
    Host,
    InMemoryHost,
    CallContext,
    CallResult,
    RevenueSource,
    InMemoryRevenueSource,
)

# Engine
from .wallet import MultiSigWallet
from .factory import WalletFactory, InMemoryWalletFactory


__all__ = [
    # Version
    "__version__",

    # Identities
    "IDENTITY_LENGTH",
    "NULL_IDENTITY",
    "derive_wallet_address",
    "from_hex",
    "to_hex",

    # Hashing
    "canonicalize",
    "canonicalize_str",
    "transaction_hash",
    "verify_transaction_hash",
    "digest_hex",

    # Errors
    "ErrorKind",
    "WalletError",
    "InvalidOwner",
    "InvalidSigner",
    "InvalidThreshold",
    "NotEnoughSigners",
    "DuplicateOrUnorderedSignatures",
    "InsufficientValidSignatures",
    "ExecutionFailed",
    "NoFeeToDistribute",
    "NoFeeToWithdraw",
    "Unauthorized",
    "AlreadyInitialized",
    "TransferFailed",
    "RevenueSourceError",

    # Signing
    "KeyPair",
    "SignatureRecoverer",
    "Ed25519Recoverer",
    "generate_key_pair",
    "sign_digest",
    "sort_signatures",
    "load_key_file",
    "save_key_file",

    # Actions
    "ProposedAction",
    "GovernanceCall",
    "GovernanceOp",
    "add_owner_action",
    "remove_owner_action",
    "change_threshold_action",

    # Components
    "OwnerRegistry",
    "SignatureVerifier",
    "VerificationResult",
    "FeeLedger",
    "Distribution",
    "split_revenue",
    "Settlement",
    "Payout",
    "PayoutKind",
    "WithdrawalReceipt",

    # Events
    "EventType",
    "Deposit",
    "ExecuteTransaction",
    "OwnerChanged",
    "EventLog",
    "InMemoryEventLog",

    # Collaborators
    "Host",
    "InMemoryHost",
    "CallContext",
    "CallResult",
    "RevenueSource",
    "InMemoryRevenueSource",

    # Engine
    "MultiSigWallet",
    "WalletFactory",
    "InMemoryWalletFactory",
]
