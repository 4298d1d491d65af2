#!/usr/bin/env python3
"""
QuorumWallet Command Line Interface

Client-side helpers for preparing signed executions.

Usage:
    quorumwallet keygen --output <file> [--kid <id>]
    quorumwallet identity --key <file>
    quorumwallet hash --request <file>
    quorumwallet sign --key <file> --digest <hex>
    quorumwallet order --bundle <file>
    quorumwallet demo
"""

import argparse
import json
import sys

from pydantic import ValidationError

from .config import LOG_FILE, LOG_JSON, LOG_LEVEL, is_debug, is_production
from .errors import WalletError
from .hashing import digest_hex
from .identity import to_hex
from .logging_config import configure_logging, set_request_id
from .models import SignatureBundle, TransactionRequest


def load_json(path: str) -> dict:
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_json(data: dict, path: str):
    """Save JSON to file."""
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2)


def cmd_keygen(args):
    """Generate an Ed25519 owner key file."""
    from .signing import generate_key_pair, save_key_file

    key_pair = generate_key_pair(args.kid)
    save_key_file(key_pair, args.output)
    print(f"Key saved to: {args.output}", file=sys.stderr)
    print(to_hex(key_pair.identity))
    return 0


def cmd_identity(args):
    """Print the identity of a key file."""
    from .signing import load_key_file

    print(to_hex(load_key_file(args.key).identity))
    return 0


def cmd_hash(args):
    """Compute the digest owners must sign for a transaction request."""
    request = TransactionRequest.model_validate(load_json(args.request))
    digest = digest_hex(request.digest())

    if args.output:
        save_json({"digest": digest, "request": request.model_dump()}, args.output)
        print(f"Digest saved to: {args.output}", file=sys.stderr)
    print(digest)
    return 0


def cmd_sign(args):
    """Sign a digest with a key file."""
    from .signing import load_key_file

    text = args.digest[2:] if args.digest.startswith("0x") else args.digest
    digest = bytes.fromhex(text)
    blob = load_key_file(args.key).sign(digest)
    print("0x" + blob.hex())
    return 0


def cmd_order(args):
    """Sort a bundle's signatures by recovered identity."""
    from .signing import sort_signatures

    bundle = SignatureBundle.model_validate(load_json(args.bundle))
    ordered = sort_signatures(bundle.digest_bytes(), bundle.signature_bytes())
    result = {"digest": bundle.digest, "signatures": ["0x" + s.hex() for s in ordered]}

    if args.output:
        save_json(result, args.output)
        print(f"Ordered bundle saved to: {args.output}", file=sys.stderr)
    else:
        print(json.dumps(result, indent=2))
    return 0


def cmd_demo(args):
    """Run a demonstration against in-memory collaborators."""
    from .errors import InsufficientValidSignatures
    from .factory import InMemoryWalletFactory
    from .host import InMemoryHost, InMemoryRevenueSource
    from .signing import generate_key_pair, sort_signatures

    print("=" * 60)
    print("QuorumWallet Demonstration")
    print("=" * 60)

    host = InMemoryHost()
    revenue = InMemoryRevenueSource(host, bytes([0xEE]) * 32)
    factory = InMemoryWalletFactory(host, revenue_source=revenue)

    keys = sorted(
        (generate_key_pair(kid) for kid in ("alice", "bob", "carol")),
        key=lambda k: k.identity
    )
    relayer = generate_key_pair("relayer").identity
    destination = bytes([0xD0]) * 32

    wallet = factory.create("demo-treasury", [k.identity for k in keys], threshold=2)
    host.mint(relayer, 1_000)
    wallet.receive(relayer, 1_000)
    revenue.accrue(wallet.address, 100)

    print(f"\nWallet {to_hex(wallet.address)}")
    print(f"  Owners: {len(wallet.owners)}, threshold {wallet.threshold}, balance {wallet.balance}")

    # Scenario 1: quorum reached
    print("\n" + "-" * 60)
    print("Scenario 1: Transfer 250 signed by 2 of 3 owners")
    print("-" * 60)

    digest = wallet.get_transaction_hash(wallet.nonce, destination, 250, b"")
    signatures = sort_signatures(digest, [keys[0].sign(digest), keys[1].sign(digest)])
    wallet.execute_transaction(destination, 250, b"", signatures, caller=relayer)

    print(f"Nonce: {wallet.nonce}")
    print(f"Destination balance: {host.balance_of(destination)}")
    for k in keys:
        print(f"  Allocation {k.key_id}: {wallet.allocation(k.identity)}")
    print(f"  Allocation relayer: {wallet.allocation(relayer)}")

    # Scenario 2: below quorum
    print("\n" + "-" * 60)
    print("Scenario 2: Transfer signed by 1 of 3 owners")
    print("-" * 60)

    digest = wallet.get_transaction_hash(wallet.nonce, destination, 250, b"")
    try:
        wallet.execute_transaction(destination, 250, b"", [keys[0].sign(digest)], caller=relayer)
    except InsufficientValidSignatures as e:
        print(f"Rejected: {e.kind.value}")
    print(f"Nonce: {wallet.nonce} (consumed)")

    # Scenario 3: withdrawal
    print("\n" + "-" * 60)
    print("Scenario 3: Withdraw allocations and residual")
    print("-" * 60)

    receipt = wallet.withdraw()
    for payout in receipt.payouts:
        print(f"  {payout.kind.value}: {payout.amount} -> {to_hex(payout.recipient)[:18]}...")
    print(f"Remaining balance: {receipt.remaining_balance}")

    print("\n" + "=" * 60)
    print("Demonstration complete.")
    print("=" * 60)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quorumwallet",
        description="QuorumWallet multi-party execution helpers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  quorumwallet keygen -o alice.json
  quorumwallet hash -r request.json
  quorumwallet sign -k alice.json -d 0x<digest>
  quorumwallet order -b bundle.json
  quorumwallet demo
        """
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    keygen_parser = subparsers.add_parser("keygen", help="Generate an owner key")
    keygen_parser.add_argument("--output", "-o", required=True, help="Key file to write")
    keygen_parser.add_argument("--kid", default="owner", help="Key identifier")
    keygen_parser.set_defaults(func=cmd_keygen)

    identity_parser = subparsers.add_parser("identity", help="Show a key's identity")
    identity_parser.add_argument("--key", "-k", required=True, help="Key file")
    identity_parser.set_defaults(func=cmd_identity)

    hash_parser = subparsers.add_parser("hash", help="Compute a transaction digest")
    hash_parser.add_argument("--request", "-r", required=True, help="Transaction request JSON")
    hash_parser.add_argument("--output", "-o", help="Output file")
    hash_parser.set_defaults(func=cmd_hash)

    sign_parser = subparsers.add_parser("sign", help="Sign a digest")
    sign_parser.add_argument("--key", "-k", required=True, help="Key file")
    sign_parser.add_argument("--digest", "-d", required=True, help="Digest hex")
    sign_parser.set_defaults(func=cmd_sign)

    order_parser = subparsers.add_parser("order", help="Sort signatures for submission")
    order_parser.add_argument("--bundle", "-b", required=True, help="Signature bundle JSON")
    order_parser.add_argument("--output", "-o", help="Output file")
    order_parser.set_defaults(func=cmd_order)

    demo_parser = subparsers.add_parser("demo", help="Run demonstration")
    demo_parser.set_defaults(func=cmd_demo)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(
        level="DEBUG" if is_debug() else LOG_LEVEL,
        json_format=LOG_JSON or is_production(),
        log_file=LOG_FILE
    )
    set_request_id()

    try:
        return args.func(args)
    except WalletError as e:
        print(f"✗ {e.kind.value}: {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"✗ Invalid input: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
