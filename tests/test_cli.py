"""
CLI Test Suite

Drives the client-side flow end to end: key files, digest, signatures,
ordering, then execution on a wallet built from the same keys.
"""

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

from quorumwallet import (
    InMemoryHost,
    InMemoryWalletFactory,
    from_hex,
    load_key_file,
    to_hex,
)
from quorumwallet.cli import main


def run_cli(*argv):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(list(argv))
    return code, out.getvalue(), err.getvalue()


class TestCLI(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def path(self, name):
        return os.path.join(self.tmp, name)

    def keygen(self, name):
        code, out, _ = run_cli("keygen", "-o", self.path(f"{name}.json"), "--kid", name)
        self.assertEqual(code, 0)
        return from_hex(out.strip())

    def test_keygen_and_identity(self):
        identity = self.keygen("alice")

        code, out, _ = run_cli("identity", "-k", self.path("alice.json"))
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), to_hex(identity))
        self.assertEqual(load_key_file(self.path("alice.json")).key_id, "alice")

    def test_full_signing_flow(self):
        alice = self.keygen("alice")
        bob = self.keygen("bob")

        host = InMemoryHost()
        factory = InMemoryWalletFactory(host, chain_id=7)
        wallet = factory.create("cli", [alice, bob], 2)
        funder = bytes([0xF0]) * 32
        host.mint(funder, 500)
        wallet.receive(funder, 500)
        dest = bytes([0xD0]) * 32

        request = {
            "chain_id": 7,
            "wallet": to_hex(wallet.address),
            "nonce": wallet.nonce,
            "action": {"destination": to_hex(dest), "value": 200, "payload": "0xbeef"},
        }
        with open(self.path("request.json"), "w") as f:
            json.dump(request, f)

        code, out, _ = run_cli("hash", "-r", self.path("request.json"))
        self.assertEqual(code, 0)
        digest = out.strip()
        self.assertEqual(
            digest, "0x" + wallet.get_transaction_hash(0, dest, 200, b"\xbe\xef").hex()
        )

        signatures = []
        for name in ("bob", "alice"):
            code, out, _ = run_cli("sign", "-k", self.path(f"{name}.json"), "-d", digest)
            self.assertEqual(code, 0)
            signatures.append(out.strip())

        with open(self.path("bundle.json"), "w") as f:
            json.dump({"digest": digest, "signatures": signatures}, f)
        code, _, _ = run_cli("order", "-b", self.path("bundle.json"), "-o", self.path("ordered.json"))
        self.assertEqual(code, 0)

        with open(self.path("ordered.json")) as f:
            ordered = [bytes.fromhex(s[2:]) for s in json.load(f)["signatures"]]

        wallet.execute_transaction(dest, 200, b"\xbe\xef", ordered, caller=funder)
        self.assertEqual(host.balance_of(dest), 200)
        self.assertEqual(wallet.nonce, 1)

    def test_invalid_request_exits_nonzero(self):
        with open(self.path("bad.json"), "w") as f:
            json.dump({"chain_id": 1, "wallet": "0x1234", "nonce": 0,
                       "action": {"destination": "0x00"}}, f)

        code, _, err = run_cli("hash", "-r", self.path("bad.json"))
        self.assertEqual(code, 1)
        self.assertIn("Invalid input", err)

    def test_order_rejects_bad_signature(self):
        self.keygen("alice")
        code, out, _ = run_cli("sign", "-k", self.path("alice.json"), "-d", "0x" + "11" * 32)
        with open(self.path("bundle.json"), "w") as f:
            json.dump({"digest": "0x" + "22" * 32, "signatures": [out.strip()]}, f)

        code, _, err = run_cli("order", "-b", self.path("bundle.json"))
        self.assertEqual(code, 1)
        self.assertIn("InvalidSigner", err)

    def test_demo(self):
        code, out, _ = run_cli("demo")
        self.assertEqual(code, 0)
        self.assertIn("Demonstration complete.", out)
        self.assertIn("InsufficientValidSignatures", out)

    def test_no_command_prints_help(self):
        code, out, _ = run_cli()
        self.assertEqual(code, 1)
        self.assertIn("usage", out.lower())


if __name__ == "__main__":
    unittest.main()
