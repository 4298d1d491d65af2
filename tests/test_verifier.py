"""
Signature Verification Test Suite

Critical invariants tested:
    Signatures must be strictly increasing by recovered signer
    Only current owners count toward the threshold
"""

import unittest

from quorumwallet import (
    DuplicateOrUnorderedSignatures,
    Ed25519Recoverer,
    InsufficientValidSignatures,
    InvalidSigner,
    OwnerRegistry,
    SignatureVerifier,
    generate_key_pair,
    sort_signatures,
)

DIGEST = bytes(range(32))


class TestSignatureVerifier(unittest.TestCase):

    def setUp(self):
        self.keys = sorted(
            (generate_key_pair(f"owner-{i}") for i in range(3)),
            key=lambda k: k.identity
        )
        self.a, self.b, self.c = self.keys
        self.outsider = generate_key_pair("outsider")

        self.registry = OwnerRegistry()
        self.registry.initialize([k.identity for k in self.keys], 2)
        self.verifier = SignatureVerifier(self.registry, Ed25519Recoverer())

    def _sigs(self, *keys):
        return [k.sign(DIGEST) for k in keys]

    def test_threshold_sorted_owner_signatures_pass(self):
        result = self.verifier.verify(DIGEST, self._sigs(self.a, self.b))

        self.assertEqual(result.valid_count, 2)
        self.assertEqual(result.approvers, [self.a.identity, self.b.identity])

    def test_all_owners_pass(self):
        result = self.verifier.verify(DIGEST, self._sigs(self.a, self.b, self.c))
        self.assertEqual(result.valid_count, 3)

    def test_one_below_threshold_fails(self):
        with self.assertRaises(InsufficientValidSignatures) as ctx:
            self.verifier.verify(DIGEST, self._sigs(self.c))
        self.assertEqual(ctx.exception.details["valid_count"], 1)

    def test_empty_signature_set_fails(self):
        with self.assertRaises(InsufficientValidSignatures):
            self.verifier.verify(DIGEST, [])

    def test_reversed_order_rejected(self):
        with self.assertRaises(DuplicateOrUnorderedSignatures):
            self.verifier.verify(DIGEST, self._sigs(self.b, self.a))

    def test_duplicate_signer_rejected(self):
        """A repeated signer can never satisfy strict ordering."""
        sig = self.a.sign(DIGEST)
        with self.assertRaises(DuplicateOrUnorderedSignatures):
            self.verifier.verify(DIGEST, [sig, sig])

    def test_disorder_rejected_even_with_outsiders(self):
        """Ordering is checked for every signer, owner or not."""
        pair = sorted([self.a, self.outsider], key=lambda k: k.identity, reverse=True)
        with self.assertRaises(DuplicateOrUnorderedSignatures):
            self.verifier.verify(DIGEST, self._sigs(*pair))

    def test_disorder_anywhere_rejects_whole_batch(self):
        sigs = self._sigs(self.a, self.b, self.c)
        sigs[1], sigs[2] = sigs[2], sigs[1]
        with self.assertRaises(DuplicateOrUnorderedSignatures):
            self.verifier.verify(DIGEST, sigs)

    def test_outsider_signatures_do_not_count(self):
        sigs = sort_signatures(DIGEST, self._sigs(self.a, self.outsider))
        with self.assertRaises(InsufficientValidSignatures):
            self.verifier.verify(DIGEST, sigs)

    def test_outsider_alongside_quorum_ignored(self):
        sigs = sort_signatures(DIGEST, self._sigs(self.a, self.b, self.outsider))
        result = self.verifier.verify(DIGEST, sigs)

        self.assertEqual(result.valid_count, 2)
        self.assertEqual(result.approvers, sorted([self.a.identity, self.b.identity]))
        self.assertNotIn(self.outsider.identity, result.approvers)

    def test_malformed_blob_rejected(self):
        with self.assertRaises(InvalidSigner):
            self.verifier.verify(DIGEST, [b"\x00" * 10])

    def test_signature_for_other_digest_rejected(self):
        other = bytes(32)
        with self.assertRaises(InvalidSigner):
            self.verifier.verify(DIGEST, [self.a.sign(other), self.b.sign(DIGEST)])

    def test_tampered_key_prefix_rejected(self):
        sig = bytearray(self.a.sign(DIGEST))
        sig[:32] = self.b.identity
        with self.assertRaises(InvalidSigner):
            self.verifier.verify(DIGEST, [bytes(sig)])

    def test_removed_owner_no_longer_counts(self):
        self.registry.remove_owner(self.b.identity, 2)
        with self.assertRaises(InsufficientValidSignatures):
            self.verifier.verify(DIGEST, self._sigs(self.a, self.b))


class TestSortSignatures(unittest.TestCase):

    def test_sorts_by_recovered_identity(self):
        keys = [generate_key_pair(str(i)) for i in range(4)]
        sigs = [k.sign(DIGEST) for k in keys]
        ordered = sort_signatures(DIGEST, sigs)

        recoverer = Ed25519Recoverer()
        identities = [recoverer.recover(DIGEST, s) for s in ordered]
        self.assertEqual(identities, sorted(k.identity for k in keys))


if __name__ == "__main__":
    unittest.main()
