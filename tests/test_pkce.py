"""Tests for PKCE generation."""

import base64
import hashlib
import re

from lichess_auth.auth.pkce import (
    CHALLENGE_METHOD,
    PKCEPair,
    derive_challenge,
    generate_pkce_pair,
    generate_state,
    generate_verifier,
    verify_challenge,
)

BASE64URL = re.compile(r"^[A-Za-z0-9_-]+$")


def _unpadded_b64decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


class TestGenerateVerifier:
    """Tests for verifier generation."""

    def test_verifier_is_url_safe(self):
        """Test the verifier only uses base64url characters, no padding."""
        verifier = generate_verifier()
        assert BASE64URL.match(verifier)
        assert "=" not in verifier

    def test_verifier_carries_256_bits(self):
        """Test the verifier encodes 32 random bytes."""
        verifier = generate_verifier()
        assert len(verifier) == 43
        assert len(_unpadded_b64decode(verifier)) == 32

    def test_verifier_length_within_rfc_bounds(self):
        """Test RFC 7636 length limits (43-128 characters)."""
        assert 43 <= len(generate_verifier()) <= 128

    def test_verifiers_are_unique(self):
        """Test that verifiers do not repeat."""
        verifiers = {generate_verifier() for _ in range(200)}
        assert len(verifiers) == 200


class TestDeriveChallenge:
    """Tests for S256 challenge derivation."""

    def test_rfc7636_appendix_b_vector(self):
        """Test the example from RFC 7636 Appendix B."""
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert derive_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_challenge_matches_sha256_of_verifier(self):
        """Test challenge == base64url(sha256(verifier)) without padding."""
        for _ in range(20):
            verifier = generate_verifier()
            expected = (
                base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
                .decode()
                .rstrip("=")
            )
            challenge = derive_challenge(verifier)
            assert challenge == expected
            assert "=" not in challenge
            assert len(_unpadded_b64decode(challenge)) == 32

    def test_challenge_is_deterministic(self):
        """Test the same verifier always gives the same challenge."""
        verifier = generate_verifier()
        assert derive_challenge(verifier) == derive_challenge(verifier)

    def test_hex_verifier_is_accepted(self):
        """Test that hex-encoded verifiers hash like any other string."""
        verifier = "ab" * 32
        expected = (
            base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
            .decode()
            .rstrip("=")
        )
        assert derive_challenge(verifier) == expected


class TestVerifyChallenge:
    """Tests for challenge verification."""

    def test_matching_pair(self):
        pair = generate_pkce_pair()
        assert verify_challenge(pair.verifier, pair.challenge) is True

    def test_wrong_verifier(self):
        pair = generate_pkce_pair()
        assert verify_challenge(generate_verifier(), pair.challenge) is False

    def test_non_ascii_verifier(self):
        assert verify_challenge("vérifier", "anything") is False


class TestPKCEPair:
    """Tests for the PKCE pair."""

    def test_pair_is_consistent(self):
        pair = generate_pkce_pair()
        assert pair.challenge == derive_challenge(pair.verifier)
        assert pair.method == CHALLENGE_METHOD == "S256"

    def test_pair_has_state(self):
        """Test every pair gets its own state value."""
        first, second = generate_pkce_pair(), generate_pkce_pair()
        assert first.state and second.state
        assert first.state != second.state
        assert BASE64URL.match(first.state)

    def test_explicit_state(self):
        pair = PKCEPair(verifier="v", challenge=derive_challenge("v"), state="s1")
        assert pair.state == "s1"

    def test_state_generation(self):
        assert len({generate_state() for _ in range(50)}) == 50
