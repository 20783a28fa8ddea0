"""PKCE (Proof Key for Code Exchange) helpers.

Implements RFC 7636 with the S256 method only.

## Derivation

```
verifier  = base64url(32 random bytes)            # 43 chars, 256 bits
challenge = base64url(sha256(ascii(verifier)))    # 43 chars
```

Both values are base64url encoded without ``=`` padding, so they are safe
inside URLs and cookie values.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass, field

CHALLENGE_METHOD = "S256"
VERIFIER_BYTES = 32
STATE_BYTES = 16


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_verifier() -> str:
    """Generate a random PKCE code verifier with 256 bits of entropy."""
    return _b64url(secrets.token_bytes(VERIFIER_BYTES))


def derive_challenge(verifier: str) -> str:
    """Derive the S256 code challenge for a verifier.

    Args:
        verifier: The PKCE code verifier

    Returns:
        base64url(SHA256(verifier)) without padding
    """
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def verify_challenge(verifier: str, challenge: str) -> bool:
    """Check that ``challenge`` was derived from ``verifier``.

    Uses a constant-time comparison.
    """
    try:
        expected = derive_challenge(verifier)
    except (UnicodeEncodeError, AttributeError):
        return False
    return secrets.compare_digest(expected, challenge)


def generate_state() -> str:
    """Generate an opaque OAuth ``state`` value for one login attempt."""
    return _b64url(secrets.token_bytes(STATE_BYTES))


@dataclass(frozen=True)
class PKCEPair:
    """A verifier with its challenge and the login attempt's state."""

    verifier: str
    challenge: str
    state: str = field(default_factory=generate_state)
    method: str = CHALLENGE_METHOD


def generate_pkce_pair() -> PKCEPair:
    """Generate a fresh verifier, its challenge and a state value."""
    verifier = generate_verifier()
    return PKCEPair(verifier=verifier, challenge=derive_challenge(verifier))
