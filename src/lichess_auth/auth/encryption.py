"""Encryption utilities for cookie payloads.

Uses Fernet symmetric encryption (AES-128-CBC with HMAC-SHA256) for values
the browser holds on our behalf: the Lichess access token inside the
session cookie and the PKCE verifier cookie.

## Security Model

1. An encryption key is derived from the application secret
2. Each sensitive value is sealed with Fernet before it leaves the server
3. Fernet tokens carry their creation time, so unsealing can enforce a
   maximum age independently of the browser's cookie expiry

## Key Derivation

The encryption key is derived from the application secret using PBKDF2:
- Salt: Configurable, should be unique per deployment
- Iterations: 480,000 (OWASP recommendation for PBKDF2-HMAC-SHA256)
- Key length: 32 bytes (256 bits)

## Usage

```python
from lichess_auth.auth.encryption import CookieCipher

cipher = CookieCipher(settings.secret_key, settings.encryption_salt)
sealed = cipher.seal("lip_abc123")
cipher.unseal(sealed, ttl=600)  # "lip_abc123"
```
"""

from __future__ import annotations

import base64
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

PBKDF2_ITERATIONS = 480_000


class CookieDecryptError(ValueError):
    """Raised when a sealed value cannot be opened."""


@lru_cache(maxsize=8)
def _create_fernet(secret_key: str, salt: str) -> Fernet:
    """Create a Fernet cipher from the secret key and salt.

    Uses PBKDF2 to derive a proper encryption key from the secret. Derivation
    is deliberately slow, so ciphers are cached per (secret, salt).

    Args:
        secret_key: Application secret key
        salt: Unique salt for this deployment

    Returns:
        Configured Fernet cipher
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,  # 256 bits for Fernet
        salt=salt.encode("utf-8"),
        iterations=PBKDF2_ITERATIONS,
    )

    key = base64.urlsafe_b64encode(kdf.derive(secret_key.encode("utf-8")))
    return Fernet(key)


class CookieCipher:
    """Seals and opens short strings with a key derived from the app secret."""

    def __init__(self, secret_key: str, salt: str):
        self._fernet = _create_fernet(secret_key, salt)

    def seal(self, plaintext: str) -> str:
        """Encrypt a value for storage in a cookie.

        Args:
            plaintext: The value to encrypt

        Returns:
            URL-safe Fernet token
        """
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def unseal(self, token: str, ttl: int | None = None) -> str:
        """Decrypt a sealed value.

        Args:
            token: Fernet token produced by `seal`
            ttl: Reject tokens older than this many seconds

        Returns:
            Decrypted plaintext

        Raises:
            CookieDecryptError: If the token is malformed, tampered with,
                sealed with another key or older than ``ttl``
        """
        if not token:
            raise CookieDecryptError("Empty sealed value")

        try:
            decrypted = self._fernet.decrypt(token.encode("ascii"), ttl=ttl)
        except (InvalidToken, UnicodeEncodeError) as e:
            raise CookieDecryptError("Failed to decrypt cookie value") from e

        return decrypted.decode("utf-8")

