"""Result values for the login flow.

Each step of the OAuth flow returns either `Ok` with its value or `Err`
with an `AuthErrorKind` and a human-readable detail. Route handlers turn an
`Err` into a redirect (browser entry points) or a JSON error (API entry
points); nothing in between raises for an expected failure.

```python
result = await flow.exchange(code, verifier, redirect_uri)
if isinstance(result, Err):
    return error_redirect(result)
token = result.value
```
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class AuthErrorKind(str, Enum):
    """Every way the authentication flow can end without a session."""

    PROVIDER_ERROR = "provider_error"
    MISSING_CODE = "missing_code"
    MISSING_VERIFIER = "missing_verifier"
    INVALID_STATE = "invalid_state"
    TOKEN_EXCHANGE_ERROR = "token_exchange_error"
    EXCHANGE_TIMEOUT = "exchange_timeout"
    PROFILE_FETCH_ERROR = "profile_fetch_error"
    PROFILE_TIMEOUT = "profile_timeout"
    SESSION_DECODE_ERROR = "session_decode_error"
    NO_SESSION = "no_session"
    MISCONFIGURED = "misconfigured"
    UNEXPECTED = "unexpected"

    @property
    def http_status(self) -> int:
        """Status code used when this error is reported as JSON."""
        if self in (AuthErrorKind.NO_SESSION, AuthErrorKind.SESSION_DECODE_ERROR):
            return 401
        # Upstream failures and anything unforeseen
        return 500


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful step result."""

    value: T


@dataclass(frozen=True)
class Err:
    """Failed step result.

    Attributes:
        kind: Error category
        detail: Description safe to show to the user
        code: Provider error code, when the provider reported one
    """

    kind: AuthErrorKind
    detail: str = ""
    code: str | None = None

    @property
    def error_code(self) -> str:
        """Value for the ``error`` query parameter of an error redirect."""
        return self.code or self.kind.value


Result = Union[Ok[T], Err]
