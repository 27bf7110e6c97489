"""Shared-secret gates: app access codes and admin tokens."""

from __future__ import annotations

import hmac

from wanderlust_billing.billing.errors import ConfigurationError, InvalidInput, Unauthorized


def _secrets_match(expected: str, provided: str) -> bool:
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


class AccessGate:
    """Checks the code that unlocks the whole application."""

    def __init__(self, access_code: str):
        self._access_code = access_code

    def verify(self, code: object) -> None:
        """Accept code or raise.

        The code is trimmed of surrounding whitespace and compared case
        sensitively.

        Raises:
            InvalidInput: Code missing, not a string, or blank.
            Unauthorized: Code does not match.
            ConfigurationError: No access code configured.
        """
        if not self._access_code:
            raise ConfigurationError("Missing environment variable: APP_ACCESS_CODE")
        if not isinstance(code, str) or not code.strip():
            raise InvalidInput("Missing code")
        if not _secrets_match(self._access_code, code.strip()):
            raise Unauthorized("Invalid code")


class AdminTokenGate:
    """Checks the admin dashboard token (distinct from the access code)."""

    def __init__(self, admin_token: str):
        self._admin_token = admin_token

    def verify(self, token: str | None) -> None:
        if not self._admin_token:
            raise ConfigurationError("Missing ADMIN_DASH_TOKEN or SYNC_TOKEN")
        if not token or not _secrets_match(self._admin_token, token):
            raise Unauthorized("Unauthorized")
