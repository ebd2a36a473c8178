"""Redaction of tokens and secrets before they reach debug output."""

from typing import Any

REDACT_KEYS: frozenset[str] = frozenset({
    "authorization",
    "proxy-authorization",
    "access_token",
    "token",
    "password",
    "consumer_secret",
    "client_secret",
    "oauth_token",
    "oauth_token_secret",
})

REDACTED_VALUE = "[REDACTED]"
MASK_VISIBLE_CHARS = 4


def redact_payload(payload: dict[str, Any]) -> dict[str, Any]:
    """Recursively redact sensitive keys from a payload.

    Creates a copy - the original payload is never mutated.

    Args:
        payload: The dictionary to redact sensitive values from.

    Returns:
        A new dictionary with sensitive values replaced by "[REDACTED]".
    """
    return _redact_recursive(payload)


def mask_secret(value: str | None) -> str:
    """Show only the first few characters of a secret.

    >>> mask_secret("AAAAxyz123")
    'AAAA...'
    """
    if not value:
        return REDACTED_VALUE
    if len(value) <= MASK_VISIBLE_CHARS:
        return "..."
    return value[:MASK_VISIBLE_CHARS] + "..."


def _redact_recursive(obj: Any) -> Any:
    """Recursively redact sensitive keys."""
    if isinstance(obj, dict):
        result = {}
        for key, value in obj.items():
            key_lower = key.lower() if isinstance(key, str) else key
            if key_lower in REDACT_KEYS:
                result[key] = REDACTED_VALUE
            else:
                result[key] = _redact_recursive(value)
        return result
    elif isinstance(obj, list):
        return [_redact_recursive(item) for item in obj]
    else:
        return obj
