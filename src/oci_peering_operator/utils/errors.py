"""Error sanitization utilities to prevent credential leakage in logs and events."""

import re
from typing import Any

# Patterns whose captured value is replaced
SENSITIVE_PATTERNS = [
    r"fingerprint[:\s=]+((?:[0-9a-f]{2}:){15}[0-9a-f]{2})",
    r"(-----BEGIN [A-Z ]*PRIVATE KEY-----[\s\S]*?-----END [A-Z ]*PRIVATE KEY-----)",
    r"(ocid1\.user\.[a-z0-9.\-]+)",
    r"pass_?phrase[:\s=]+([^\s,;\)]+)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "key_content",
    "pass_phrase",
    "passphrase",
    "private_key",
    "password",
    "secret",
    "token",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize an error message.

    Args:
        message: Original error message

    Returns:
        Message with key material, user OCIDs and key fingerprints redacted
    """
    sanitized = message
    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(
            pattern,
            lambda m: m.group(0).replace(m.group(1), "[REDACTED]"),
            sanitized,
            flags=re.IGNORECASE,
        )
    for name in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"{name}[:\s=]+([^\s,;\)]+)",
            f"{name}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )
    return sanitized


def sanitize_exception(error: Exception) -> str:
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize a dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized copy of the dictionary
    """
    all_sensitive = SENSITIVE_FIELDS | (sensitive_keys or set())
    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value
    return sanitized
