from __future__ import annotations

import re

SECRET_PATTERN = re.compile(r"(rai_[A-Za-z0-9]{6,})")


def redact_secrets(text: str) -> str:
    """Redact RecallrAI API keys from a string."""

    return SECRET_PATTERN.sub("rai_***", text)


def mask_api_key(api_key: str) -> str:
    """Return a short, log-safe form of an API key."""

    if len(api_key) <= 8:
        return "rai_***"
    return f"{api_key[:8]}***"
