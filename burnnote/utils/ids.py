"""Reference ID generation — unguessable public handles for secrets."""

import secrets

# 128 bits; anything below 96 makes enumeration plausible
REFERENCE_ID_BYTES = 16


def generate_reference_id(nbytes: int = REFERENCE_ID_BYTES) -> str:
    """Return a fresh URL-safe identifier drawn from the OS CSPRNG."""
    return secrets.token_urlsafe(nbytes)
