"""SHA-256 token digests used to partition per-caller state."""

import hashlib
import hmac


def token_digest(token: str | None) -> str:
    """Hex SHA-256 of a bearer token. No token hashes like the empty string."""
    return hashlib.sha256((token or "").encode("utf-8")).hexdigest()


def same_token(digest: str, token: str | None) -> bool:
    """Constant-time check that ``token`` hashes to ``digest``."""
    return hmac.compare_digest(digest, token_digest(token))
