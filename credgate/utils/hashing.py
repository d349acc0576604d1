import hashlib
import re
import secrets

from credgate.api.core.constants import (
    API_KEY_DISPLAY_CHARS,
    API_KEY_PREFIX,
    API_KEY_RANDOM_BYTES,
)

API_KEY_PATTERN = re.compile(
    rf"^{re.escape(API_KEY_PREFIX)}[0-9a-f]{{{API_KEY_RANDOM_BYTES * 2}}}$"
)


class HashingService:
    """Secret generation and one-way digests for API keys."""

    @staticmethod
    def generate_api_key() -> str:
        """Return a fresh ``pk_``-prefixed secret with 256 bits of entropy."""
        return f"{API_KEY_PREFIX}{secrets.token_hex(API_KEY_RANDOM_BYTES)}"

    @staticmethod
    def hash_api_key(plain_key: str) -> str:
        """
        Hash an API key with SHA-256.

        The digest is deterministic so it can be used as the lookup column.
        A slow salted hash would force a scan over every stored key.

        Args:
            plain_key: The plain text API key to hash

        Returns:
            The lowercase hex digest
        """
        return hashlib.sha256(plain_key.encode("utf-8")).hexdigest()

    @staticmethod
    def display_prefix(plain_key: str) -> str:
        body = plain_key[len(API_KEY_PREFIX) :]
        return f"{API_KEY_PREFIX}{body[:API_KEY_DISPLAY_CHARS]}"

    @staticmethod
    def is_well_formed(plain_key: str | None) -> bool:
        """Shape check performed before any storage access."""
        if not plain_key:
            return False
        return API_KEY_PATTERN.fullmatch(plain_key) is not None
