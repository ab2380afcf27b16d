"""
Credential checks and request identifiers
"""

import hashlib
import secrets
from typing import Optional
from app.core.errors import MissingCredential, InvalidCredentialFormat
from app.core.logging import get_logger

logger = get_logger(__name__)

OPENAI_KEY_PREFIX = "sk-"


class SecurityManager:
    """Central handling of the upstream API credential"""

    def hash_api_key(self, api_key: str) -> str:
        """Short fingerprint of an API key, safe to put in logs"""
        return hashlib.sha256(api_key.encode()).hexdigest()[:16]

    def generate_request_id(self) -> str:
        """Generate a unique request ID"""
        return secrets.token_urlsafe(16)

    def is_valid_api_key_format(self, api_key: Optional[str]) -> bool:
        return bool(api_key) and api_key.startswith(OPENAI_KEY_PREFIX)

    def check_api_credential(self, api_key: Optional[str]) -> None:
        """
        Raise if the configured OpenAI key is unusable.
        An empty key is reported as missing, a key without the `sk-` prefix
        as malformed.
        """
        if not api_key or not api_key.strip():
            logger.error("OpenAI API key is not configured.")
            raise MissingCredential("OpenAI API key is not configured")

        if not self.is_valid_api_key_format(api_key):
            logger.error(f"OpenAI API key has an invalid format (hash: {self.hash_api_key(api_key)})")
            raise InvalidCredentialFormat(
                f"OpenAI API key has an invalid format: it must start with '{OPENAI_KEY_PREFIX}'"
            )


# Global security manager instance
security_manager = SecurityManager()
