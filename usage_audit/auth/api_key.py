"""API key generation, resolution and masking utilities."""

import secrets
from collections.abc import Mapping

from usage_audit.exceptions import MissingKeyError

KEY_QUERY_PARAM = "key"
KEY_HEADER = "x-api-key"


def generate_api_key() -> str:
    """
    Generate a random opaque API key.

    Returns:
        32 lowercase hex characters (128 bits of entropy)
    """
    return secrets.token_hex(16)


def resolve_api_key(
    query_params: Mapping[str, str], headers: Mapping[str, str]
) -> str:
    """
    Take the API key from the ``key`` query parameter or ``x-api-key`` header.

    The query parameter wins when both are present.

    Args:
        query_params: Inbound query parameters
        headers: Inbound headers (case-insensitive mapping)

    Returns:
        The raw API key

    Raises:
        MissingKeyError: If neither source carries a non-empty key
    """
    api_key = query_params.get(KEY_QUERY_PARAM) or headers.get(KEY_HEADER)
    if not api_key:
        raise MissingKeyError()
    return api_key


def mask_api_key(api_key: str) -> str:
    """Partial key for display: first 8 characters followed by an ellipsis."""
    return api_key[:8] + "..."
