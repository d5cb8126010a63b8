"""
Request signing for the Last.fm API.
"""
import hashlib
from typing import Mapping


def sign(params: Mapping[str, str], secret: str) -> str:
    """
    Build API signature for authenticated requests.

    Keys are sorted, each key is followed directly by its value, and the
    shared secret is appended before hashing.

    Args:
        params: Request parameters (without api_sig)
        secret: Shared secret issued with the API key

    Returns:
        MD5 hash signature string (32 lowercase hex characters)
    """
    signature_string = ''.join(f"{key}{params[key]}" for key in sorted(params))
    signature_string += secret

    return hashlib.md5(signature_string.encode('utf-8')).hexdigest()
