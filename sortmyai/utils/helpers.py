"""
Helper functions for common operations.
"""
import hashlib
from typing import Tuple

CONVERSATION_KEY_LENGTH = 32


def generate_cache_key(*parts: str) -> str:
    """
    Generate a cache key from parts.

    Example:
        >>> generate_cache_key("user", "123", "profile")
        'user:123:profile'
    """
    return ":".join(str(part) for part in parts)


def calculate_hash(data: str) -> str:
    """
    Calculate SHA256 hash of data.

    Example:
        >>> calculate_hash("hello world")
        'b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9'
    """
    return hashlib.sha256(data.encode()).hexdigest()


def sorted_pair(user_a: str, user_b: str) -> Tuple[str, str]:
    """Return the two ids in ascending order."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


def conversation_key(user_a: str, user_b: str) -> str:
    """
    Deterministic conversation id for a pair of users.

    The argument order does not matter:

        >>> conversation_key("alice", "bob") == conversation_key("bob", "alice")
        True
    """
    first, second = sorted_pair(user_a, user_b)
    return calculate_hash(f"{first}:{second}")[:CONVERSATION_KEY_LENGTH]
