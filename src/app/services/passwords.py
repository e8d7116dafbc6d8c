"""bcrypt helpers for user passwords and client secrets"""

from typing import Dict

import bcrypt

_dummy_hashes: Dict[int, bytes] = {}


def hash_secret(secret: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(secret.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def check_secret(secret: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(secret.encode(), hashed.encode())
    except ValueError:
        return False


def dummy_check(secret: str, rounds: int = 12) -> None:
    """Spend the same bcrypt work as a real check when there is nothing to check"""
    if rounds not in _dummy_hashes:
        _dummy_hashes[rounds] = bcrypt.hashpw(b"dummy-secret", bcrypt.gensalt(rounds=rounds))
    bcrypt.checkpw((secret or "").encode(), _dummy_hashes[rounds])
