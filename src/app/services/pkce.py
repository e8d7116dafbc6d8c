"""PKCE (RFC 7636). Only the S256 method is accepted."""

import hashlib
import hmac
import re

from src.app.services.token_signer import b64url_encode

S256 = "S256"
SUPPORTED_METHODS = [S256]

# 43-128 characters from the unreserved set
VERIFIER_PATTERN = re.compile(r"^[A-Za-z0-9\-._~]{43,128}$")
CHALLENGE_PATTERN = re.compile(r"^[A-Za-z0-9\-_]{43}$")


def compute_challenge(code_verifier: str) -> str:
    return b64url_encode(hashlib.sha256(code_verifier.encode("ascii")).digest())


def is_valid_challenge(code_challenge: str) -> bool:
    return bool(code_challenge) and bool(CHALLENGE_PATTERN.match(code_challenge))


def verify_code_verifier(code_verifier: str, code_challenge: str, method: str = S256) -> bool:
    if method != S256 or not code_verifier or not code_challenge:
        return False
    if not VERIFIER_PATTERN.match(code_verifier):
        return False
    return hmac.compare_digest(compute_challenge(code_verifier), code_challenge)
