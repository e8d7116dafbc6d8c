"""
Token Signer

HMAC-SHA256 primitive shared by every signed single-use token.

Token format:
    base64url(payload) + "." + base64url(HMAC-SHA256(base64url(payload), key))

Both parts are base64url without padding.
"""

import base64
import binascii
import hashlib
import hmac
import logging

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

logger = logging.getLogger(__name__)

HKDF_SALT = b"sso-token-signer"


class InvalidTokenError(Exception):
    """Malformed token or signature mismatch. Treated as tamper evidence."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    try:
        raw = data.encode("ascii")
        return base64.urlsafe_b64decode(raw + b"=" * (-len(raw) % 4))
    except (UnicodeEncodeError, binascii.Error, ValueError) as e:
        raise InvalidTokenError() from e


def sign(payload: bytes, secret: bytes) -> str:
    """Return the base64url HMAC-SHA256 signature of payload"""
    return b64url_encode(hmac.new(secret, payload, hashlib.sha256).digest())


def verify(payload: bytes, signature: str, secret: bytes) -> bool:
    """Constant-time check of a base64url signature"""
    expected = sign(payload, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def derive_key(master: bytes, purpose: str, length: int = 32, salt: bytes = HKDF_SALT) -> bytes:
    """HKDF-SHA256 (RFC 5869) with the purpose name as info"""
    hkdf = HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=purpose.encode("utf-8"))
    return hkdf.derive(master)


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


class TokenSigner:
    """Seals and opens payload strings with one key"""

    def __init__(self, key: bytes):
        self.key = key

    def seal(self, payload: str) -> str:
        payload_part = b64url_encode(payload.encode("utf-8"))
        return f"{payload_part}.{sign(payload_part.encode('ascii'), self.key)}"

    def open(self, token: str) -> str:
        """
        Verify a sealed token and return its payload.

        The signature is always computed before anything is decoded so a
        garbage token costs the same as a well-formed one.

        Raises:
            InvalidTokenError: malformed token or signature mismatch
        """
        payload_part, _, signature = (token or "").partition(".")
        valid = verify(payload_part.encode("utf-8"), signature, self.key)

        if not valid or not payload_part or "." in signature:
            logger.warning("event=token_invalid_signature")
            raise InvalidTokenError()

        try:
            return b64url_decode(payload_part).decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning("event=token_malformed_payload")
            raise InvalidTokenError() from e
