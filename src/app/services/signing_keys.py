"""
JWT signing keys

Access and ID tokens are signed with an RSA private key. Relying parties
verify them with the public half published at /.well-known/jwks.json, so no
client ever holds material that can mint tokens.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from src.api.utils.jwt import public_jwk

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "RS256"
RSA_KEY_SIZE = 2048


@dataclass(frozen=True)
class SigningKey:
    kid: str
    private_key_pem: str
    public_key_pem: str

    def jwk(self) -> dict:
        return public_jwk(self.public_key_pem, self.kid, JWT_ALGORITHM)

    def jwks(self) -> dict:
        return {"keys": [self.jwk()]}


def _private_pem(key: rsa.RSAPrivateKey) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def _public_pem(key: rsa.RSAPrivateKey) -> str:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@lru_cache(maxsize=None)
def load_signing_key(private_key_pem: Optional[str], kid: str) -> SigningKey:
    """
    Build the signing key from a PEM private key.

    Without one a key pair is generated for the life of the process; tokens
    signed with it stop verifying after a restart.
    """
    if private_key_pem:
        key = serialization.load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
        if not isinstance(key, rsa.RSAPrivateKey):
            raise ValueError("JWT private key must be an RSA key")
    else:
        key = rsa.generate_private_key(public_exponent=65537, key_size=RSA_KEY_SIZE)
        logger.warning(f"event=jwt_key_generated kid={kid} persistent=false")

    return SigningKey(kid=kid, private_key_pem=_private_pem(key), public_key_pem=_public_pem(key))
