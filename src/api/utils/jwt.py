from typing import List, Optional, Union

from jose import JWTError, jwk, jwt


def encode_jwt(claims: dict, key: str, algorithm: str = "RS256", kid: Optional[str] = None) -> str:
    """
    Sign a claims set

    Args:
        claims: JWT claims (exp/iat as epoch seconds)
        key: PEM private key (RS256) or HMAC secret
        algorithm: JWS algorithm
        kid: Key id placed in the header so verifiers can pick the JWKS entry

    Returns:
        Compact JWT string
    """
    headers = {"kid": kid} if kid else None
    return jwt.encode(claims, key, algorithm=algorithm, headers=headers)


def decode_jwt(
    token: str,
    key: Union[str, dict],
    algorithms: List[str],
    audience: Optional[str] = None,
    issuer: Optional[str] = None,
) -> Optional[dict]:
    """
    Verify and decode JWT token

    Signature, exp and iss are always checked; aud only when audience is given.
    key may be a PEM public key, a JWK or a whole JWKS.

    Returns:
        Decoded payload dict or None if invalid
    """
    try:
        return jwt.decode(
            token,
            key,
            algorithms=algorithms,
            audience=audience,
            issuer=issuer,
            options={"verify_aud": audience is not None},
        )
    except JWTError:
        return None


def public_jwk(public_key_pem: str, kid: str, algorithm: str = "RS256") -> dict:
    """RFC 7517 entry for a public key"""
    entry = jwk.construct(public_key_pem, algorithm).to_dict()
    entry.update({"kid": kid, "use": "sig", "alg": algorithm})
    return entry
