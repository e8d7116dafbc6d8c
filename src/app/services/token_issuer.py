"""
Token Issuer

Access and ID tokens are stateless RS256 JWTs; verification never consults
the database, so revoking them is bounded by their one hour lifetime.
The public key is published as a JWKS for relying parties.
Refresh tokens are opaque, stored by hash and rotated on every use. Each
rotation chain shares a chain_id; presenting a token that was already
rotated revokes the whole chain.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Optional
from uuid import UUID, uuid4

from libs.result import Error, Result, Return
from src.api.utils.jwt import decode_jwt, encode_jwt
from src.app.services import scopes as scope_catalog
from src.app.services.settings import SecuritySettings
from src.app.services.signing_keys import JWT_ALGORITHM
from src.app.services.token_signer import sha256_hex
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import RefreshToken, RevokeReason, User, UserStatus

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access_token"
ID_TOKEN_TYPE = "id_token"
CLIENT_CREDENTIALS = "client_credentials"


@dataclass(frozen=True)
class TokenSet:
    access_token: str
    expires_in: int
    scope: str
    token_type: str = "Bearer"
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None


def _epoch(moment: datetime) -> int:
    return int(moment.timestamp())


def _invalid_grant(message: str = "Invalid refresh token", **details) -> Error:
    return Error("invalid_grant", message, details=details)


class TokenIssuer:
    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings
        self.key = settings.jwt_key()

    # Stateless tokens

    def _sign(self, claims: dict) -> str:
        return encode_jwt(claims, self.key.private_key_pem, JWT_ALGORITHM, kid=self.key.kid)

    def issue_access_token(
        self, user_id: UUID, client_id: str, scope: str, role: Optional[str] = None
    ) -> str:
        now = datetime.now(UTC)
        claims = {
            "iss": self.settings.jwt_issuer,
            "sub": str(user_id),
            "aud": client_id,
            "iat": _epoch(now),
            "exp": _epoch(now + timedelta(seconds=self.settings.access_token_ttl_seconds)),
            "jti": str(uuid4()),
            "scope": scope,
            "client_id": client_id,
            "token_type": ACCESS_TOKEN_TYPE,
        }
        if role:
            claims["role"] = role
        return self._sign(claims)

    def issue_client_access_token(self, client_id: str, scope: str) -> str:
        """Access token for a client acting on its own behalf; sub is the client"""
        now = datetime.now(UTC)
        return self._sign(
            {
                "iss": self.settings.jwt_issuer,
                "sub": client_id,
                "aud": client_id,
                "iat": _epoch(now),
                "exp": _epoch(now + timedelta(seconds=self.settings.access_token_ttl_seconds)),
                "jti": str(uuid4()),
                "scope": scope,
                "client_id": client_id,
                "gty": CLIENT_CREDENTIALS,
                "token_type": ACCESS_TOKEN_TYPE,
            }
        )

    def issue_id_token(
        self,
        user: User,
        client_id: str,
        scope: str,
        nonce: Optional[str] = None,
        auth_time: Optional[datetime] = None,
    ) -> str:
        now = datetime.now(UTC)
        claims = {
            "iss": self.settings.jwt_issuer,
            "sub": str(user.id),
            "aud": client_id,
            "iat": _epoch(now),
            "exp": _epoch(now + timedelta(seconds=self.settings.id_token_ttl_seconds)),
            "token_type": ID_TOKEN_TYPE,
        }
        if auth_time is not None:
            claims["auth_time"] = _epoch(auth_time.replace(tzinfo=UTC))
        if nonce:
            claims["nonce"] = nonce
        claims.update(user_claims(user, scope))
        return self._sign(claims)

    def _verify(self, token: str, token_type: str, audience: Optional[str]) -> Result[dict]:
        claims = decode_jwt(
            token,
            self.key.public_key_pem,
            algorithms=[JWT_ALGORITHM],
            audience=audience,
            issuer=self.settings.jwt_issuer,
        )
        if not claims or claims.get("token_type") != token_type:
            return Return.err(Error("invalid_token", "Invalid or expired token"))
        return Return.ok(claims)

    def verify_access_token(self, token: str, audience: Optional[str] = None) -> Result[dict]:
        return self._verify(token, ACCESS_TOKEN_TYPE, audience)

    def verify_id_token(self, token: str, audience: str) -> Result[dict]:
        return self._verify(token, ID_TOKEN_TYPE, audience)

    # Refresh tokens

    async def issue_refresh_token(
        self,
        user_id: UUID,
        client_id: str,
        scope: str,
        chain_id: Optional[UUID] = None,
        parent_token_hash: Optional[str] = None,
    ) -> str:
        token = secrets.token_urlsafe(48)
        now = utcnow()
        await self.uow.refresh_tokens.create(
            RefreshToken(
                token_hash=sha256_hex(token),
                chain_id=chain_id or uuid4(),
                parent_token_hash=parent_token_hash,
                client_id=client_id,
                user_id=user_id,
                scope=scope,
                created_at=now,
                expires_at=now + timedelta(seconds=self.settings.refresh_token_ttl_seconds),
            )
        )
        return token

    async def issue_tokens(
        self,
        user: User,
        client_id: str,
        scope: str,
        nonce: Optional[str] = None,
        with_refresh_token: bool = False,
    ) -> TokenSet:
        """Access token always; ID token with openid; refresh token on request"""
        id_token = None
        if scope_catalog.has_scope(scope, scope_catalog.OPENID):
            id_token = self.issue_id_token(
                user, client_id, scope, nonce=nonce, auth_time=user.last_login_at
            )

        refresh_token = None
        if with_refresh_token:
            refresh_token = await self.issue_refresh_token(user.id, client_id, scope)

        return TokenSet(
            access_token=self.issue_access_token(user.id, client_id, scope, role=user.role),
            expires_in=self.settings.access_token_ttl_seconds,
            scope=scope,
            id_token=id_token,
            refresh_token=refresh_token,
        )

    async def refresh(
        self, refresh_token: str, client_id: str, scope: Optional[str] = None
    ) -> Result[TokenSet]:
        """
        Rotate a refresh token.

        The replacement is written before the old token is revoked. If the
        conditional revoke finds the old token already gone, another request
        rotated it first and the chain is treated as compromised.
        """
        token_hash = sha256_hex(refresh_token or "")
        record = await self.uow.refresh_tokens.get_by_token_hash(token_hash)
        now = utcnow()

        if not record:
            logger.warning(f"event=refresh_rejected reason=unknown client_id={client_id}")
            return Return.err(_invalid_grant())

        if record.client_id != client_id:
            logger.warning(f"event=refresh_rejected reason=client_mismatch client_id={client_id}")
            return Return.err(_invalid_grant())

        if record.revoked_at is not None:
            if record.revoke_reason == RevokeReason.rotated.value:
                return Return.err(await self._reuse_detected(record))
            logger.warning(f"event=refresh_rejected reason=revoked client_id={client_id}")
            return Return.err(_invalid_grant())

        if record.expires_at <= now:
            logger.info(f"event=refresh_rejected reason=expired client_id={client_id}")
            return Return.err(_invalid_grant())

        granted_scope = record.scope
        if scope:
            if not scope_catalog.is_subset(scope, record.scope):
                return Return.err(Error("invalid_scope", "Requested scope exceeds the original grant"))
            granted_scope = scope_catalog.format_scopes(scope_catalog.parse_scopes(scope))

        user = await self.uow.users.get_by_id(record.user_id)
        if not user or user.status != UserStatus.active:
            await self.uow.refresh_tokens.revoke_chain(
                record.chain_id, RevokeReason.user_revocation.value, now
            )
            logger.warning(f"event=refresh_rejected reason=user_inactive user_id={record.user_id}")
            return Return.err(_invalid_grant())

        new_refresh_token = await self.issue_refresh_token(
            record.user_id,
            client_id,
            record.scope,
            chain_id=record.chain_id,
            parent_token_hash=record.token_hash,
        )

        if not await self.uow.refresh_tokens.revoke(token_hash, RevokeReason.rotated.value, now):
            return Return.err(await self._reuse_detected(record))

        tokens = await self.issue_tokens(user, client_id, granted_scope)
        logger.info(f"event=refresh_rotated client_id={client_id} user_id={user.id} chain_id={record.chain_id}")
        return Return.ok(
            TokenSet(
                access_token=tokens.access_token,
                expires_in=tokens.expires_in,
                scope=granted_scope,
                id_token=tokens.id_token,
                refresh_token=new_refresh_token,
            )
        )

    async def _reuse_detected(self, record: RefreshToken) -> Error:
        count = await self.uow.refresh_tokens.revoke_chain(
            record.chain_id, RevokeReason.reuse_detected.value, utcnow()
        )
        logger.warning(
            f"event=refresh_reuse_detected client_id={record.client_id} "
            f"user_id={record.user_id} chain_id={record.chain_id} revoked={count}"
        )
        return _invalid_grant(
            reuse_detected=True, user_id=record.user_id, chain_id=str(record.chain_id)
        )

    async def find_active_refresh_token(self, token: str) -> Optional[RefreshToken]:
        """Unrevoked, unexpired refresh token record, or None"""
        record = await self.uow.refresh_tokens.get_by_token_hash(sha256_hex(token or ""))
        if not record or record.revoked_at is not None or record.expires_at <= utcnow():
            return None
        return record

    async def revoke(self, token: str, client_id: Optional[str] = None) -> bool:
        """Revoke a refresh token. Access and ID tokens are unaffected."""
        token_hash = sha256_hex(token or "")
        record = await self.uow.refresh_tokens.get_by_token_hash(token_hash)
        if not record or (client_id is not None and record.client_id != client_id):
            return False

        revoked = await self.uow.refresh_tokens.revoke(
            token_hash, RevokeReason.client_revocation.value, utcnow()
        )
        if revoked:
            logger.info(f"event=refresh_revoked client_id={record.client_id} user_id={record.user_id}")
        return revoked

    async def revoke_for_user(
        self, user_id: UUID, reason: RevokeReason, client_id: Optional[str] = None
    ) -> int:
        count = await self.uow.refresh_tokens.revoke_all_by_user_id(
            user_id, reason.value, utcnow(), client_id
        )
        logger.info(f"event=refresh_revoked_for_user user_id={user_id} count={count}")
        return count


def user_claims(user: User, scope: str) -> dict:
    """Profile and email claims released by the granted scope"""
    released = scope_catalog.claims_for_scopes(scope)
    claims = {"sub": str(user.id)}
    if "name" in released:
        claims["name"] = user.name or ""
        updated = user.updated_at or user.created_at
        if updated is not None:
            claims["updated_at"] = _epoch(updated.replace(tzinfo=UTC))
    if "email" in released:
        claims["email"] = user.email
        claims["email_verified"] = bool(user.email_verified)
    return claims
