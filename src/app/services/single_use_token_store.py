"""
Single-Use Token Store

One issue/consume/invalidate state machine for every purpose-tagged signed
token (magic links, password resets).

Canonical payload: jti.userType.purpose.expISO[.orgId]
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID, uuid4

from libs.result import Error, Result, Return
from src.app.services.settings import SecuritySettings
from src.app.services.token_signer import InvalidTokenError, TokenSigner, sha256_hex
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import SingleUseToken, TokenPurpose, UserType

logger = logging.getLogger(__name__)

EXP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    jti: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenClaims:
    jti: str
    user_type: UserType
    purpose: TokenPurpose
    expires_at: datetime
    org_id: Optional[str] = None


def build_payload(
    jti: str,
    user_type: UserType,
    purpose: TokenPurpose,
    expires_at: datetime,
    org_id: Optional[UUID] = None,
) -> str:
    parts = [jti, user_type.value, purpose.value, expires_at.strftime(EXP_FORMAT)]
    if org_id:
        parts.append(str(org_id))
    return ".".join(parts)


def parse_payload(payload: str) -> TokenClaims:
    parts = payload.split(".")
    if len(parts) not in (4, 5):
        raise InvalidTokenError()
    try:
        return TokenClaims(
            jti=parts[0],
            user_type=UserType(parts[1]),
            purpose=TokenPurpose(parts[2]),
            expires_at=datetime.strptime(parts[3], EXP_FORMAT),
            org_id=parts[4] if len(parts) == 5 else None,
        )
    except ValueError as e:
        raise InvalidTokenError() from e


class SingleUseTokenStore:
    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings

    def _signer(self, purpose: TokenPurpose) -> TokenSigner:
        return TokenSigner(self.settings.signing_key(purpose.value))

    def _default_ttl(self, purpose: TokenPurpose) -> int:
        if purpose == TokenPurpose.password_reset:
            return self.settings.password_reset_ttl_seconds
        return self.settings.magic_link_ttl_seconds

    async def issue(
        self,
        purpose: TokenPurpose,
        user_type: UserType,
        user_id: UUID,
        email: str,
        org_id: Optional[UUID] = None,
        ttl_seconds: Optional[int] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> IssuedToken:
        """
        Sign a new token and persist its hash.

        The raw token is returned to the caller and never stored.
        """
        now = utcnow().replace(microsecond=0)
        expires_at = now + timedelta(seconds=ttl_seconds or self._default_ttl(purpose))
        jti = str(uuid4())

        token = self._signer(purpose).seal(
            build_payload(jti, user_type, purpose, expires_at, org_id)
        )

        await self.uow.single_use_tokens.create(
            SingleUseToken(
                jti=jti,
                token_hash=sha256_hex(token),
                purpose=purpose,
                user_type=user_type,
                user_id=user_id,
                org_id=org_id,
                email=email,
                created_by_ip=ip,
                user_agent=user_agent,
                created_at=now,
                expires_at=expires_at,
            )
        )

        logger.info(f"event=token_issued purpose={purpose.value} jti={jti} user_id={user_id}")
        return IssuedToken(token=token, jti=jti, expires_at=expires_at)

    async def consume(self, token: str, purpose: TokenPurpose) -> Result[SingleUseToken]:
        """
        Validate and burn a token.

        Order: signature, purpose, expiry, lookup, used flag, conditional mark.

        Raises:
            InvalidTokenError: malformed token or bad signature
        """
        claims = parse_payload(self._signer(purpose).open(token))

        if claims.purpose != purpose:
            logger.warning(f"event=token_purpose_mismatch jti={claims.jti}")
            return Return.err(Error("TOKEN_PURPOSE_MISMATCH", "Invalid or expired token"))

        now = utcnow()
        if claims.expires_at <= now:
            logger.info(f"event=token_expired jti={claims.jti}")
            return Return.err(Error("TOKEN_EXPIRED", "Invalid or expired token"))

        token_hash = sha256_hex(token)
        record = await self.uow.single_use_tokens.get_by_token_hash(token_hash)
        if not record or record.purpose != purpose:
            logger.warning(f"event=token_not_found jti={claims.jti}")
            return Return.err(Error("TOKEN_NOT_FOUND", "Invalid or expired token"))

        if record.used_at is not None:
            logger.warning(f"event=token_already_used jti={claims.jti}")
            return Return.err(Error("TOKEN_ALREADY_USED", "Invalid or expired token"))

        if record.expires_at <= now:
            logger.info(f"event=token_expired jti={claims.jti}")
            return Return.err(Error("TOKEN_EXPIRED", "Invalid or expired token"))

        if not await self.uow.single_use_tokens.mark_used(token_hash, now):
            logger.warning(f"event=token_already_used jti={claims.jti} race=lost")
            return Return.err(Error("TOKEN_ALREADY_USED", "Invalid or expired token"))

        record.used_at = now
        logger.info(f"event=token_consumed purpose={purpose.value} jti={claims.jti}")
        return Return.ok(record)

    async def invalidate_by_user(
        self, user_id: UUID, purpose: Optional[TokenPurpose] = None
    ) -> int:
        count = await self.uow.single_use_tokens.mark_all_used_by_user(
            user_id, utcnow(), purpose
        )
        logger.info(f"event=tokens_invalidated user_id={user_id} count={count}")
        return count
