"""
Authorization Code Issuer

issued -> exchanged, or issued -> expired. Both end states are terminal.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional
from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services.pkce import S256, verify_code_verifier
from src.app.services.settings import MAX_AUTHORIZATION_CODE_TTL_SECONDS, SecuritySettings
from src.app.services.token_signer import sha256_hex
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.entities import AuthorizationCode

logger = logging.getLogger(__name__)


def _invalid_grant() -> Error:
    return Error("invalid_grant", "Invalid authorization code")


class AuthorizationCodeIssuer:
    def __init__(self, uow: UnitOfWork, settings: SecuritySettings):
        self.uow = uow
        self.settings = settings

    async def create(
        self,
        client_id: str,
        user_id: UUID,
        redirect_uri: str,
        scope: str,
        code_challenge: Optional[str] = None,
        code_challenge_method: Optional[str] = None,
        nonce: Optional[str] = None,
    ) -> str:
        code = secrets.token_urlsafe(32)
        now = utcnow()
        ttl = min(self.settings.authorization_code_ttl_seconds, MAX_AUTHORIZATION_CODE_TTL_SECONDS)

        await self.uow.authorization_codes.create(
            AuthorizationCode(
                code_hash=sha256_hex(code),
                client_id=client_id,
                user_id=user_id,
                redirect_uri=redirect_uri,
                scope=scope,
                nonce=nonce,
                code_challenge=code_challenge,
                code_challenge_method=(code_challenge_method or S256) if code_challenge else None,
                created_at=now,
                expires_at=now + timedelta(seconds=ttl),
            )
        )

        logger.info(f"event=code_created client_id={client_id} user_id={user_id} code={code[:8]}...")
        return code

    async def exchange(
        self,
        code: str,
        client_id: str,
        redirect_uri: str,
        code_verifier: Optional[str] = None,
    ) -> Result[AuthorizationCode]:
        """
        Validate every binding, then burn the code with a conditional update.

        Every failure is reported as invalid_grant; the reason is only logged.
        """
        if not code:
            return Return.err(_invalid_grant())

        prefix = code[:8]
        code_hash = sha256_hex(code)
        record = await self.uow.authorization_codes.get_by_code_hash(code_hash)

        reason = None
        now = utcnow()
        if not record:
            reason = "unknown"
        elif record.used_at is not None:
            reason = "already_used"
        elif record.expires_at <= now:
            reason = "expired"
        elif record.client_id != client_id:
            reason = "client_mismatch"
        elif record.redirect_uri != redirect_uri:
            reason = "redirect_uri_mismatch"
        elif record.code_challenge and not verify_code_verifier(
            code_verifier, record.code_challenge, record.code_challenge_method
        ):
            reason = "pkce_failed"

        if reason:
            logger.warning(f"event=code_rejected reason={reason} client_id={client_id} code={prefix}...")
            return Return.err(_invalid_grant())

        if not await self.uow.authorization_codes.mark_used(code_hash, now):
            logger.warning(f"event=code_rejected reason=race_lost client_id={client_id} code={prefix}...")
            return Return.err(_invalid_grant())

        record.used_at = now
        logger.info(f"event=code_consumed client_id={client_id} user_id={record.user_id}")
        return Return.ok(record)

    async def revoke(self, code: str) -> bool:
        revoked = await self.uow.authorization_codes.mark_used(sha256_hex(code), utcnow())
        if revoked:
            logger.info(f"event=code_revoked code={code[:8]}...")
        return revoked
