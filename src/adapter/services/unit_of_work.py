from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories.audit_event_repository import AuditEventRepository
from src.adapter.repositories.authorization_code_repository import AuthorizationCodeRepository
from src.adapter.repositories.login_pin_repository import LoginPinRepository
from src.adapter.repositories.oauth_client_repository import OAuthClientRepository
from src.adapter.repositories.refresh_token_repository import RefreshTokenRepository
from src.adapter.repositories.session_repository import SessionRepository
from src.adapter.repositories.single_use_token_repository import SingleUseTokenRepository
from src.adapter.repositories.user_repository import UserRepository
from src.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.users = UserRepository(self.session)
        self.sessions = SessionRepository(self.session)
        self.single_use_tokens = SingleUseTokenRepository(self.session)
        self.login_pins = LoginPinRepository(self.session)
        self.oauth_clients = OAuthClientRepository(self.session)
        self.authorization_codes = AuthorizationCodeRepository(self.session)
        self.refresh_tokens = RefreshTokenRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
