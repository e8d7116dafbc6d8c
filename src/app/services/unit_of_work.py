from abc import ABC, abstractmethod

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.app.repositories.authorization_code_repository import IAuthorizationCodeRepository
from src.app.repositories.login_pin_repository import ILoginPinRepository
from src.app.repositories.oauth_client_repository import IOAuthClientRepository
from src.app.repositories.refresh_token_repository import IRefreshTokenRepository
from src.app.repositories.session_repository import ISessionRepository
from src.app.repositories.single_use_token_repository import ISingleUseTokenRepository
from src.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - defines repository access and transaction management"""

    # Repository properties (initialized in __aenter__)
    users: IUserRepository
    sessions: ISessionRepository
    single_use_tokens: ISingleUseTokenRepository
    login_pins: ILoginPinRepository
    oauth_clients: IOAuthClientRepository
    authorization_codes: IAuthorizationCodeRepository
    refresh_tokens: IRefreshTokenRepository
    audit_events: IAuditEventRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
