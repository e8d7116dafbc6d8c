from typing import Optional

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from libs.result import Error
from src.adapter.services.notifier import LoggingNotifier
from src.adapter.services.rate_limiter import InMemoryRateLimiter
from src.adapter.services.session_activity import SqlSessionActivityRecorder
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError
from src.api.utils.cookies import decode_session_cookie
from src.app.services.notifier import INotifier
from src.app.services.rate_limiter import IRateLimiter
from src.app.services.session_activity import ISessionActivityRecorder
from src.app.services.settings import SecuritySettings
from src.app.use_cases.auth import SessionInfo, ValidateSessionUseCase

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

settings = SecuritySettings.from_config(ApplicationConfig)
rate_limiter = InMemoryRateLimiter()
notifier = LoggingNotifier(reveal_secrets=not settings.is_production)


def get_session_factory():
    return AsyncSessionLocal


async def get_unit_of_work(session_factory=Depends(get_session_factory)):
    async with session_factory() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_settings() -> SecuritySettings:
    return settings


def get_rate_limiter() -> IRateLimiter:
    return rate_limiter


def get_notifier() -> INotifier:
    return notifier


def get_activity_recorder(session_factory=Depends(get_session_factory)) -> ISessionActivityRecorder:
    return SqlSessionActivityRecorder(session_factory)


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def session_token_from_request(request: Request, settings: SecuritySettings) -> Optional[str]:
    return decode_session_cookie(request.cookies.get(settings.session_cookie_name))


async def get_optional_session(
    request: Request,
    session_factory=Depends(get_session_factory),
    settings: SecuritySettings = Depends(get_settings),
    activity_recorder: ISessionActivityRecorder = Depends(get_activity_recorder),
) -> Optional[SessionInfo]:
    """Session behind the cookie, or None. Uses its own unit of work."""
    token = session_token_from_request(request, settings)
    if not token:
        return None

    async with session_factory() as session:
        use_case = ValidateSessionUseCase(SqlAlchemyUnitOfWork(session), settings, activity_recorder)
        result = await use_case.execute(token)

    return result.value if result.is_ok() else None


async def get_current_session(
    session: Optional[SessionInfo] = Depends(get_optional_session),
) -> SessionInfo:
    """
    Dependency that requires a valid session cookie.

    Raises:
        ClientError: 401 for a missing, unknown, revoked or expired session
    """
    if session is None:
        raise ClientError(
            Error("UNAUTHENTICATED", "Invalid or expired session"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return session
