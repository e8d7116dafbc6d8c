"""
Security settings

Every service and use case receives a SecuritySettings instance through its
constructor instead of reading ApplicationConfig.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from src.app.services.signing_keys import SigningKey, load_signing_key
from src.app.services.token_signer import derive_key

MAX_AUTHORIZATION_CODE_TTL_SECONDS = 600


def read_private_key(config) -> Optional[str]:
    """PEM from JWT_PRIVATE_KEY (escaped newlines allowed) or JWT_PRIVATE_KEY_PATH"""
    if config.JWT_PRIVATE_KEY:
        return config.JWT_PRIVATE_KEY.replace("\\n", "\n")
    if config.JWT_PRIVATE_KEY_PATH:
        with open(config.JWT_PRIVATE_KEY_PATH, "r") as key_file:
            return key_file.read()
    if config.ENVIRONMENT == "production":
        raise ValueError("JWT_PRIVATE_KEY or JWT_PRIVATE_KEY_PATH is required in production")
    return None


class SecuritySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    environment: str = "development"

    token_signing_secret: str
    jwt_private_key: Optional[str] = None
    jwt_key_id: str = "sso-2025"
    jwt_issuer: str = "http://localhost:8000"

    access_token_ttl_seconds: int = 3600
    id_token_ttl_seconds: int = 3600
    refresh_token_ttl_seconds: int = 30 * 24 * 3600
    authorization_code_ttl_seconds: int = 600
    custom_scopes: List[str] = []

    session_ttl_seconds: int = 7 * 24 * 3600
    session_cookie_name: str = "sso-session"
    session_cookie_domain: Optional[str] = None
    session_retention_days: int = 30

    magic_link_ttl_seconds: int = 900
    magic_link_base_url: str = "http://localhost:8000/auth/magic-login"
    password_reset_ttl_seconds: int = 900
    password_reset_base_url: str = "http://localhost:3000/reset-password"

    pin_enabled: bool = True
    pin_ttl_seconds: int = 300
    pin_max_attempts: int = 3
    pin_every_n_logins: int = 5

    failed_login_delay_ms: int = 300
    rate_limit_login_max: int = 5
    rate_limit_login_window_seconds: int = 900
    rate_limit_strict_max: int = 3
    rate_limit_strict_window_seconds: int = 900
    rate_limit_dev_bypass: bool = False
    bcrypt_rounds: int = 12

    login_url: str = "http://localhost:3000/login"

    @classmethod
    def from_config(cls, config) -> "SecuritySettings":
        return cls(
            environment=config.ENVIRONMENT,
            token_signing_secret=config.TOKEN_SIGNING_SECRET,
            jwt_private_key=read_private_key(config),
            jwt_key_id=config.JWT_KEY_ID,
            jwt_issuer=config.JWT_ISSUER,
            access_token_ttl_seconds=config.ACCESS_TOKEN_TTL_SECONDS,
            id_token_ttl_seconds=config.ID_TOKEN_TTL_SECONDS,
            refresh_token_ttl_seconds=config.REFRESH_TOKEN_TTL_SECONDS,
            authorization_code_ttl_seconds=min(
                config.AUTHORIZATION_CODE_TTL_SECONDS, MAX_AUTHORIZATION_CODE_TTL_SECONDS
            ),
            custom_scopes=list(config.OAUTH_CUSTOM_SCOPES or []),
            session_ttl_seconds=config.SESSION_TTL_SECONDS,
            session_cookie_name=config.SESSION_COOKIE_NAME,
            session_cookie_domain=config.SESSION_COOKIE_DOMAIN,
            session_retention_days=config.SESSION_RETENTION_DAYS,
            magic_link_ttl_seconds=config.MAGIC_LINK_TTL_SECONDS,
            magic_link_base_url=config.MAGIC_LINK_BASE_URL,
            password_reset_ttl_seconds=config.PASSWORD_RESET_TTL_SECONDS,
            password_reset_base_url=config.PASSWORD_RESET_BASE_URL,
            pin_enabled=config.PIN_ENABLED,
            pin_ttl_seconds=config.PIN_TTL_SECONDS,
            pin_max_attempts=config.PIN_MAX_ATTEMPTS,
            pin_every_n_logins=config.PIN_EVERY_N_LOGINS,
            failed_login_delay_ms=config.FAILED_LOGIN_DELAY_MS,
            rate_limit_login_max=config.RATE_LIMIT_LOGIN_MAX,
            rate_limit_login_window_seconds=config.RATE_LIMIT_LOGIN_WINDOW_SECONDS,
            rate_limit_strict_max=config.RATE_LIMIT_STRICT_MAX,
            rate_limit_strict_window_seconds=config.RATE_LIMIT_STRICT_WINDOW_SECONDS,
            rate_limit_dev_bypass=config.RATE_LIMIT_DEV_BYPASS,
            bcrypt_rounds=config.BCRYPT_ROUNDS,
            login_url=config.LOGIN_URL,
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def signing_key(self, purpose: str) -> bytes:
        """Per-purpose HMAC key derived from the master signing secret"""
        return derive_key(self.token_signing_secret.encode("utf-8"), purpose)

    def jwt_key(self) -> SigningKey:
        """RSA key pair for access and ID tokens"""
        return load_signing_key(self.jwt_private_key, self.jwt_key_id)
