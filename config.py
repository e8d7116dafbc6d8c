import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./sso.db")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENVIRONMENT = data.get("ENVIRONMENT", "development")
    ADMIN_API_KEY = data.get("ADMIN_API_KEY", "test-admin-key-12345")

    # Signing material
    TOKEN_SIGNING_SECRET = data.get(
        "TOKEN_SIGNING_SECRET", "dev-signing-secret-change-in-production"
    )
    # RS256 key for access and ID tokens; generated per process when unset
    JWT_PRIVATE_KEY = data.get("JWT_PRIVATE_KEY")
    JWT_PRIVATE_KEY_PATH = data.get("JWT_PRIVATE_KEY_PATH")
    JWT_KEY_ID = data.get("JWT_KEY_ID", "sso-2025")
    JWT_ISSUER = data.get("JWT_ISSUER", "http://localhost:8000")

    # OAuth2 / OIDC lifetimes (seconds)
    ACCESS_TOKEN_TTL_SECONDS = data.get("ACCESS_TOKEN_TTL_SECONDS", 3600)
    ID_TOKEN_TTL_SECONDS = data.get("ID_TOKEN_TTL_SECONDS", 3600)
    REFRESH_TOKEN_TTL_SECONDS = data.get("REFRESH_TOKEN_TTL_SECONDS", 30 * 24 * 3600)
    AUTHORIZATION_CODE_TTL_SECONDS = data.get("AUTHORIZATION_CODE_TTL_SECONDS", 600)
    OAUTH_CUSTOM_SCOPES = data.get("OAUTH_CUSTOM_SCOPES", [])

    # Sessions
    SESSION_TTL_SECONDS = data.get("SESSION_TTL_SECONDS", 7 * 24 * 3600)
    SESSION_COOKIE_NAME = data.get("SESSION_COOKIE_NAME", "sso-session")
    SESSION_COOKIE_DOMAIN = data.get("SESSION_COOKIE_DOMAIN", None)
    SESSION_RETENTION_DAYS = data.get("SESSION_RETENTION_DAYS", 30)

    # Single-use tokens
    MAGIC_LINK_TTL_SECONDS = data.get("MAGIC_LINK_TTL_SECONDS", 900)
    MAGIC_LINK_BASE_URL = data.get(
        "MAGIC_LINK_BASE_URL", "http://localhost:8000/auth/magic-login"
    )
    PASSWORD_RESET_TTL_SECONDS = data.get("PASSWORD_RESET_TTL_SECONDS", 900)
    PASSWORD_RESET_BASE_URL = data.get(
        "PASSWORD_RESET_BASE_URL", "http://localhost:3000/reset-password"
    )

    # Step-up PIN
    PIN_ENABLED = bool(data.get("PIN_ENABLED", True))
    PIN_TTL_SECONDS = data.get("PIN_TTL_SECONDS", 300)
    PIN_MAX_ATTEMPTS = data.get("PIN_MAX_ATTEMPTS", 3)
    PIN_EVERY_N_LOGINS = data.get("PIN_EVERY_N_LOGINS", 5)

    # Abuse protection
    FAILED_LOGIN_DELAY_MS = data.get("FAILED_LOGIN_DELAY_MS", 300)
    RATE_LIMIT_LOGIN_MAX = data.get("RATE_LIMIT_LOGIN_MAX", 5)
    RATE_LIMIT_LOGIN_WINDOW_SECONDS = data.get("RATE_LIMIT_LOGIN_WINDOW_SECONDS", 900)
    RATE_LIMIT_STRICT_MAX = data.get("RATE_LIMIT_STRICT_MAX", 3)
    RATE_LIMIT_STRICT_WINDOW_SECONDS = data.get("RATE_LIMIT_STRICT_WINDOW_SECONDS", 900)
    RATE_LIMIT_DEV_BYPASS = bool(data.get("RATE_LIMIT_DEV_BYPASS", False))
    BCRYPT_ROUNDS = data.get("BCRYPT_ROUNDS", 12)

    LOGIN_URL = data.get("LOGIN_URL", "http://localhost:3000/login")
    EXPIRY_SWEEP_INTERVAL_SECONDS = data.get("EXPIRY_SWEEP_INTERVAL_SECONDS", 300)
    AUTO_CREATE_TABLES = bool(data.get("AUTO_CREATE_TABLES", True))
