import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.services.settings import SecuritySettings

REPOSITORY_METHODS = {
    "users": ["get_by_email", "get_by_id", "create", "update", "increment_login_count"],
    "sessions": [
        "get_by_id",
        "get_by_token_hash",
        "get_active_by_user_id",
        "create",
        "revoke_by_token_hash",
        "revoke_by_id",
        "revoke_all_by_user_id",
        "revoke_all_except",
        "touch",
        "delete_revoked_before",
        "delete_expired",
    ],
    "single_use_tokens": ["create", "get_by_token_hash", "mark_used", "mark_all_used_by_user", "delete_expired"],
    "login_pins": ["create", "get_latest", "consume_attempt", "mark_used", "supersede_pending", "delete_expired"],
    "oauth_clients": ["get_by_client_id", "list_all", "create", "update", "delete"],
    "authorization_codes": ["create", "get_by_code_hash", "mark_used", "delete_expired"],
    "refresh_tokens": [
        "create",
        "get_by_token_hash",
        "revoke",
        "revoke_chain",
        "revoke_all_by_user_id",
        "delete_expired",
    ],
    "audit_events": ["create", "list_paginated"],
}


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    for repo_name, methods in REPOSITORY_METHODS.items():
        repo = MagicMock()
        for method in methods:
            setattr(repo, method, AsyncMock())
        setattr(uow, repo_name, repo)

    # create() hands back what it was given, like the SQLModel adapters
    for repo_name in REPOSITORY_METHODS:
        getattr(uow, repo_name).create.side_effect = lambda entity: entity

    return uow


@pytest.fixture
def settings():
    return SecuritySettings(
        token_signing_secret="unit-test-signing-secret",
        jwt_key_id="unit-test-key",
        jwt_issuer="http://sso.test",
        bcrypt_rounds=4,
        failed_login_delay_ms=0,
    )
