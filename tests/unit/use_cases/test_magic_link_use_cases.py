from urllib.parse import parse_qs, urlparse

import pytest

from src.app.services.token_signer import sha256_hex
from src.app.use_cases.auth.magic_login_use_case import MagicLoginUseCase
from src.app.use_cases.auth.request_magic_link_use_case import RequestMagicLinkUseCase
from src.domain.entities import UserStatus


@pytest.mark.asyncio
async def test_request_sends_link_with_token(mock_uow, settings, rate_limiter, notifier, user):
    mock_uow.users.get_by_email.return_value = user
    use_case = RequestMagicLinkUseCase(mock_uow, settings, rate_limiter, notifier)

    result = await use_case.execute("user@example.com", ip="1.1.1.1")

    assert result.value.status == "sent"
    email, link = notifier.send_magic_link.call_args.args
    assert email == "user@example.com"
    assert link.startswith(settings.magic_link_base_url + "?t=")
    token = parse_qs(urlparse(link).query)["t"][0]
    stored = mock_uow.single_use_tokens.create.call_args.args[0]
    assert stored.token_hash == sha256_hex(token)
    mock_uow.commit.assert_called_once()


@pytest.mark.asyncio
async def test_request_for_unknown_email_answers_the_same(mock_uow, settings, rate_limiter, notifier, user):
    use_case = RequestMagicLinkUseCase(mock_uow, settings, rate_limiter, notifier)
    mock_uow.users.get_by_email.return_value = user
    known = await use_case.execute("user@example.com")
    mock_uow.users.get_by_email.return_value = None
    unknown = await use_case.execute("ghost@example.com")

    assert known.value == unknown.value
    assert notifier.send_magic_link.await_count == 1


@pytest.mark.asyncio
async def test_request_is_strictly_rate_limited(mock_uow, settings, rate_limiter, notifier):
    mock_uow.users.get_by_email.return_value = None
    use_case = RequestMagicLinkUseCase(mock_uow, settings, rate_limiter, notifier)

    results = [await use_case.execute("x@example.com", ip="2.2.2.2") for _ in range(settings.rate_limit_strict_max + 1)]

    assert results[-1].error.code == "RATE_LIMITED"


@pytest.mark.asyncio
async def test_magic_login_consumes_and_creates_session(mock_uow, settings, rate_limiter, notifier, user):
    mock_uow.users.get_by_email.return_value = user
    await RequestMagicLinkUseCase(mock_uow, settings, rate_limiter, notifier).execute("user@example.com")
    token = parse_qs(urlparse(notifier.send_magic_link.call_args.args[1]).query)["t"][0]
    stored = mock_uow.single_use_tokens.create.call_args.args[0]
    mock_uow.single_use_tokens.get_by_token_hash.return_value = stored
    mock_uow.single_use_tokens.mark_used.return_value = True
    mock_uow.users.get_by_id.return_value = user
    mock_uow.users.update.side_effect = lambda u: u

    result = await MagicLoginUseCase(mock_uow, settings).execute(token)

    assert result.value.status == "authenticated"
    assert result.value.user.id == str(user.id)
    mock_uow.sessions.create.assert_called_once()


@pytest.mark.asyncio
async def test_magic_login_with_tampered_token(mock_uow, settings):
    result = await MagicLoginUseCase(mock_uow, settings).execute("abc.def")

    assert result.error.code == "INVALID_TOKEN"
    assert result.error.message == "Invalid or expired token"
    mock_uow.sessions.create.assert_not_called()


@pytest.mark.asyncio
async def test_magic_login_for_disabled_user_burns_token(mock_uow, settings, rate_limiter, notifier, user):
    mock_uow.users.get_by_email.return_value = user
    await RequestMagicLinkUseCase(mock_uow, settings, rate_limiter, notifier).execute("user@example.com")
    token = parse_qs(urlparse(notifier.send_magic_link.call_args.args[1]).query)["t"][0]
    mock_uow.single_use_tokens.get_by_token_hash.return_value = mock_uow.single_use_tokens.create.call_args.args[0]
    mock_uow.single_use_tokens.mark_used.return_value = True
    user.status = UserStatus.disabled
    mock_uow.users.get_by_id.return_value = user

    result = await MagicLoginUseCase(mock_uow, settings).execute(token)

    assert result.error.code == "INVALID_TOKEN"
    mock_uow.single_use_tokens.mark_used.assert_called_once()
    mock_uow.sessions.create.assert_not_called()


@pytest.mark.asyncio
async def test_magic_login_hides_why_a_valid_link_failed(mock_uow, settings, rate_limiter, notifier, user):
    mock_uow.users.get_by_email.return_value = user
    await RequestMagicLinkUseCase(mock_uow, settings, rate_limiter, notifier).execute("user@example.com")
    token = parse_qs(urlparse(notifier.send_magic_link.call_args.args[1]).query)["t"][0]
    stored = mock_uow.single_use_tokens.create.call_args.args[0]
    stored.used_at = stored.created_at
    mock_uow.single_use_tokens.get_by_token_hash.return_value = stored

    replayed = await MagicLoginUseCase(mock_uow, settings).execute(token)
    forged = await MagicLoginUseCase(mock_uow, settings).execute("abc.def")

    assert replayed.error == forged.error
    assert replayed.error.code == "INVALID_TOKEN"
