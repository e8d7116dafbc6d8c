import pytest
from httpx import AsyncClient

PASSWORD = "SecurePass123!"
EMAIL = "stepup@example.com"


def _wrong_pin(pin: str) -> str:
    return "000000" if pin != "000000" else "111111"


async def _login_requiring_pin(client: AsyncClient, notifier) -> str:
    response = await client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["status"] == "pin_required"
    email, pin = notifier.pins[-1]
    assert email == EMAIL
    return pin


@pytest.mark.asyncio
async def test_every_fifth_login_requires_pin(client: AsyncClient, notifier, settings):
    """
    Given a user whose next login is their fifth
    When they log in with the right password
    Then no session is created and a 6 digit PIN is sent instead
    """
    response = await client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "pin_required"
    assert data["session_id"] is None
    assert settings.session_cookie_name not in response.cookies
    assert len(notifier.pins) == 1
    assert notifier.pins[0][1].isdigit() and len(notifier.pins[0][1]) == 6


@pytest.mark.asyncio
async def test_correct_pin_creates_session(client: AsyncClient, notifier):
    pin = await _login_requiring_pin(client, notifier)

    response = await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": pin})

    assert response.status_code == 200
    assert response.json()["status"] == "authenticated"
    session = await client.get("/auth/session")
    assert session.status_code == 200
    assert session.json()["email"] == EMAIL


@pytest.mark.asyncio
async def test_pin_is_single_use(client: AsyncClient, notifier):
    pin = await _login_requiring_pin(client, notifier)
    assert (await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": pin})).status_code == 200

    response = await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": pin})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PIN_NOT_FOUND"


@pytest.mark.asyncio
async def test_wrong_pin_reports_attempts_remaining(client: AsyncClient, notifier):
    pin = await _login_requiring_pin(client, notifier)

    response = await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": _wrong_pin(pin)})

    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "INVALID_PIN"
    assert error["details"]["attempts_remaining"] == 2


@pytest.mark.asyncio
async def test_three_wrong_pins_lock_out_the_correct_one(client: AsyncClient, notifier, settings):
    """
    Given a PIN issued with three attempts
    When three wrong guesses are made in a row
    Then a fourth guess with the correct PIN is still refused
    And no session cookie is ever set
    """
    pin = await _login_requiring_pin(client, notifier)
    wrong = _wrong_pin(pin)

    first = await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": wrong})
    second = await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": wrong})
    third = await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": wrong})

    assert [first.status_code, second.status_code] == [401, 401]
    assert first.json()["error"]["details"]["attempts_remaining"] == 2
    assert second.json()["error"]["details"]["attempts_remaining"] == 1
    assert third.status_code == 429
    assert third.json()["error"]["code"] == "TOO_MANY_ATTEMPTS"

    fourth = await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": pin})

    assert fourth.status_code == 429
    assert fourth.json()["error"]["code"] == "TOO_MANY_ATTEMPTS"
    assert settings.session_cookie_name not in client.cookies
    assert (await client.get("/auth/session")).status_code == 401


@pytest.mark.asyncio
async def test_verify_pin_without_pending_pin(client: AsyncClient):
    response = await client.post("/auth/verify-pin", json={"email": "alice@example.com", "pin": "123456"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "PIN_NOT_FOUND"


@pytest.mark.asyncio
async def test_logging_in_again_does_not_skip_pending_pin(client: AsyncClient, notifier, settings):
    """
    Given a login that is waiting for its step-up PIN
    When the user logs in again with the right password
    Then the second login also stops at the PIN and no new PIN is sent
    And the original PIN still completes the login
    """
    pin = await _login_requiring_pin(client, notifier)

    again = await client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})

    assert again.status_code == 200
    assert again.json()["status"] == "pin_required"
    assert again.json()["session_id"] is None
    assert settings.session_cookie_name not in again.cookies
    assert len(notifier.pins) == 1
    assert (await client.get("/auth/session")).status_code == 401

    verified = await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": pin})
    assert verified.status_code == 200

    after = await client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})
    assert after.json()["status"] == "authenticated"


@pytest.mark.asyncio
async def test_locked_pin_cannot_be_skipped_by_logging_in_again(client: AsyncClient, notifier):
    pin = await _login_requiring_pin(client, notifier)
    wrong = _wrong_pin(pin)
    for _ in range(3):
        await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": wrong})

    again = await client.post("/auth/login", json={"email": EMAIL, "password": PASSWORD})

    assert again.json()["status"] == "pin_required"
    assert len(notifier.pins) == 1
    locked = await client.post("/auth/verify-pin", json={"email": EMAIL, "pin": pin})
    assert locked.status_code == 429
    assert (await client.get("/auth/session")).status_code == 401
