"""Tests for OTP login, session tokens and the email service."""

import json
import re
from datetime import timedelta

import httpx
import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from projectcrm.api.v1.auth import create_access_token, generate_otp, get_email_service
from projectcrm.config import Settings
from projectcrm.models import AppUser, OTPCode
from projectcrm.services.email import EmailService


class RecordingTransport:
    """Captures SendGrid requests."""

    def __init__(self, status_code: int = 202):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code)

    def last_code(self) -> str:
        body = json.loads(self.requests[-1].content)
        match = re.search(r"login code is: (\d{6})", body["content"][0]["value"])
        assert match is not None
        return match.group(1)


def _email_service(recorder: RecordingTransport) -> EmailService:
    settings = Settings(sendgrid_api_key="SG.test", sendgrid_from_email="crm@example.com")
    return EmailService(settings=settings, transport=httpx.MockTransport(recorder))


def test_generate_otp_is_six_digits() -> None:
    for _ in range(20):
        assert re.fullmatch(r"\d{6}", generate_otp())


@pytest.mark.asyncio
async def test_send_otp_posts_to_sendgrid() -> None:
    recorder = RecordingTransport()

    sent = await _email_service(recorder).send_otp("me@example.com", "123456")

    assert sent is True
    request = recorder.requests[0]
    assert request.headers["Authorization"] == "Bearer SG.test"
    body = json.loads(request.content)
    assert body["personalizations"][0]["to"][0]["email"] == "me@example.com"
    assert body["from"]["email"] == "crm@example.com"
    assert recorder.last_code() == "123456"


@pytest.mark.asyncio
async def test_send_otp_without_key_is_skipped() -> None:
    service = EmailService(settings=Settings(sendgrid_api_key=""))

    assert await service.send_otp("me@example.com", "123456") is False


@pytest.mark.asyncio
async def test_send_otp_raises_on_provider_error() -> None:
    with pytest.raises(httpx.HTTPStatusError):
        await _email_service(RecordingTransport(status_code=401)).send_otp("me@example.com", "1")


@pytest.mark.asyncio
@pytest.mark.parametrize("failure", ["bad_gateway", "connect_error"])
async def test_request_otp_reports_email_failure(
    app: FastAPI, client: AsyncClient, failure: str
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if failure == "connect_error":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(502)

    settings = Settings(sendgrid_api_key="SG.test", sendgrid_from_email="crm@example.com")
    app.dependency_overrides[get_email_service] = lambda: EmailService(
        settings=settings, transport=httpx.MockTransport(handler)
    )

    response = await client.post("/api/auth/request-otp", json={"email": "a@b.co"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to send OTP. Please try again.",
        "code": "EMAIL_ERROR",
    }


@pytest.mark.asyncio
async def test_login_flow(
    app: FastAPI,
    client: AsyncClient,
    session_maker: async_sessionmaker[AsyncSession],
) -> None:
    recorder = RecordingTransport()
    app.dependency_overrides[get_email_service] = lambda: _email_service(recorder)

    response = await client.post("/api/auth/request-otp", json={"email": "Jo@Example.com"})
    assert response.status_code == 200
    assert response.json()["email_sent"] is True
    code = recorder.last_code()

    response = await client.post(
        "/api/auth/verify-otp", json={"email": "jo@example.com", "code": code}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["username"] == "jo"
    assert body["user"]["last_login"] is not None

    response = await client.get(
        "/api/auth/verify", headers={"Authorization": f"Bearer {body['access_token']}"}
    )
    assert response.status_code == 200
    assert response.json()["email"] == "jo@example.com"

    # codes are single use
    response = await client.post(
        "/api/auth/verify-otp", json={"email": "jo@example.com", "code": code}
    )
    assert response.status_code == 401

    async with session_maker() as session:
        users = (await session.execute(select(AppUser))).scalars().all()
        assert [u.email for u in users] == ["jo@example.com"]


@pytest.mark.asyncio
async def test_new_code_invalidates_older_one(
    app: FastAPI,
    client: AsyncClient,
    session_maker: async_sessionmaker[AsyncSession],
) -> None:
    recorder = RecordingTransport()
    app.dependency_overrides[get_email_service] = lambda: _email_service(recorder)

    await client.post("/api/auth/request-otp", json={"email": "jo@example.com"})
    await client.post("/api/auth/request-otp", json={"email": "jo@example.com"})

    async with session_maker() as session:
        codes = (
            await session.execute(select(OTPCode).order_by(OTPCode.created_at))
        ).scalars().all()
    assert [c.used for c in codes] == [True, False]


@pytest.mark.asyncio
async def test_wrong_code_is_rejected(app: FastAPI, client: AsyncClient) -> None:
    recorder = RecordingTransport()
    app.dependency_overrides[get_email_service] = lambda: _email_service(recorder)
    await client.post("/api/auth/request-otp", json={"email": "jo@example.com"})
    wrong = "000000" if recorder.last_code() != "000000" else "111111"

    response = await client.post(
        "/api/auth/verify-otp", json={"email": "jo@example.com", "code": wrong}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired code", "code": "UNAUTHENTICATED"}


@pytest.mark.asyncio
async def test_request_otp_requires_email(client: AsyncClient) -> None:
    response = await client.post("/api/auth/request-otp", json={"email": "nope"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_verify_token_rejects_missing_and_expired(client: AsyncClient) -> None:
    response = await client.get("/api/auth/verify")
    assert response.status_code == 401

    user = AppUser(email="jo@example.com", username="jo")
    expired = create_access_token(user, expires_delta=timedelta(minutes=-1))
    response = await client.get("/api/auth/verify", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401

    response = await client.get("/api/auth/verify", headers={"Authorization": "Bearer junk"})
    assert response.status_code == 401
