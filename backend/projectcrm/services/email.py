"""Login code delivery through the SendGrid HTTP API."""

import httpx
import structlog

from projectcrm.config import Settings, get_settings

logger = structlog.get_logger()


class EmailService:
    """Sends one-time login codes by email."""

    def __init__(
        self,
        settings: Settings | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self.timeout = timeout
        self.transport = transport

    def _otp_message(self, email: str, code: str) -> dict:
        minutes = self.settings.otp_expire_minutes
        return {
            "personalizations": [{"to": [{"email": email}]}],
            "from": {"email": self.settings.sendgrid_from_email},
            "subject": f"Your {self.settings.app_name} Login Code",
            "content": [
                {
                    "type": "text/plain",
                    "value": f"Your login code is: {code}\n\nThis code expires in {minutes} minutes.",
                }
            ],
        }

    async def send_otp(self, email: str, code: str) -> bool:
        """Send ``code`` to ``email``.

        Returns False when no SendGrid key is configured; outside production
        the code is then written to the log so local logins still work.
        """
        api_key = self.settings.sendgrid_api_key.get_secret_value()
        if not api_key:
            if self.settings.environment != "production":
                logger.warning("otp_email_not_configured", email=email, code=code)
            else:
                logger.error("otp_email_not_configured", email=email)
            return False

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.settings.sendgrid_api_url,
                json=self._otp_message(email, code),
                headers={"Authorization": f"Bearer {api_key}"},
            )
            response.raise_for_status()

        logger.info("otp_email_sent", email=email)
        return True
