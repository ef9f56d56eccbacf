from __future__ import annotations

from typing import Optional

import requests

from errors import NotifierError


BREVO_URL = "https://api.brevo.com/v3/smtp/email"


class BrevoTransport:
    """
    Sends email using Brevo Transactional Email API.
    Requires an API key and a sender address.
    """

    name = "brevo"

    def __init__(
        self,
        *,
        api_key: Optional[str],
        from_email: Optional[str],
        sender_name: str = "Auth Service",
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.sender_name = sender_name
        self.timeout = timeout
        self.session = session or requests.Session()

    def send(self, *, to_email: str, subject: str, text: str, html: Optional[str] = None) -> None:
        if not self.api_key:
            raise NotifierError("BREVO_API_KEY is not set")
        if not self.from_email:
            raise NotifierError("BREVO_FROM (or SMTP_FROM/SMTP_USER) is not set")

        payload = {
            "sender": {"email": self.from_email, "name": self.sender_name},
            "to": [{"email": to_email}],
            "subject": subject,
            "textContent": text,
        }
        if html:
            payload["htmlContent"] = html

        try:
            resp = self.session.post(
                BREVO_URL,
                headers={
                    "accept": "application/json",
                    "api-key": self.api_key,
                    "content-type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise NotifierError(f"Brevo request failed: {e}") from e
        if resp.status_code >= 300:
            raise NotifierError(f"Brevo send failed ({resp.status_code}): {resp.text}")
