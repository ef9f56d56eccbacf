"""
OTP delivery.

A ``Notifier`` owns an ordered list of transports and tries them one after
another until one succeeds. Delivery is best effort: ``send`` reports the
outcome and logs failures but never raises into the caller.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

from config import Settings
from errors import NotifierError
from utils.brevo_email import BrevoTransport
from utils.smtp_email import SmtpTransport


logger = logging.getLogger(__name__)


class Transport(Protocol):
    name: str

    def send(self, *, to_email: str, subject: str, text: str, html: Optional[str] = None) -> None:
        ...


class ConsoleTransport:
    """Dev transport: writes the message to the log instead of mailing it."""

    name = "console"

    def send(self, *, to_email: str, subject: str, text: str, html: Optional[str] = None) -> None:
        logger.info("Console mail to %s [%s]: %s", to_email, subject, text)


def render_otp_email(code: str, ttl_minutes: int = 5) -> tuple[str, str]:
    text = f"Your OTP is: {code}. It expires in {ttl_minutes} minutes."
    html = f"""
    <div style="font-family:Arial,sans-serif">
      <h2>Verification code</h2>
      <p>Your OTP is:</p>
      <div style="font-size:28px;font-weight:700;letter-spacing:2px">{code}</div>
      <p>This OTP expires in {ttl_minutes} minutes.</p>
    </div>
    """
    return text, html


class Notifier:
    def __init__(self, transports: Sequence[Transport], *, subject: str = "Your OTP Code", ttl_seconds: int = 300) -> None:
        self.transports: List[Transport] = list(transports)
        self.subject = subject
        self.ttl_minutes = max(1, ttl_seconds // 60)

    def send(self, email: str, code: str) -> bool:
        text, html = render_otp_email(code, self.ttl_minutes)
        for transport in self.transports:
            try:
                transport.send(to_email=email, subject=self.subject, text=text, html=html)
            except NotifierError as e:
                logger.warning("OTP delivery via %s failed for %s: %s", transport.name, email, e)
                continue
            except Exception:
                logger.exception("OTP delivery via %s crashed for %s", transport.name, email)
                continue
            logger.info("OTP delivered to %s via %s", email, transport.name)
            return True

        logger.error(
            "OTP delivery failed for %s; tried: %s",
            email,
            ", ".join(t.name for t in self.transports) or "no transports configured",
        )
        return False


def build_notifier(settings: Settings) -> Notifier:
    transports: List[Transport] = []
    for name in settings.transport_order():
        if name == "brevo":
            transports.append(
                BrevoTransport(
                    api_key=settings.brevo_api_key,
                    from_email=settings.brevo_from or settings.smtp_from or settings.smtp_user,
                    sender_name=settings.brevo_sender_name,
                    timeout=settings.mail_timeout_seconds,
                )
            )
        elif name == "smtp":
            transports.append(
                SmtpTransport(
                    host=settings.smtp_host,
                    port=settings.smtp_port,
                    user=settings.smtp_user,
                    password=settings.smtp_password,
                    from_email=settings.smtp_from,
                    timeout=settings.mail_timeout_seconds,
                )
            )
        elif name == "console":
            transports.append(ConsoleTransport())
        else:
            raise ValueError(f"Unknown mail transport: {name!r}")

    logger.info("Mail transports: %s", ", ".join(t.name for t in transports) or "none")
    return Notifier(transports, subject=settings.otp_subject, ttl_seconds=settings.otp_ttl_seconds)
