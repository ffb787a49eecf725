import os
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests
from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.platform.config import settings
from app.platform.logger import get_logger

logger = get_logger("email_service")

current_dir = os.path.dirname(os.path.abspath(__file__))
template_dir = os.path.join(current_dir, "../../features/auth/template")

if not os.path.exists(template_dir):
    template_dir = os.path.join(os.getcwd(), "app/features/auth/template")

env = Environment(loader=FileSystemLoader(template_dir), autoescape=select_autoescape(["html"]))


class EmailDeliveryError(Exception):
    pass


def send_email(to_email: str, subject: str, body: str) -> bool:
    """
    Send email via HTTP relay service, falling back to direct SMTP.
    When no transport is configured the message is skipped (local development).
    Returns True when a transport accepted the message.

    Runs as a background task after the response is sent, so delivery failures
    are logged and reported through the return value, never raised.
    """
    if not settings.mail_configured:
        logger.warning(f"Email transport not configured. Skipping '{subject}' to {to_email}")
        return False

    try:
        if settings.EMAIL_RELAY_URL and settings.EMAIL_RELAY_API_KEY:
            try:
                send_email_via_relay(to_email, subject, body)
                return True
            except EmailDeliveryError as e:
                logger.error(f"Email relay failed: {str(e)}")
                if not settings.MAIL_HOST:
                    raise
                logger.info("Attempting direct SMTP as fallback...")

        send_email_direct_smtp(to_email, subject, body)
        return True
    except EmailDeliveryError as e:
        logger.error(f"Email delivery to {to_email} failed: {str(e)}")
        return False


def send_email_via_relay(to_email: str, subject: str, body: str):
    """Send email via HTTP relay service"""
    payload = {
        "to_email": to_email,
        "subject": subject,
        "body": body,
        "from_address": settings.MAIL_FROM_ADDRESS,
    }

    headers = {
        "X-API-Key": settings.EMAIL_RELAY_API_KEY,
        "Content-Type": "application/json",
    }

    try:
        response = requests.post(
            settings.EMAIL_RELAY_URL,
            json=payload,
            headers=headers,
            timeout=settings.EMAIL_RELAY_TIMEOUT,
        )
        response.raise_for_status()
        logger.info(f"Email sent via relay to {to_email}")

    except requests.exceptions.Timeout:
        logger.error(f"Email relay timeout for {to_email}")
        raise EmailDeliveryError("Email relay service timeout")

    except requests.exceptions.RequestException as e:
        if getattr(e, "response", None) is not None:
            logger.error(f"Relay response {e.response.status_code}: {e.response.text}")
        raise EmailDeliveryError(f"Email relay service error: {str(e)}")


def send_email_direct_smtp(to_email: str, subject: str, body: str):
    """Send an HTML email via SMTP"""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.MAIL_FROM_NAME} <{settings.MAIL_FROM_ADDRESS}>"
    msg["To"] = to_email

    msg.attach(MIMEText(body, "html"))

    try:
        port = settings.MAIL_PORT

        if port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.MAIL_HOST, port, context=context) as server:
                server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
                server.sendmail(settings.MAIL_FROM_ADDRESS, to_email, msg.as_string())
        else:
            with smtplib.SMTP(settings.MAIL_HOST, port) as server:
                server.ehlo()

                if str(settings.MAIL_ENCRYPTION).upper() in ["TLS", "TRUE"]:
                    server.starttls()
                    server.ehlo()

                server.login(settings.MAIL_USERNAME, settings.MAIL_PASSWORD)
                server.sendmail(settings.MAIL_FROM_ADDRESS, to_email, msg.as_string())

        logger.info(f"Email sent via SMTP to {to_email}")

    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP delivery failed for {to_email}: {str(e)}")
        raise EmailDeliveryError(str(e))
