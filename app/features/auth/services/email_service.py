"""
Notification sink for one-time codes.

The auth flows only need "deliver this code to this address"; the transport
(relay or SMTP) lives in app.platform.services.email. Delivery is scheduled on
FastAPI background tasks so the response is not held up by the mail server.
"""
from typing import Optional, Protocol

from fastapi import BackgroundTasks

from app.platform.config import settings
from app.platform.services.email import env, send_email

OTP_TEMPLATES = {
    "verification": (
        "Your verification OTP",
        "Verify your account",
        "Use the code below to verify your Department Portal account.",
    ),
    "login": (
        "Login OTP",
        "Your login code",
        "Use the code below to finish signing in.",
    ),
    "reset": (
        "Password Reset OTP",
        "Password reset",
        "We received a request to reset your password. Use the code below to continue.",
    ),
}


class NotificationSink(Protocol):
    def send_otp(self, to_email: str, otp: str, purpose: str, name: Optional[str] = None) -> None:
        ...


def render_otp_email(otp: str, purpose: str, name: Optional[str] = None) -> tuple[str, str]:
    subject, heading, intro = OTP_TEMPLATES[purpose]
    template = env.get_template("otp_code.html")
    html_content = template.render(
        heading=heading,
        intro=intro,
        name=name,
        otp_code=otp,
        expiration_minutes=settings.OTP_EXPIRY_MINUTES,
    )
    return subject, html_content


def send_otp_email(to_email: str, otp: str, purpose: str, name: Optional[str] = None) -> bool:
    subject, html_content = render_otp_email(otp, purpose, name)
    return send_email(to_email, subject, html_content)


class EmailNotificationSink:
    def __init__(self, background_tasks: BackgroundTasks):
        self.background_tasks = background_tasks

    def send_otp(self, to_email: str, otp: str, purpose: str, name: Optional[str] = None) -> None:
        self.background_tasks.add_task(send_otp_email, to_email, otp, purpose, name)


def get_notification_sink(background_tasks: BackgroundTasks) -> NotificationSink:
    return EmailNotificationSink(background_tasks)
