"""
ExecBoard - Email Service

Supports two delivery methods:
    1. Resend HTTP API (recommended for hosted deployments)
    2. SMTP fallback (for local dev or self-hosted relays)

Resend is checked first. If EXECBOARD_RESEND_API_KEY is not set, falls back to SMTP.
Gracefully degrades: if neither is configured, logs a warning and returns False.
Sends never raise; callers schedule them as background tasks and move on.
"""
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

import aiosmtplib
import httpx

from ..config import settings

logger = logging.getLogger("execboard.email")


class EmailService:
    """Async email service with Resend HTTP API and SMTP fallback."""

    RESEND_API_URL = "https://api.resend.com/emails"

    def is_configured(self) -> bool:
        """Check if any email backend is configured."""
        return bool(
            settings.email.resend_api_key
            or (settings.email.smtp_host and settings.email.smtp_username)
        )

    def _use_resend(self) -> bool:
        return bool(settings.email.resend_api_key)

    def _sender(self) -> str:
        return f"{settings.email.from_name} <{settings.email.from_email}>"

    async def _send_via_resend(
        self, to_email: str, subject: str, html_body: str
    ) -> bool:
        """Send email via Resend HTTP API."""
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {settings.email.resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": self._sender(),
                        "to": [to_email],
                        "subject": subject,
                        "html": html_body,
                    },
                    timeout=10.0,
                )
        except httpx.HTTPError as e:
            logger.error("Failed to send email via Resend to %s: %s", to_email, e)
            return False

        if response.status_code == 200:
            logger.info("Email sent via Resend to %s: %s", to_email, subject)
            return True
        logger.error("Resend API error (%s): %s", response.status_code, response.text)
        return False

    async def _send_via_smtp(
        self, to_email: str, subject: str, html_body: str, text_body: Optional[str] = None
    ) -> bool:
        message = MIMEMultipart("alternative")
        message["From"] = self._sender()
        message["To"] = to_email
        message["Subject"] = subject

        if text_body:
            message.attach(MIMEText(text_body, "plain"))
        message.attach(MIMEText(html_body, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=settings.email.smtp_host,
                port=settings.email.smtp_port,
                username=settings.email.smtp_username,
                password=settings.email.smtp_password,
                start_tls=settings.email.smtp_use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email via SMTP to %s: %s", to_email, e)
            return False

        logger.info("Email sent via SMTP to %s: %s", to_email, subject)
        return True

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        """Send an email. Uses Resend if configured, otherwise SMTP."""
        if not self.is_configured():
            logger.warning("Email not configured, skipping send to %s", to_email)
            return False

        if self._use_resend():
            return await self._send_via_resend(to_email, subject, html_body)
        return await self._send_via_smtp(to_email, subject, html_body, text_body)

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    def _render(self, heading: str, paragraphs: list, link_url: Optional[str], link_label: str, footer: str) -> str:
        body = "".join(f"<p>{escape(p)}</p>" for p in paragraphs)
        button = ""
        if link_url:
            url = escape(link_url, quote=True)
            button = f"""
            <p style="text-align: center; margin: 32px 0;">
                <a href="{url}"
                   style="background: #0f4c81; color: white; padding: 12px 24px;
                          border-radius: 8px; text-decoration: none; font-weight: 600;
                          display: inline-block;">
                    {escape(link_label)}
                </a>
            </p>
            <p style="color: #6b7280; font-size: 14px;">
                Or copy this link:<br>
                <a href="{url}" style="color: #0f4c81; word-break: break-all;">{url}</a>
            </p>"""
        return f"""
        <div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
                     max-width: 480px; margin: 0 auto; padding: 24px;">
            <h2 style="color: #0f4c81; margin-bottom: 16px;">{escape(heading)}</h2>
            {body}{button}
            <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 24px 0;">
            <p style="color: #9ca3af; font-size: 12px;">{escape(footer)}</p>
        </div>
        """

    def absolute_url(self, path: Optional[str]) -> Optional[str]:
        if not path:
            return None
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return settings.email.app_base_url.rstrip("/") + "/" + path.lstrip("/")

    async def send_password_reset_email(self, to_email: str, token: str) -> bool:
        """Send password reset link."""
        reset_url = self.absolute_url(f"/reset-password?token={token}")
        html = self._render(
            "Reset your password",
            ["We received a request to reset your ExecBoard password. Click below to set a new one."],
            reset_url,
            "Reset Password",
            "This link expires in 1 hour. If you didn't request a password reset, ignore this email.",
        )
        text = f"Reset your ExecBoard password: {reset_url}\nThis link expires in 1 hour."
        return await self.send_email(to_email, "Reset your ExecBoard password", html, text)

    async def send_notification_email(
        self, to_email: str, title: str, message: str, link_url: Optional[str] = None
    ) -> bool:
        """Mirror an in-app notification by email."""
        url = self.absolute_url(link_url)
        html = self._render(
            title,
            [message],
            url,
            "Open ExecBoard",
            "You are receiving this because you have an ExecBoard account.",
        )
        text = message + (f"\n\n{url}" if url else "")
        return await self.send_email(to_email, f"ExecBoard: {title}", html, text)


# Global instance
email_service = EmailService()
