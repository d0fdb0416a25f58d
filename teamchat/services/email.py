"""
Email service for sending invitation emails.

Supports SMTP or the SendGrid API. Without a configured provider the email
is logged and skipped, so invites keep working in development.
"""

import asyncio
import html
import logging
import re
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import httpx

from teamchat.settings import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service supporting SMTP and SendGrid."""

    def __init__(self, config=settings):
        self.config = config

    async def send_email(self, to_email: str, subject: str, html_content: str) -> bool:
        """Send an email using the configured provider.

        Returns:
            True if the email was handed to a provider, False otherwise.
        """
        text_content = re.sub(r"<[^>]+>", "", html_content)
        text_content = re.sub(r"\s+", " ", text_content).strip()

        if self.config.sendgrid_api_key:
            return await self._send_via_sendgrid(to_email, subject, html_content, text_content)

        if self.config.smtp_host:
            return await self._send_via_smtp(to_email, subject, html_content, text_content)

        logger.warning(
            "No email provider configured. Email would have been sent:\n"
            f"  To: {to_email}\n"
            f"  Subject: {subject}\n"
            f"  Preview: {text_content[:200]}..."
        )
        return False

    async def _send_via_smtp(self, to_email: str, subject: str, html_content: str, text_content: str) -> bool:
        """Send email via SMTP."""
        config = self.config
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{config.smtp_from_name} <{config.smtp_from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_content, "plain"))
        msg.attach(MIMEText(html_content, "html"))

        # Run SMTP in thread pool to not block the event loop
        def send_sync():
            with smtplib.SMTP(config.smtp_host, config.smtp_port) as server:
                if config.smtp_use_tls:
                    server.starttls()
                if config.smtp_username and config.smtp_password:
                    server.login(config.smtp_username, config.smtp_password)
                server.sendmail(config.smtp_from_email, [to_email], msg.as_string())

        try:
            await asyncio.get_running_loop().run_in_executor(None, send_sync)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email via SMTP: {e}")
            return False
        logger.info(f"Email sent via SMTP to {to_email}")
        return True

    async def _send_via_sendgrid(self, to_email: str, subject: str, html_content: str, text_content: str) -> bool:
        """Send email via SendGrid API."""
        config = self.config
        payload = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {"email": config.smtp_from_email, "name": config.smtp_from_name},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text_content},
                {"type": "text/html", "value": html_content},
            ],
        }
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                response = await client.post(
                    "https://api.sendgrid.com/v3/mail/send",
                    headers={"Authorization": f"Bearer {config.sendgrid_api_key}"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"Failed to send email via SendGrid: {e}")
            return False

        if response.status_code in (200, 202):
            logger.info(f"Email sent via SendGrid to {to_email}")
            return True
        logger.error(f"SendGrid error: {response.status_code} - {response.text}")
        return False


# Global email service instance
email_service = EmailService()


def build_invite_url(token: str) -> str:
    return f"{settings.base_url}/invite/accept?token={token}"


async def send_invite_email(
    to_email: str,
    invite_token: str,
    target_name: str,
    inviter_name: str,
) -> bool:
    """
    Send an invitation email for a workspace or channel.

    Args:
        to_email: Email of the person being invited
        invite_token: The signed invite token for the accept link
        target_name: Name of the workspace or channel
        inviter_name: Name of the person sending the invite
    """
    invite_url = build_invite_url(invite_token)
    target = html.escape(target_name)
    inviter = html.escape(inviter_name)
    subject = f"You're invited to join {target_name}"
    html_content = f"""
    <div style="font-family: sans-serif; line-height: 1.6;">
      <h2>You've been invited to join <b>{target}</b></h2>
      <p>{inviter} has invited you to collaborate in <b>{target}</b> on {html.escape(settings.app_name)}.</p>
      <p><a href="{invite_url}">Accept Invitation</a></p>
      <p>Or copy this link:<br/>{invite_url}</p>
      <small>This invitation expires in {settings.invite_expire_days} days.</small>
    </div>
    """
    return await email_service.send_email(to_email=to_email, subject=subject, html_content=html_content)
