import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List, Optional
from jinja2 import Environment, FileSystemLoader, select_autoescape
import logging
import os

from wickedfiles.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.SMTP_FROM_EMAIL
        self.from_name = settings.SMTP_FROM_NAME

        template_dir = os.path.join(os.path.dirname(__file__), "..", "templates", "emails")
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def render(self, template_name: str, **context) -> str:
        context.setdefault("app_name", settings.APP_NAME)
        return self.env.get_template(template_name).render(**context)

    async def send_email(
        self,
        to_emails: List[str],
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """Send email to recipients"""
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = ", ".join(to_emails)

        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user or None,
                password=self.smtp_password or None,
                start_tls=True,
            )
            return True
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email '{subject}' to {len(to_emails)} recipient(s): {e}")
            return False

    async def send_welcome_email(self, email: str, name: str) -> bool:
        """Send welcome email to new user"""
        subject = f"Welcome to {settings.APP_NAME}!"
        html_content = self.render("welcome.html", name=name)
        text_content = (
            f"Welcome to {settings.APP_NAME}, {name}!\n\n"
            "Connect an S3 account to start browsing and sharing your files."
        )
        return await self.send_email([email], subject, html_content, text_content)

    async def send_password_reset_email(self, email: str, reset_token: str) -> bool:
        """Send password reset email"""
        subject = f"Reset your {settings.APP_NAME} password"
        reset_url = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/reset-password?token={reset_token}"
        html_content = self.render(
            "password_reset.html",
            reset_url=reset_url,
            expire_hours=settings.PASSWORD_RESET_TOKEN_EXPIRE_HOURS,
        )
        text_content = (
            "You have requested to reset your password. Visit the link below:\n\n"
            f"{reset_url}\n\n"
            f"This link will expire in {settings.PASSWORD_RESET_TOKEN_EXPIRE_HOURS} hours."
        )
        return await self.send_email([email], subject, html_content, text_content)

    async def send_share_link_email(
        self,
        email: str,
        sender_name: str,
        filename: str,
        share_url: str,
        password_protected: bool = False
    ) -> bool:
        """Send a share link to one recipient"""
        subject = f"{sender_name} shared \"{filename}\" with you"
        html_content = self.render(
            "share_link.html",
            sender_name=sender_name,
            filename=filename,
            share_url=share_url,
            password_protected=password_protected,
        )
        text_content = f"{sender_name} shared {filename} with you:\n\n{share_url}\n"
        if password_protected:
            text_content += "\nThe sender will give you the password separately.\n"
        return await self.send_email([email], subject, html_content, text_content)


# Global email service instance
email_service = EmailService()

