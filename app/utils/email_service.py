"""
Email Service
Sends emails over SMTP (Gmail app password by default)
"""
import logging
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional
from urllib.parse import quote

from app.core.config import settings

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    return bool(settings.EMAIL_USER and settings.EMAIL_PASS)


def send_email(
    to_email: str,
    subject: str,
    body_html: Optional[str] = None,
    body_text: Optional[str] = None,
    attachments: Optional[List[dict]] = None,
) -> bool:
    """
    Send an email using SMTP with STARTTLS.

    Args:
        to_email: Recipient email address
        subject: Email subject
        body_html: HTML email body (optional)
        body_text: Plain text email body (optional)
        attachments: List of attachments, each with 'filename', 'content' (bytes)
            and optionally 'subtype' (defaults to 'octet-stream')

    Returns:
        bool: True if email sent successfully, False otherwise
    """
    if not is_configured():
        logger.info(f"Email service not configured. Skipping email for {to_email}")
        return False

    msg = MIMEMultipart("mixed")
    msg["From"] = settings.EMAIL_USER
    msg["To"] = to_email
    msg["Subject"] = subject

    body = MIMEMultipart("alternative")
    if body_text:
        body.attach(MIMEText(body_text, "plain"))
    if body_html:
        body.attach(MIMEText(body_html, "html"))
    msg.attach(body)

    for attachment in attachments or []:
        filename = attachment.get("filename")
        content = attachment.get("content")
        if not filename or not content:
            continue
        part = MIMEApplication(content, _subtype=attachment.get("subtype", "octet-stream"))
        part.add_header("Content-Disposition", "attachment", filename=filename)
        msg.attach(part)

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.starttls()
            server.login(settings.EMAIL_USER, settings.EMAIL_PASS)
            server.send_message(msg)
    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed: {str(e)}")
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Error sending email to {to_email}: {str(e)}")
        return False

    logger.info(f"Email sent successfully to {to_email}")
    return True


def send_monthly_report_email(user_email: str, period_label: str, pdf_bytes: bytes) -> bool:
    """
    Mail the monthly PDF report.

    Args:
        user_email: User's email address
        period_label: Month being reported, e.g. 'June 2025'
        pdf_bytes: Rendered report
    """
    month, _, year = period_label.partition(" ")
    return send_email(
        to_email=user_email,
        subject=f"Monthly Financial Report - {period_label}",
        body_text=f"Please find your monthly financial report for {period_label} attached.",
        attachments=[
            {
                "filename": f"Financial_Report_{month}_{year}.pdf",
                "content": pdf_bytes,
                "subtype": "pdf",
            }
        ],
    )


def build_reset_url(email: str, token: str) -> str:
    return f"{settings.CLIENT_BASE_URL}?token={token}&email={quote(email)}"


def send_password_reset_email(email: str, reset_url: str) -> bool:
    expire_minutes = settings.PASSWORD_RESET_EXPIRE_MINUTES
    html_body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
        <div style="text-align: center; margin-bottom: 30px;">
            <h1 style="color: #16a34a; margin-bottom: 10px;">Finance Tracker</h1>
            <h2 style="color: #374151; margin-top: 0;">Password Reset Request</h2>
        </div>
        <div style="background-color: #f9fafb; padding: 20px; border-radius: 8px; margin-bottom: 20px;">
            <p style="color: #374151;">Hello,</p>
            <p style="color: #374151;">
                We received a request to reset the password for your Finance Tracker account
                associated with <strong>{email}</strong>.
            </p>
            <p style="color: #374151;">
                Click the button below to reset your password. This link will expire in {expire_minutes} minutes.
            </p>
            <div style="text-align: center; margin: 30px 0;">
                <a href="{reset_url}" style="background-color: #16a34a; color: white; padding: 12px 30px;
                   text-decoration: none; border-radius: 6px; font-weight: bold; display: inline-block;">
                    Reset Password
                </a>
            </div>
            <p style="color: #6b7280; font-size: 14px;">
                If the button doesn't work, copy and paste this link into your browser:<br>
                <a href="{reset_url}" style="color: #3b82f6; word-break: break-all;">{reset_url}</a>
            </p>
        </div>
        <p style="color: #6b7280; font-size: 14px;">
            <strong>Security Note:</strong> If you didn't request this password reset, please ignore this email.
            Your password will remain unchanged.
        </p>
    </div>
    """
    text_body = (
        "We received a request to reset your Finance Tracker password.\n\n"
        f"Reset it here (valid for {expire_minutes} minutes): {reset_url}\n\n"
        "If you didn't request this, you can ignore this email."
    )
    return send_email(
        to_email=email,
        subject="Password Reset Request - Finance Tracker",
        body_html=html_body,
        body_text=text_body,
    )
