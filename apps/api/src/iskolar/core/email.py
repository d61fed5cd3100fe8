"""
Email Service using Resend

Notifications for the scholarship review flow. Delivery is best effort:
callers log a failed send and carry on with the business operation.
"""

import asyncio
import logging
import os
from datetime import date
from html import escape

import resend

logger = logging.getLogger(__name__)

# Initialize Resend with API key
resend.api_key = os.getenv("RESEND_API_KEY")

# Configurations
EMAIL_FROM = os.getenv("EMAIL_FROM", "Iskolar <noreply@iskolar.dev>")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

_STYLE = """
    <style>
        body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
        .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
        .header { color: #1a365d; margin-bottom: 24px; }
        .button { display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }
        .notes { background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; }
        .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
    </style>
"""


def _wrap(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>{_STYLE}</head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body}
            <div class="footer">
                <p>Iskolar - Scholarship Application Portal</p>
            </div>
        </div>
    </body>
    </html>
    """


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": EMAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_requirement_reviewed(
    to_email: str,
    applicant_name: str,
    requirement_name: str,
    approved: bool,
    notes: str | None = None,
) -> bool:
    """Tell an applicant that one of their documents was reviewed."""
    safe_name = escape(applicant_name)
    safe_requirement = escape(requirement_name)
    verdict = "approved" if approved else "returned for revision"

    notes_html = f'<div class="notes">{escape(notes)}</div>' if notes else ""
    action_html = (
        ""
        if approved
        else f'<a href="{FRONTEND_URL}/requirements" class="button">Re-upload Document</a>'
    )
    body = f"""
            <p>Hello {safe_name},</p>
            <p>Your <strong>{safe_requirement}</strong> has been <strong>{verdict}</strong>.</p>
            {notes_html}
            {action_html}
    """
    return await send_email(
        to_email=to_email,
        subject=f"Your {safe_requirement} was {verdict}",
        html_content=_wrap("Document Reviewed", body),
    )


async def send_application_decision(
    to_email: str,
    applicant_name: str,
    scholarship_name: str,
    status: str,
    remarks: str | None = None,
) -> bool:
    """Tell an applicant about a staff decision on their application."""
    safe_name = escape(applicant_name)
    safe_scholarship = escape(scholarship_name)
    readable_status = status.replace("_", " ")

    remarks_html = f'<div class="notes">{escape(remarks)}</div>' if remarks else ""
    body = f"""
            <p>Hello {safe_name},</p>
            <p>Your application for <strong>{safe_scholarship}</strong> is now
            <strong>{escape(readable_status)}</strong>.</p>
            {remarks_html}
            <a href="{FRONTEND_URL}/applications" class="button">View Application</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Update on your {safe_scholarship} application",
        html_content=_wrap("Application Update", body),
    )


async def send_requirement_reminder(
    to_email: str,
    applicant_name: str,
    outstanding: list[tuple[str, date]],
) -> bool:
    """Remind an applicant of requirements that are due soon."""
    safe_name = escape(applicant_name)
    items = "".join(
        f"<li><strong>{escape(name)}</strong> - due {due.strftime('%B %d, %Y')}</li>"
        for name, due in outstanding
    )
    body = f"""
            <p>Hello {safe_name},</p>
            <p>The following requirements still need your attention:</p>
            <ul>{items}</ul>
            <a href="{FRONTEND_URL}/requirements" class="button">Upload Requirements</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Reminder: {len(outstanding)} scholarship requirement(s) due soon",
        html_content=_wrap("Requirements Due Soon", body),
    )
