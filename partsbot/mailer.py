"""
Contact form email delivery.
Sends the admin notification and the customer confirmation for a parts inquiry.
"""

import html
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from .config import Settings, get_settings
from .exceptions import MailDeliveryError
from .models import ContactInquiry

logger = logging.getLogger(__name__)

NOT_PROVIDED = "Not provided"


def _field(value: Optional[str]) -> str:
    return html.escape(value) if value else NOT_PROVIDED


def render_admin_email(inquiry: ContactInquiry) -> str:
    """HTML body of the notification sent to the shop"""
    return f"""
        <h1>New Auto Parts Inquiry</h1>
        <p>You have received a new message from your website contact form.</p>
        <h2>Contact Details:</h2>
        <ul>
          <li><strong>Company:</strong> {_field(inquiry.company_name)}</li>
          <li><strong>Name:</strong> {html.escape(inquiry.name)}</li>
          <li><strong>Email:</strong> {html.escape(inquiry.email)}</li>
          <li><strong>Phone:</strong> {_field(inquiry.phone)}</li>
        </ul>
        <h2>Vehicle Information:</h2>
        <ul>
          <li><strong>VIN:</strong> {_field(inquiry.vin)}</li>
          <li><strong>Make/Model:</strong> {_field(inquiry.vehicle_make_model)}</li>
          <li><strong>Year:</strong> {_field(inquiry.vehicle_year)}</li>
          <li><strong>Engine:</strong> {_field(inquiry.engine_capacity)}</li>
        </ul>
        <h2>Parts Required:</h2>
        <p>{html.escape(inquiry.parts_required)}</p>
    """


def render_customer_email(inquiry: ContactInquiry, business_name: str) -> str:
    """HTML body of the confirmation sent to the customer"""
    return f"""
        <h1>Thank You for Your Inquiry</h1>
        <p>Hi {html.escape(inquiry.name)},</p>
        <p>We have received your request for auto parts and will get back to you shortly. Here is a summary of your inquiry:</p>
        <h2>Your Vehicle Information:</h2>
        <ul>
          <li><strong>Make/Model:</strong> {_field(inquiry.vehicle_make_model)}</li>
          <li><strong>Year:</strong> {_field(inquiry.vehicle_year)}</li>
        </ul>
        <h2>Parts You Requested:</h2>
        <p>{html.escape(inquiry.parts_required)}</p>
        <p>If you have any other questions, please reply to this email.</p>
        <p>Best regards,<br/>The {html.escape(business_name)} Team</p>
    """


class ContactMailer:
    """Sends contact form emails over SMTP"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def _connect(self) -> smtplib.SMTP:
        settings = self.settings
        if not settings.email_host:
            raise MailDeliveryError("EMAIL_HOST is not configured")

        context = ssl.create_default_context()
        if settings.email_secure:
            server = smtplib.SMTP_SSL(settings.email_host, settings.email_port, context=context)
        else:
            server = smtplib.SMTP(settings.email_host, settings.email_port)
            server.starttls(context=context)

        if settings.email_user and settings.email_pass:
            server.login(settings.email_user, settings.email_pass)
        return server

    def send_mail(self, to: str, subject: str, html_body: str) -> None:
        """
        Send one HTML email

        Raises:
            MailDeliveryError: If the message could not be delivered
        """
        message = EmailMessage()
        message["From"] = self.settings.email_user or self.settings.admin_email
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable email client.")
        message.add_alternative(html_body, subtype="html")

        try:
            server = self._connect()
            try:
                server.send_message(message)
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Error sending email to {to}: {e}")
            raise MailDeliveryError(f"Failed to send email to {to}: {e}") from e

        logger.info(f"Email '{subject}' sent to {to}")

    def send_inquiry(self, inquiry: ContactInquiry) -> None:
        """
        Notify the shop of an inquiry and confirm receipt to the customer

        Raises:
            MailDeliveryError: If either email could not be delivered
        """
        self.send_mail(
            self.settings.admin_email,
            f"New Auto Parts Inquiry from {inquiry.name}",
            render_admin_email(inquiry),
        )
        self.send_mail(
            inquiry.email,
            "Thank you for your inquiry!",
            render_customer_email(inquiry, self.settings.business_name),
        )
