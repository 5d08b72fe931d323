"""
TripPay Backend - Email Notification Service
Payment receipts and cancellation notices
"""

import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
from datetime import datetime

from trippay.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    Customer notification service.
    Sends over SMTP; silently skipped when SMTP is not configured.
    """

    BOOKING_TYPE_LABELS = {
        "flight": "Flight",
        "cruise": "Cruise",
        "hotel": "Hotel",
        "package": "Holiday Package",
    }

    def __init__(self):
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.from_email = settings.from_email or self.smtp_user

    def is_configured(self) -> bool:
        """Check if email service is properly configured."""
        return all([
            self.smtp_host,
            self.smtp_port,
            self.smtp_user,
            self.smtp_password,
        ])

    def _send(self, to_email: str, subject: str, text_body: str, html_body: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"Email sent to {to_email}: {subject}")
        return True

    async def send_payment_confirmation(
        self,
        to_email: Optional[str],
        order_id: str,
        amount: str,
        currency: str,
        booking_type: str,
        booking_reference: Optional[str] = None,
    ) -> bool:
        """
        Send a payment receipt after a successful reconciliation.

        Returns:
            True if the email was sent, False otherwise
        """
        if not to_email:
            return False
        if not self.is_configured():
            logger.info("Email service not configured. Skipping payment confirmation.")
            return False

        label = self.BOOKING_TYPE_LABELS.get(booking_type, booking_type.capitalize())
        reference_line = f"Booking reference: {booking_reference}\n" if booking_reference else ""
        subject = f"Payment received - {label} booking {booking_reference or order_id}"

        text_body = f"""
Thank you for booking with {settings.arc_pay_merchant_name}.

{reference_line}Order: {order_id}
Amount paid: {amount} {currency}
Date: {datetime.now().strftime('%Y-%m-%d %H:%M')}

Manage your booking at {settings.frontend_url}/my-trips
"""
        html_body = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"></head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Payment received</h2>
            <p>Thank you for booking with {settings.arc_pay_merchant_name}.</p>
            <div style="background: #f0f9ff; padding: 15px; border-radius: 8px;">
                {f'<strong>Booking reference:</strong> {booking_reference}<br>' if booking_reference else ''}
                <strong>Order:</strong> {order_id}<br>
                <strong>Amount paid:</strong> {amount} {currency}
            </div>
            <p><a href="{settings.frontend_url}/my-trips">Manage your booking</a></p>
        </body>
        </html>
        """
        return self._send(to_email, subject, text_body, html_body)

    async def send_cancellation_notice(
        self,
        to_email: Optional[str],
        booking_reference: str,
        payment_status: Optional[str],
        reason: Optional[str] = None,
    ) -> bool:
        """Tell the customer their booking was cancelled and what happens to the money."""
        if not to_email:
            return False
        if not self.is_configured():
            logger.info("Email service not configured. Skipping cancellation notice.")
            return False

        if payment_status == "refunded":
            money_line = "Your payment has been refunded to the original card."
        elif payment_status == "voided":
            money_line = "The hold on your card has been released."
        elif payment_status == "refund_pending":
            money_line = "Your refund is being processed and will follow shortly."
        elif payment_status == "void_pending":
            money_line = "The hold on your card will be released shortly."
        else:
            money_line = ""

        subject = f"Booking {booking_reference} cancelled"
        text_body = f"""
Your booking {booking_reference} has been cancelled.
{f'Reason: {reason}' if reason else ''}
{money_line}
"""
        html_body = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"></head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Booking cancelled</h2>
            <p>Your booking <strong>{booking_reference}</strong> has been cancelled.</p>
            {f'<p>Reason: {reason}</p>' if reason else ''}
            <p>{money_line}</p>
        </body>
        </html>
        """
        return self._send(to_email, subject, text_body, html_body)


# Singleton instance
email_service = EmailService()
