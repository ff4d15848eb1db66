import aiohttp
from html import escape
from typing import Any, Dict, List, Optional
import os
import logging

logger = logging.getLogger(__name__)

SONG_REQUEST_FIELDS = (
    ("personName", "Person's Name"),
    ("deliveryEmail", "Delivery Email"),
    ("phone", "Phone"),
    ("genre", "Genre"),
    ("mood", "Mood"),
    ("language", "Language"),
    ("vocalStyle", "Vocal Style"),
    ("length", "Length"),
)

SONG_STORY_FIELDS = (
    ("lifeStory", "Life Story"),
    ("relationships", "Relationships"),
    ("specialMemories", "Special Memories"),
    ("additionalNotes", "Additional Notes"),
)


def _recipients(value: Optional[str]) -> List[str]:
    return [address.strip() for address in (value or "").split(",") if address.strip()]


class BrevoEmailService:
    def __init__(self):
        self.api_key = os.getenv("BREVO_API_KEY")
        self.base_url = "https://api.brevo.com/v3"
        self.sender = {
            "name": os.getenv("EMAIL_SENDER_NAME", "My Final Wishes"),
            "email": os.getenv("EMAIL_SENDER_ADDRESS", "noreply@myfinalwishes.app"),
        }
        self.song_order_recipients = _recipients(os.getenv("SONG_ORDER_NOTIFY_EMAIL"))
        self.support_recipients = _recipients(os.getenv("SUPPORT_EMAIL"))

        if not self.api_key:
            logger.warning("BREVO_API_KEY not configured - email sending will fail")

    async def _send(self, data: Dict[str, Any], description: str) -> bool:
        """POST one transactional email; True only on Brevo's 201"""
        try:
            if not self.api_key:
                logger.error(f"Cannot send {description} - BREVO_API_KEY not configured")
                return False

            url = f"{self.base_url}/smtp/email"
            headers = {
                "accept": "application/json",
                "content-type": "application/json",
                "api-key": self.api_key
            }
            payload = {"sender": self.sender, **data}

            async with aiohttp.ClientSession() as session:
                async with session.post(url, json=payload, headers=headers) as response:
                    response_text = await response.text()

                    if response.status == 201:
                        logger.info(f"{description} sent")
                        return True
                    else:
                        logger.error(f"Failed to send {description}. Status: {response.status}, Response: {response_text}")
                        return False

        except Exception as e:
            logger.error(f"Email send error for {description}: {e}", exc_info=True)
            return False

    async def send_plan_email(self, to_email: str, pdf_base64: str, prepared_by: str) -> bool:
        """Send the plan PDF as an attachment

        Args:
            to_email: Recipient email address
            pdf_base64: Base64-encoded PDF document
            prepared_by: Name shown as the plan's preparer

        Returns:
            bool: True if email sent successfully, False otherwise
        """
        data = {
            "to": [{"email": to_email}],
            "subject": "Your Final Wishes Plan",
            "htmlContent": f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h1 style="color: #333; border-bottom: 2px solid #4F46E5; padding-bottom: 10px;">My Final Wishes Plan</h1>
                <p style="color: #666; font-size: 14px; margin-top: 20px;">
                    This plan was prepared by <strong>{escape(prepared_by or "")}</strong> and contains important end-of-life planning information.
                </p>
                <p style="color: #666; font-size: 14px;">
                    Please find your complete plan attached as a PDF document. Keep this in a safe place and make sure it is accessible to those who will need it.
                </p>
            </div>
            """,
            "attachment": [{"name": "My-Final-Wishes-Plan.pdf", "content": pdf_base64}],
        }
        return await self._send(data, f"plan email to {to_email}")

    async def send_song_order_email(
        self,
        order_id: str,
        package_type: str,
        request_data: Dict[str, Any],
        customer_email: Optional[str] = None,
    ) -> bool:
        """Notify the song team about a new tribute song order"""
        if not self.song_order_recipients:
            logger.error("SONG_ORDER_NOTIFY_EMAIL not configured - cannot send song order")
            return False

        details = "".join(
            f"<p><strong>{label}:</strong> {escape(str(request_data.get(key) or 'N/A'))}</p>"
            for key, label in SONG_REQUEST_FIELDS
        )
        story = "".join(
            f"<h3>{label}</h3><p>{escape(str(request_data.get(key) or 'Not provided'))}</p>"
            for key, label in SONG_STORY_FIELDS
        )

        data = {
            "to": [{"email": address} for address in self.song_order_recipients],
            "subject": "New Tribute Song Order",
            "htmlContent": f"""
            <h1>New Custom Tribute Song Order</h1>
            <h2>Order Details</h2>
            <p><strong>Package:</strong> {escape((package_type or '').upper())}</p>
            <p><strong>Order ID:</strong> {escape(str(order_id))}</p>
            <p><strong>Customer Email:</strong> {escape(customer_email or 'N/A')}</p>
            <h2>Song Request Details</h2>
            {details}
            {story}
            """,
        }
        return await self._send(data, f"song order {order_id}")

    async def send_contact_email(self, name: str, email: str, message: str, kind: str = "contact") -> bool:
        """Forward a contact form or suggestion to support and confirm receipt to the sender"""
        if not self.support_recipients:
            logger.error("SUPPORT_EMAIL not configured - cannot forward contact request")
            return False

        subject = "Contact Request" if kind == "contact" else "Suggestion Submitted"
        body = escape(message or "")

        forwarded = await self._send({
            "to": [{"email": address} for address in self.support_recipients],
            "replyTo": {"email": email, "name": name},
            "subject": f"{subject} from {name}",
            "htmlContent": f"""
            <h1>{subject}</h1>
            <p><strong>From:</strong> {escape(name)}</p>
            <p><strong>Email:</strong> {escape(email)}</p>
            <p style="white-space: pre-wrap;">{body}</p>
            """,
        }, f"{kind} request from {email}")

        if not forwarded:
            return False

        noun = "message" if kind == "contact" else "suggestion"
        await self._send({
            "to": [{"email": email, "name": name}],
            "subject": f"We received your {noun}!",
            "htmlContent": f"""
            <h1>Thank you for reaching out!</h1>
            <p>Hi {escape(name)},</p>
            <p>We have received your {noun} and will get back to you as soon as possible.</p>
            <p style="white-space: pre-wrap;">{body}</p>
            """,
        }, f"{kind} confirmation to {email}")
        return True


# Singleton instance
email_service = BrevoEmailService()
