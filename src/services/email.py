"""
Failure notification email.
"""

import logging
import traceback

from msgraph.generated.models.body_type import BodyType
from msgraph.generated.models.email_address import EmailAddress
from msgraph.generated.models.item_body import ItemBody
from msgraph.generated.models.message import Message
from msgraph.generated.models.recipient import Recipient
from msgraph.generated.users.item.send_mail.send_mail_post_request_body import (
    SendMailPostRequestBody,
)

from core.config import Settings
from core.graph_client import get_graph_client

logger = logging.getLogger(__name__)


def format_error_body(action: str, error: Exception) -> str:
    """Plain-text body with the failing action and its traceback."""
    details = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return f"An error occurred while {action}:\n\n{details}"


async def send_error_email(settings: Settings, error: Exception, action: str = "generating the monthly calendar summary"):
    """Send error notification email; skipped when no addresses are configured."""
    if not settings.error_email or not settings.from_email:
        logger.info("No error email configured, skipping notification")
        return

    graph = get_graph_client(settings)
    message = Message(
        subject="Monthly Calendar Summary - Script Error",
        body=ItemBody(content_type=BodyType.Text, content=format_error_body(action, error)),
        to_recipients=[Recipient(email_address=EmailAddress(address=settings.error_email))],
    )
    request_body = SendMailPostRequestBody(message=message, save_to_sent_items=True)

    try:
        await graph.users.by_user_id(settings.from_email).send_mail.post(request_body)
        logger.info("Sent error email to %s", settings.error_email)
    except Exception as e:
        logger.error("Failed to send error email: %s", e)
