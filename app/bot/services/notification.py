# app/bot/services/notification.py
import html
import logging
from typing import Optional

from app.bot import core as bot_core
from app.core.config import settings
from app.schemas.order import Order

logger = logging.getLogger(__name__)

# Telegram message length limit
MAX_MESSAGE_LENGTH = 4096
TRUNCATION_MARK = "\n[...]"


def _escape_within(text: str, limit: int) -> str:
    """
    HTML-escapes `text` so the result is at most `limit` characters. The cut is
    made on the raw text, so an entity such as `&amp;` is never split.
    """
    escaped = html.escape(text)
    if len(escaped) <= limit:
        return escaped

    budget = max(limit - len(TRUNCATION_MARK), 0)
    parts, size = [], 0
    for char in text:
        piece = html.escape(char)
        if size + len(piece) > budget:
            break
        parts.append(piece)
        size += len(piece)
    return "".join(parts) + TRUNCATION_MARK


def _with_pre_block(head: str, body: str) -> str:
    """`head` (already HTML) followed by `body` escaped inside <pre>, within the message limit."""
    budget = MAX_MESSAGE_LENGTH - len(head) - len("<pre></pre>")
    return f"{head}<pre>{_escape_within(body, budget)}</pre>"


async def _send_to_admin_chat(text: str) -> bool:
    """
    Sends a message to the operator chat. Returns False (after logging) when the
    bot is not configured or Telegram rejects the message; never raises.
    """
    if bot_core.bot is None or settings.ADMIN_CHAT_ID is None:
        logger.info("Operator chat is not configured, skipping Telegram alert.")
        return False

    try:
        await bot_core.bot.send_message(chat_id=settings.ADMIN_CHAT_ID, text=text)
        return True
    except Exception as e:
        logger.error(f"Failed to send alert to operator chat {settings.ADMIN_CHAT_ID}: {e}")
        return False


async def send_new_order_to_admin(order: Order, summary: str) -> bool:
    head = f"🆕 <b>New order</b> <code>{html.escape(order.id)}</code>\n\n"
    return await _send_to_admin_chat(_with_pre_block(head, summary))


async def send_order_save_failure_to_admin(reason: str, summary: str) -> bool:
    """
    The order could not be stored; the customer was still sent to Messenger, so
    the operator has to record it by hand.
    """
    head = (
        f"⚠️ <b>Order was NOT saved to the database</b>\n"
        f"<b>Reason:</b> <code>{_escape_within(reason, 500)}</code>\n\n"
        f"The customer was forwarded to Messenger with this order:\n"
    )
    return await _send_to_admin_chat(_with_pre_block(head, summary))


async def send_error_to_admin(error_message: str, details: Optional[str] = None) -> bool:
    """`error_message` is sent as HTML; plain-text `details` (a traceback) go in a <pre> block."""
    if details is None:
        return await _send_to_admin_chat(error_message)
    return await _send_to_admin_chat(_with_pre_block(error_message, details))
