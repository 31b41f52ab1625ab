import asyncio
import logging

import telegram
from celery import shared_task
from django.conf import settings

from apps.core.models import AuditLog

logger = logging.getLogger(__name__)

MEAL_EMOJI = {
    'breakfast': '🥞',
    'lunch': '🍲',
    'supper': '🍽️',
}


async def _send_message(chat_id, text, parse_mode):
    bot = telegram.Bot(token=settings.TELEGRAM_BOT_TOKEN)
    async with bot:
        await bot.send_message(chat_id=chat_id, text=text, parse_mode=parse_mode)


@shared_task(bind=True, max_retries=3)
def send_telegram_message(self, chat_id, text, parse_mode='Markdown'):
    """Send Telegram message with retry logic"""
    try:
        asyncio.run(_send_message(chat_id, text, parse_mode))

        AuditLog.objects.create(
            actor_type='SYSTEM',
            event_type='NOTIFICATION_SENT',
            payload={
                'chat_id': chat_id,
                'message': text[:100] + '...' if len(text) > 100 else text
            }
        )

    except telegram.error.TelegramError as exc:
        logger.error(f"Failed to send Telegram message: {exc}")

        if self.request.retries < self.max_retries:
            raise self.retry(countdown=60 * (2 ** self.request.retries))

        AuditLog.objects.create(
            actor_type='SYSTEM',
            event_type='NOTIFICATION_FAILED',
            payload={
                'chat_id': chat_id,
                'error': str(exc),
                'message': text[:100] + '...' if len(text) > 100 else text
            }
        )


@shared_task
def send_meal_served_notification(tg_user_id, meal_type, served_at, balance):
    """Tell the student a meal was redeemed against their QR code"""
    text = (
        f"🍽️ *Meal Served*\n\n"
        f"{MEAL_EMOJI.get(meal_type, '🍴')} {meal_type.title()} redeemed at {served_at}\n"
        f"Meals remaining: {balance}\n\n"
        f"Enjoy your meal! 😊"
    )

    send_telegram_message.delay(tg_user_id, text)


@shared_task
def send_payment_recorded_notification(tg_user_id, meals_added, balance):
    """Tell the student a payment topped up their meal balance"""
    text = (
        f"✅ *Payment Recorded*\n\n"
        f"{meals_added} meals were added to your account.\n"
        f"Meals remaining: {balance}"
    )

    send_telegram_message.delay(tg_user_id, text)
