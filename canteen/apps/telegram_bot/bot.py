import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from telegram.ext import Application, CommandHandler

from .handlers import balance_handler, history_handler, qr_handler, start_handler, stop_handler

logger = logging.getLogger(__name__)


class TelegramBot:
    def __init__(self, token=None):
        token = token or settings.TELEGRAM_BOT_TOKEN
        if not token:
            raise ImproperlyConfigured("TELEGRAM_BOT_TOKEN is not set")
        self.application = Application.builder().token(token).build()
        self.setup_handlers()

    def setup_handlers(self):
        """Setup all bot handlers"""
        self.application.add_handler(CommandHandler("start", start_handler))
        self.application.add_handler(CommandHandler("help", start_handler))
        self.application.add_handler(CommandHandler("qr", qr_handler))
        self.application.add_handler(CommandHandler("stop", stop_handler))
        self.application.add_handler(CommandHandler("balance", balance_handler))
        self.application.add_handler(CommandHandler("history", history_handler))

    def get_application(self):
        return self.application

    def run(self):
        logger.info("Starting Telegram bot polling")
        self.application.run_polling()
