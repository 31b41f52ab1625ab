from django.core.management.base import BaseCommand

from apps.telegram_bot.bot import TelegramBot


class Command(BaseCommand):
    help = "Run the Telegram bot that shows students their meal QR codes"

    def handle(self, *args, **options):
        TelegramBot().run()
