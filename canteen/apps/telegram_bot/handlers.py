from asgiref.sync import sync_to_async
from django.utils import timezone
from telegram import Update
from telegram.ext import ContextTypes

from apps.core.display import MEAL_ICONS
from apps.core.ledger import compute_meal_balance, recent_meals
from apps.core.models import Student

from .refresh import QRRefreshSession

NOT_LINKED = (
    "This Telegram account is not linked to a student.\n"
    "Ask the canteen office to link your registration number."
)


def find_linked_student(tg_user_id):
    return Student.objects.filter(tg_user_id=tg_user_id).first()


async def start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text(
        "🍽️ *Canteen Meal Pass*\n\n"
        "/qr - show your QR code for the current meal\n"
        "/stop - stop refreshing the QR code\n"
        "/balance - meals left on your account\n"
        "/history - your most recent meals",
        parse_mode='Markdown'
    )


async def qr_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    student = await sync_to_async(find_linked_student)(update.effective_user.id)
    if student is None:
        await update.message.reply_text(NOT_LINKED)
        return

    session = context.chat_data.get('qr_session')
    if session is None:
        session = QRRefreshSession(student, update.effective_chat.id)
        context.chat_data['qr_session'] = session
    elif session.running:
        await update.message.reply_text("Your QR code is already being shown. Send /stop to hide it.")
        return

    session.start(context.job_queue)
    await update.message.reply_text(
        f"Showing your meal QR code. It refreshes every {session.interval} seconds. Send /stop to hide it."
    )


async def stop_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    session = context.chat_data.pop('qr_session', None)
    if session is not None and session.stop():
        await update.message.reply_text("Stopped refreshing your QR code.")
    else:
        await update.message.reply_text("Your QR code is not being shown.")


async def balance_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    student = await sync_to_async(find_linked_student)(update.effective_user.id)
    if student is None:
        await update.message.reply_text(NOT_LINKED)
        return

    balance = await sync_to_async(compute_meal_balance)(student)
    await update.message.reply_text(f"You have {balance} meals remaining.")


async def history_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
    student = await sync_to_async(find_linked_student)(update.effective_user.id)
    if student is None:
        await update.message.reply_text(NOT_LINKED)
        return

    meals = await sync_to_async(recent_meals)(student)
    if not meals:
        await update.message.reply_text("No meals served yet.")
        return

    lines = ["Your recent meals:"]
    for log in meals:
        served = timezone.localtime(log.served_at)
        lines.append(f"{MEAL_ICONS.get(log.meal_type, '🍴')} {log.meal_type.title()} - {served:%a %d %b %H:%M}")
    await update.message.reply_text("\n".join(lines))
