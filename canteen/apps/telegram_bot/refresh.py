"""
Keeps a student's Telegram chat showing the QR code for the meal window that
is open right now.

Each chat gets one ``QRRefreshSession``. Starting it schedules a repeating
job that fires immediately and then every refresh interval; every tick asks
``ensure_active_credential`` again, so window rollover and expiry are picked
up without any state of its own beyond what it last showed.
"""
import logging

from asgiref.sync import sync_to_async
from django.conf import settings
from django.utils import timezone
from telegram.error import TelegramError

from apps.core.display import build_display
from apps.utils.qr_utils import generate_qr_image

logger = logging.getLogger(__name__)


class QRRefreshSession:
	def __init__(self, student, chat_id, interval=None):
		self.student = student
		self.chat_id = chat_id
		self.interval = interval or settings.MESS_CONFIG['qr_refresh_interval_seconds']
		self.job = None
		self.shown_qr_id = None
		self.photo_message_id = None
		self.shown_caption = None
		self.last_status = None

	@property
	def running(self):
		return self.job is not None

	def start(self, job_queue):
		if self.job is not None:
			return self.job
		self.job = job_queue.run_repeating(
			self.tick,
			interval=self.interval,
			first=0,
			chat_id=self.chat_id,
			name=f"qr-refresh-{self.chat_id}",
		)
		return self.job

	def stop(self):
		if self.job is None:
			return False
		self.job.schedule_removal()
		self.job = None
		return True

	def refresh(self, now=None):
		return build_display(self.student, now)

	async def tick(self, context):
		display = await sync_to_async(self.refresh)()
		try:
			await self.render(context.bot, display)
		except TelegramError as exc:
			logger.error(f"Failed to update QR for chat {self.chat_id}: {exc}")
			return
		self.last_status = display.status

	async def render(self, bot, display):
		if display.status == 'ready':
			caption = display.caption()
			if display.qr_code_id != self.shown_qr_id:
				photo = display.image_url
				if not photo.startswith(('http://', 'https://')):
					photo = generate_qr_image(display.payload)
				message = await bot.send_photo(chat_id=self.chat_id, photo=photo, caption=caption)
				self.shown_qr_id = display.qr_code_id
				self.photo_message_id = message.message_id
			elif caption != self.shown_caption:
				# Telegram rejects an edit that leaves the caption unchanged
				await bot.edit_message_caption(
					chat_id=self.chat_id, message_id=self.photo_message_id, caption=caption
				)
			self.shown_caption = caption
			return

		if display.status == 'preparing':
			if self.last_status != 'preparing':
				await bot.send_message(
					chat_id=self.chat_id,
					text="⚠️ Could not prepare your QR code. Retrying shortly..."
				)
			return

		if self.last_status != 'idle':
			self.shown_qr_id = None
			self.photo_message_id = None
			self.shown_caption = None
			starts = timezone.localtime(display.next_meal_start)
			await bot.send_message(
				chat_id=self.chat_id,
				text=f"No meal is being served right now.\nNext: {display.next_meal.title()} at {starts:%H:%M} ({starts:%a})"
			)
