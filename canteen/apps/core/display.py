"""What a student's screen shows for the meal window open at a given instant."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.utils import timezone

from .meal_windows import get_calendar
from .services import ensure_active_credential

MEAL_ICONS = {'breakfast': '🥞', 'lunch': '🍲', 'supper': '🍽️'}


def format_remaining(expires_at, now=None):
	if expires_at is None:
		return '—'
	now = now or timezone.now()
	seconds = int((expires_at - now).total_seconds())
	if seconds <= 0:
		return 'Expired'
	hours, rest = divmod(seconds, 3600)
	minutes, seconds = divmod(rest, 60)
	if hours:
		return f"{hours}h {minutes}m {seconds}s"
	if minutes:
		return f"{minutes}m {seconds}s"
	return f"{seconds}s"


@dataclass
class QRDisplay:
	status: str
	meal_type: Optional[str] = None
	qr_code_id: Optional[str] = None
	image_url: Optional[str] = None
	payload: Optional[str] = None
	expires_at: Optional[datetime] = None
	used: bool = False
	next_meal: Optional[str] = None
	next_meal_start: Optional[datetime] = None

	def remaining(self, now=None):
		return format_remaining(self.expires_at, now)

	def caption(self, now=None):
		meal = self.meal_type.title()
		icon = MEAL_ICONS.get(self.meal_type, '🍴')
		if self.used:
			return f"{icon} {meal} QR\n✅ Already served this window"
		return f"{icon} {meal} QR\n⏳ Expires in {self.remaining(now)}"


def build_display(student, now=None):
	"""Work out what the student should be looking at right now.

	``status`` is ``idle`` outside every window, ``preparing`` when the
	credential could not be fetched or minted, and ``ready`` otherwise.
	"""
	now = now or timezone.now()
	meal_type, qr_code = ensure_active_credential(student, now)

	if meal_type is None:
		next_meal, next_start = get_calendar().next_meal(now)
		return QRDisplay('idle', next_meal=next_meal, next_meal_start=next_start)

	if qr_code is None:
		return QRDisplay('preparing', meal_type=meal_type)

	return QRDisplay(
		'ready',
		meal_type=meal_type,
		qr_code_id=str(qr_code.id),
		image_url=qr_code.qr_image_url,
		payload=qr_code.qr_data,
		expires_at=qr_code.expires_at,
		used=qr_code.is_used,
	)
