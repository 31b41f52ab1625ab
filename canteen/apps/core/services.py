"""
QR meal credentials.

``ensure_active_credential`` hands a student the credential for the meal
window that is open right now, minting one on the first request inside the
window. ``redeem_qr`` is what the counter runs against scanned text.

Issuance is check-then-act with no lock: two requests that both miss the
lookup before either insert lands will each mint a credential for the same
window. A unique constraint on (student, meal_type, window day) would close
that gap.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import cloudinary.exceptions
from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.utils.qr_utils import (
	InvalidQRPayload,
	build_qr_payload,
	generate_qr_image,
	parse_qr_payload,
	qr_image_name,
	store_qr_image,
)

from .ledger import compute_meal_balance
from .meal_windows import get_calendar
from .models import MealLog, QRCode, Student

logger = logging.getLogger(__name__)


def find_window_credential(student, meal_type, window_start):
	"""Return the credential issued during this occurrence of the window, if any"""
	limit = settings.MESS_CONFIG['qr_lookup_limit']
	recent = QRCode.objects.filter(
		student=student,
		meal_type=meal_type
	).order_by('-created_at')[:limit]

	for qr_code in recent:
		if qr_code.created_at >= window_start:
			return qr_code
	return None


def issue_credential(student, meal_type, window_end, now):
	payload = build_qr_payload(student, meal_type, window_end)
	image = generate_qr_image(payload)
	image_url = store_qr_image(qr_image_name(student, meal_type, timezone.localdate(now)), image)

	return QRCode.objects.create(
		student=student,
		meal_type=meal_type,
		qr_data=payload,
		qr_image_url=image_url,
		expires_at=window_end,
		created_at=now,
	)


def ensure_active_credential(student, now=None):
	"""Return ``(meal_type, qr_code)`` for the meal window open at ``now``.

	``(None, None)`` means no window is open. ``(meal_type, None)`` means the
	credential could not be looked up or minted; the failure is logged and
	the caller should retry on its next refresh.
	"""
	now = now or timezone.now()
	calendar = get_calendar()

	meal_type = calendar.active_meal(now)
	if meal_type is None:
		return None, None

	window_start, window_end = calendar.window_bounds(meal_type, now)

	try:
		existing = find_window_credential(student, meal_type, window_start)
	except DatabaseError as exc:
		logger.error(f"Failed to look up {meal_type} QR for {student.reg_number}: {exc}")
		return meal_type, None

	if existing is not None:
		return meal_type, existing

	# cloudinary raises ValueError for missing credentials
	try:
		qr_code = issue_credential(student, meal_type, window_end, now)
	except (DatabaseError, OSError, ValueError, cloudinary.exceptions.Error) as exc:
		logger.error(f"Failed to issue {meal_type} QR for {student.reg_number}: {exc}")
		return meal_type, None

	logger.info(f"Issued {meal_type} QR {qr_code.id} for {student.reg_number}")
	return meal_type, qr_code


@dataclass
class ScanResult:
	success: bool
	result: str
	message: str
	icon: str
	student: Optional[Student] = None
	meal_type: Optional[str] = None
	meal_log: Optional[MealLog] = None


def _blocked(result, message, icon, **extra):
	logger.info(f"Scan blocked: {result}")
	return ScanResult(False, result, message, icon, **extra)


def redeem_qr(qr_text, staff=None, now=None):
	"""Validate scanned text and, if it checks out, serve the meal.

	The claim's embedded expiry and the stored row's expiry are checked
	separately; both must still be in the future.
	"""
	now = now or timezone.now()

	try:
		claim = parse_qr_payload(qr_text)
	except InvalidQRPayload as exc:
		logger.info(f"Rejected QR payload: {exc}")
		return _blocked('BLOCKED_QR_INVALID', "Invalid QR format", '❌')

	if claim.expires <= now:
		return _blocked('BLOCKED_EXPIRED', "QR code has expired", '⏰', meal_type=claim.meal_type)

	try:
		student = Student.objects.filter(id=claim.student_id, reg_number=claim.reg_number).first()
		if student is None:
			return _blocked('BLOCKED_STUDENT_NOT_FOUND', "Student not found", '❓', meal_type=claim.meal_type)

		qr_code = QRCode.objects.filter(
			student=student,
			meal_type=claim.meal_type,
			is_used=False,
			expires_at__gt=now
		).order_by('-created_at').first()
		if qr_code is None:
			return _blocked(
				'BLOCKED_ALREADY_USED', "QR already used or invalid", '🚫',
				student=student, meal_type=claim.meal_type
			)

		with transaction.atomic():
			# Only the scan that flips is_used gets to log the meal
			consumed = QRCode.objects.filter(pk=qr_code.pk, is_used=False).update(is_used=True)
			if not consumed:
				return _blocked(
					'BLOCKED_ALREADY_USED', "QR already used or invalid", '🚫',
					student=student, meal_type=claim.meal_type
				)

			meal_log = MealLog.objects.create(
				student=student,
				staff=staff,
				meal_type=claim.meal_type,
				qr_code=qr_code,
				served_at=now,
			)

			if student.tg_user_id:
				_notify_meal_served(student, claim.meal_type, now)

	except DatabaseError as exc:
		logger.error(f"Scan failed for student {claim.student_id}: {exc}")
		return ScanResult(False, 'ERROR', "Scan failed, please try again", '⚠️')

	logger.info(f"Served {claim.meal_type} to {student.reg_number} (QR {qr_code.id})")
	return ScanResult(
		True, 'ALLOWED', "Meal served successfully!", '✅',
		student=student, meal_type=claim.meal_type, meal_log=meal_log
	)


def _notify_meal_served(student, meal_type, served_at):
	from apps.utils.notifications import send_meal_served_notification

	tg_user_id = student.tg_user_id
	served_time = timezone.localtime(served_at).strftime('%H:%M')
	transaction.on_commit(
		lambda: send_meal_served_notification.delay(
			tg_user_id, meal_type, served_time, compute_meal_balance(student)
		)
	)
