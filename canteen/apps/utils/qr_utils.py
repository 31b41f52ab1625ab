import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from io import BytesIO

import cloudinary
import cloudinary.uploader
import qrcode
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.core.models import MEAL_TYPES

logger = logging.getLogger(__name__)


class InvalidQRPayload(ValueError):
	pass


@dataclass(frozen=True)
class QRClaim:
	student_id: uuid.UUID
	reg_number: str
	meal_type: str
	expires: datetime


def format_expiry(expires_at):
	"""ISO-8601 in UTC with millisecond precision and a Z suffix"""
	utc = expires_at.astimezone(dt_timezone.utc)
	return utc.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def build_qr_payload(student, meal_type, expires_at):
	"""Serialize the claim a student presents at the counter"""
	return json.dumps({
		'studentId': str(student.id),
		'regNumber': student.reg_number,
		'mealType': meal_type,
		'expires': format_expiry(expires_at),
	})


def parse_qr_payload(payload):
	"""Parse scanned text into a QRClaim, raising InvalidQRPayload on any defect"""
	try:
		data = json.loads(payload)
	except (TypeError, ValueError) as exc:
		raise InvalidQRPayload("Payload is not JSON") from exc

	if not isinstance(data, dict):
		raise InvalidQRPayload("Payload is not an object")

	missing = [key for key in ('studentId', 'regNumber', 'mealType', 'expires') if not data.get(key)]
	if missing:
		raise InvalidQRPayload(f"Missing fields: {', '.join(missing)}")

	if data['mealType'] not in MEAL_TYPES:
		raise InvalidQRPayload(f"Unknown meal type {data['mealType']!r}")

	try:
		student_id = uuid.UUID(str(data['studentId']))
	except ValueError as exc:
		raise InvalidQRPayload("Malformed student id") from exc

	try:
		expires = parse_datetime(str(data['expires']))
	except ValueError as exc:
		raise InvalidQRPayload("Malformed expiry timestamp") from exc
	if expires is None:
		raise InvalidQRPayload("Malformed expiry timestamp")
	if timezone.is_naive(expires):
		expires = timezone.make_aware(expires)

	return QRClaim(
		student_id=student_id,
		reg_number=str(data['regNumber']),
		meal_type=data['mealType'],
		expires=expires,
	)


def generate_qr_image(payload, size=None, border=None):
	"""Render the payload as a PNG about ``size`` pixels wide and return its bytes"""
	size = size or settings.MESS_CONFIG['qr_image_size']
	border = settings.MESS_CONFIG['qr_image_border'] if border is None else border

	qr = qrcode.QRCode(
		version=None,
		error_correction=qrcode.constants.ERROR_CORRECT_M,
		box_size=10,
		border=border,
	)
	qr.add_data(payload)
	qr.make(fit=True)
	qr.box_size = max(1, size // (qr.modules_count + 2 * border))

	img = qr.make_image(fill_color="black", back_color="white")

	buffer = BytesIO()
	img.save(buffer, format='PNG')
	return buffer.getvalue()


def qr_image_name(student, meal_type, day):
	return f"qr_{student.id}_{meal_type}_{day:%Y-%m-%d}.png"


def check_image_storage():
	"""Fail early when QR images go to Cloudinary without credentials"""
	if settings.QR_IMAGE_STORAGE not in ('local', 'cloudinary'):
		raise ImproperlyConfigured(f"Unknown QR_IMAGE_STORAGE {settings.QR_IMAGE_STORAGE!r}")
	if settings.QR_IMAGE_STORAGE == 'cloudinary':
		config = cloudinary.config()
		if not (config.cloud_name and config.api_key and config.api_secret):
			raise ImproperlyConfigured("QR_IMAGE_STORAGE is 'cloudinary' but CLOUDINARY_URL is not set")


def store_qr_image(file_name, image_bytes):
	"""Persist a rendered QR image, replacing any same-named artifact, and return its URL"""
	if settings.QR_IMAGE_STORAGE == 'cloudinary':
		result = cloudinary.uploader.upload(
			BytesIO(image_bytes),
			folder=settings.QR_IMAGE_FOLDER,
			public_id=file_name.rsplit('.', 1)[0],
			overwrite=True,
			resource_type='image',
		)
		logger.debug(f"Uploaded QR image {result.get('public_id')} to Cloudinary")
		return result['secure_url']

	path = f"{settings.QR_IMAGE_FOLDER}/{file_name}"
	if default_storage.exists(path):
		default_storage.delete(path)
	saved = default_storage.save(path, ContentFile(image_bytes))
	logger.debug(f"Stored QR image {saved}")
	return default_storage.url(saved)
