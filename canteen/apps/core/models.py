import hashlib
import secrets
import uuid

from django.contrib.auth.models import User
from django.db import models
from django.utils import timezone

MEAL_CHOICES = [
	('breakfast', 'Breakfast'),
	('lunch', 'Lunch'),
	('supper', 'Supper'),
]

MEAL_TYPES = [value for value, _ in MEAL_CHOICES]


class Student(models.Model):
	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	reg_number = models.CharField(max_length=30, unique=True)
	full_name = models.CharField(max_length=100)
	email = models.EmailField(blank=True)
	# Maintained by payments only; the displayed balance is replayed from the ledger.
	meal_balance = models.IntegerField(default=0)
	user = models.OneToOneField(
		User, on_delete=models.SET_NULL, null=True, blank=True, related_name='student'
	)
	tg_user_id = models.BigIntegerField(unique=True, null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)

	def __str__(self):
		return f"{self.full_name} ({self.reg_number})"

	class Meta:
		db_table = 'students'


class Staff(models.Model):
	ROLE_CHOICES = [
		('staff', 'Staff'),
		('admin', 'Admin'),
	]

	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	staff_id = models.CharField(max_length=30, unique=True)
	full_name = models.CharField(max_length=100)
	email = models.EmailField(blank=True)
	role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='staff')
	created_at = models.DateTimeField(auto_now_add=True)

	def __str__(self):
		return f"{self.full_name} ({self.staff_id})"

	@property
	def is_admin(self):
		return self.role == 'admin'

	class Meta:
		db_table = 'staff'
		verbose_name_plural = 'staff'


class StaffToken(models.Model):
	staff = models.ForeignKey(Staff, on_delete=models.CASCADE, related_name='tokens')
	label = models.CharField(max_length=100)
	issued_at = models.DateTimeField(auto_now_add=True)
	expires_at = models.DateTimeField(null=True, blank=True)
	active = models.BooleanField(default=True)
	token_hash = models.CharField(max_length=64, unique=True)

	def __str__(self):
		return f"{self.label} - {'Active' if self.active else 'Inactive'}"

	@staticmethod
	def hash_token(token):
		return hashlib.sha256(token.encode()).hexdigest()

	@classmethod
	def create_token(cls, staff, label, expires_days=30):
		token = secrets.token_urlsafe(32)

		expires_at = None
		if expires_days:
			expires_at = timezone.now() + timezone.timedelta(days=expires_days)

		staff_token = cls.objects.create(
			staff=staff,
			label=label,
			expires_at=expires_at,
			token_hash=cls.hash_token(token)
		)

		return staff_token, token

	@classmethod
	def lookup(cls, token):
		"""Return the active, unexpired token row for a raw token, or None"""
		staff_token = cls.objects.select_related('staff').filter(
			token_hash=cls.hash_token(token),
			active=True
		).first()
		if staff_token is None or staff_token.is_expired():
			return None
		return staff_token

	def is_expired(self, now=None):
		now = now or timezone.now()
		return self.expires_at is not None and now > self.expires_at

	class Meta:
		db_table = 'staff_tokens'


class Payment(models.Model):
	student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='payments')
	amount = models.DecimalField(max_digits=10, decimal_places=2)
	meals_added = models.PositiveIntegerField()
	payment_date = models.DateTimeField(default=timezone.now)
	recorded_by = models.ForeignKey(Staff, on_delete=models.SET_NULL, null=True, blank=True)

	def __str__(self):
		return f"{self.student.full_name} - {self.meals_added} meals"

	class Meta:
		db_table = 'payments'
		ordering = ['-payment_date']


class QRCode(models.Model):
	"""A single-use right to redeem one meal during one meal window."""

	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='qr_codes')
	meal_type = models.CharField(max_length=10, choices=MEAL_CHOICES)
	qr_data = models.TextField()
	qr_image_url = models.CharField(max_length=500, blank=True)
	is_used = models.BooleanField(default=False)
	expires_at = models.DateTimeField()
	created_at = models.DateTimeField(default=timezone.now)

	def __str__(self):
		return f"{self.student.full_name} - {self.meal_type} - {'used' if self.is_used else 'unused'}"

	class Meta:
		db_table = 'qr_codes'
		indexes = [
			models.Index(fields=['student', 'meal_type', '-created_at'], name='qr_student_meal_created_idx'),
		]


class MealLog(models.Model):
	student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='meal_logs')
	staff = models.ForeignKey(Staff, on_delete=models.SET_NULL, null=True, blank=True, related_name='meal_logs')
	meal_type = models.CharField(max_length=10, choices=MEAL_CHOICES)
	qr_code = models.OneToOneField(QRCode, on_delete=models.PROTECT, related_name='meal_log')
	served_at = models.DateTimeField(default=timezone.now)

	def __str__(self):
		return f"{self.student.full_name} - {self.meal_type} - {self.served_at:%Y-%m-%d %H:%M}"

	class Meta:
		db_table = 'meal_logs'
		ordering = ['-served_at']


class AuditLog(models.Model):
	ACTOR_TYPE_CHOICES = [
		('STUDENT', 'Student'),
		('ADMIN', 'Admin'),
		('STAFF', 'Staff'),
		('SYSTEM', 'System'),
	]

	actor_type = models.CharField(max_length=10, choices=ACTOR_TYPE_CHOICES)
	actor_id = models.CharField(max_length=50, null=True, blank=True)
	event_type = models.CharField(max_length=50)
	payload = models.JSONField()
	created_at = models.DateTimeField(auto_now_add=True)

	def __str__(self):
		return f"{self.actor_type} - {self.event_type} - {self.created_at}"

	class Meta:
		db_table = 'audit_logs'
