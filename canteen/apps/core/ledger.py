import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Count, F, Sum

from .models import AuditLog, MEAL_TYPES, MealLog, Payment, Student

logger = logging.getLogger(__name__)


def compute_meal_balance(student):
	"""Meals owed to a student: every meal ever paid for minus every meal served.

	Replays the whole payment and meal log history on each call instead of
	reading ``Student.meal_balance``.
	"""
	credits = Payment.objects.filter(student=student).aggregate(total=Sum('meals_added'))['total'] or 0
	served = MealLog.objects.filter(student=student).count()
	return credits - served


def apply_payment(student, amount, meals_added, recorded_by=None):
	"""Record a payment and credit the student's stored meal balance"""
	with transaction.atomic():
		payment = Payment.objects.create(
			student=student,
			amount=amount,
			meals_added=meals_added,
			recorded_by=recorded_by,
		)
		Student.objects.filter(pk=student.pk).update(meal_balance=F('meal_balance') + meals_added)

		AuditLog.objects.create(
			actor_type='ADMIN' if recorded_by else 'SYSTEM',
			actor_id=str(recorded_by.pk) if recorded_by else None,
			event_type='PAYMENT_RECORDED',
			payload={
				'student_id': str(student.pk),
				'amount': str(amount),
				'meals_added': meals_added,
			}
		)

		if student.tg_user_id:
			from apps.utils.notifications import send_payment_recorded_notification
			tg_user_id = student.tg_user_id
			transaction.on_commit(
				lambda: send_payment_recorded_notification.delay(
					tg_user_id, meals_added, compute_meal_balance(student)
				)
			)

	student.refresh_from_db(fields=['meal_balance'])
	logger.info(f"Recorded payment of {meals_added} meals for {student.reg_number}")
	return payment


def recent_meals(student, limit=None):
	"""Newest meal logs for a student, capped at ``meal_history_limit``"""
	limit = limit or settings.MESS_CONFIG['meal_history_limit']
	return list(
		MealLog.objects.filter(student=student).select_related('student', 'staff').order_by('-served_at')[:limit]
	)


def meal_log_stats(logs):
	"""Count served meals per meal type for a queryset of MealLog rows"""
	stats = {meal_type: 0 for meal_type in MEAL_TYPES}
	for row in logs.order_by().values('meal_type').annotate(count=Count('id')):
		stats[row['meal_type']] = row['count']
	stats['total'] = sum(stats[meal_type] for meal_type in MEAL_TYPES)
	return stats
