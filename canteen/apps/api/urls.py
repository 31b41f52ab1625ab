# URLs for api app
from django.urls import path
from .views import (
	meal_logs,
	record_payment,
	scanner_scan,
	student_active_qr,
	student_meal_history,
	student_snapshot,
)

urlpatterns = [
	path('scanner/scan', scanner_scan, name='scanner_scan'),
	path('student/me/qr', student_active_qr, name='student_active_qr'),
	path('student/me/meals', student_meal_history, name='student_meal_history'),
	path('student/<uuid:student_id>/snapshot', student_snapshot, name='student_snapshot'),
	path('meal-logs', meal_logs, name='meal_logs'),
	path('payments', record_payment, name='record_payment'),
]
