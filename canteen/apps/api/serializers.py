from django.utils import timezone
from rest_framework import serializers
from apps.core.ledger import compute_meal_balance
from apps.core.models import Student, MealLog, Payment


class StudentSnapshotSerializer(serializers.ModelSerializer):
	meal_balance = serializers.SerializerMethodField()

	class Meta:
		model = Student
		fields = ['id', 'reg_number', 'full_name', 'email', 'meal_balance']

	def get_meal_balance(self, obj):
		return compute_meal_balance(obj)


class MealLogSerializer(serializers.ModelSerializer):
	student_name = serializers.CharField(source='student.full_name', read_only=True)
	student_reg_number = serializers.CharField(source='student.reg_number', read_only=True)
	staff_name = serializers.CharField(source='staff.full_name', read_only=True, default=None)

	class Meta:
		model = MealLog
		fields = ['id', 'student_name', 'student_reg_number', 'staff_name',
				 'meal_type', 'served_at', 'qr_code']


class ScanRequestSerializer(serializers.Serializer):
	# Blank scans still go through redemption and come back as an invalid format
	qr_data = serializers.CharField(trim_whitespace=True, allow_blank=True)


class PaymentCreateSerializer(serializers.Serializer):
	student_id = serializers.PrimaryKeyRelatedField(queryset=Student.objects.all(), source='student')
	amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
	meals_added = serializers.IntegerField(min_value=1)


class PaymentSerializer(serializers.ModelSerializer):
	student_name = serializers.CharField(source='student.full_name', read_only=True)
	student_reg_number = serializers.CharField(source='student.reg_number', read_only=True)

	class Meta:
		model = Payment
		fields = ['id', 'student', 'student_name', 'student_reg_number',
				 'amount', 'meals_added', 'payment_date']


class ScanResultSerializer(serializers.Serializer):
	success = serializers.BooleanField()
	result = serializers.CharField()
	message = serializers.CharField()
	icon = serializers.CharField()
	meal_type = serializers.CharField(allow_null=True)
	student_snapshot = serializers.SerializerMethodField()
	meal_log = serializers.SerializerMethodField()

	def get_student_snapshot(self, obj):
		if obj.student is None:
			return None
		return StudentSnapshotSerializer(obj.student).data

	def get_meal_log(self, obj):
		if obj.meal_log is None:
			return None
		return MealLogSerializer(obj.meal_log).data


class QRDisplaySerializer(serializers.Serializer):
	status = serializers.CharField()
	meal_type = serializers.CharField(allow_null=True)
	qr_code_id = serializers.CharField(allow_null=True)
	image_url = serializers.CharField(allow_null=True)
	payload = serializers.CharField(allow_null=True)
	expires_at = serializers.DateTimeField(allow_null=True)
	expires_in_seconds = serializers.SerializerMethodField()
	used = serializers.BooleanField()
	next_meal = serializers.CharField(allow_null=True)
	next_meal_start = serializers.DateTimeField(allow_null=True)

	def get_expires_in_seconds(self, obj):
		if obj.expires_at is None:
			return None
		now = self.context.get('now') or timezone.now()
		return max(0, int((obj.expires_at - now).total_seconds()))
