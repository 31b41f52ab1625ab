from django.contrib import admin

from .ledger import compute_meal_balance
from .models import AuditLog, MealLog, Payment, QRCode, Staff, StaffToken, Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ('reg_number', 'full_name', 'meal_balance', 'ledger_balance', 'tg_user_id')
    search_fields = ('reg_number', 'full_name', 'email')

    @admin.display(description='Ledger balance')
    def ledger_balance(self, obj):
        return compute_meal_balance(obj)


@admin.register(Staff)
class StaffAdmin(admin.ModelAdmin):
    list_display = ('staff_id', 'full_name', 'role')
    list_filter = ('role',)
    search_fields = ('staff_id', 'full_name')


@admin.register(StaffToken)
class StaffTokenAdmin(admin.ModelAdmin):
    list_display = ('label', 'staff', 'issued_at', 'expires_at', 'active')
    list_filter = ('active',)
    readonly_fields = ('token_hash',)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('student', 'amount', 'meals_added', 'payment_date', 'recorded_by')
    search_fields = ('student__reg_number', 'student__full_name')


@admin.register(QRCode)
class QRCodeAdmin(admin.ModelAdmin):
    list_display = ('student', 'meal_type', 'is_used', 'created_at', 'expires_at')
    list_filter = ('meal_type', 'is_used')
    search_fields = ('student__reg_number',)
    readonly_fields = ('qr_data', 'qr_image_url', 'created_at', 'expires_at')


@admin.register(MealLog)
class MealLogAdmin(admin.ModelAdmin):
    list_display = ('student', 'meal_type', 'staff', 'served_at')
    list_filter = ('meal_type', 'served_at')
    search_fields = ('student__reg_number', 'student__full_name')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('actor_type', 'event_type', 'created_at')
    list_filter = ('actor_type', 'event_type')
