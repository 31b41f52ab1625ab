from datetime import timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.contrib.auth.models import User
from django.db import DatabaseError
from django.urls import reverse
from rest_framework.test import APIClient

from apps.core.ledger import apply_payment
from apps.core.models import MealLog, StaffToken
from apps.core.services import ensure_active_credential, redeem_qr

pytestmark = pytest.mark.django_db

SCAN_URL = reverse('scanner_scan')
STUDENT_QR_URL = reverse('student_active_qr')
STUDENT_MEALS_URL = reverse('student_meal_history')
LOGIN_URL = reverse('rest_framework:login')
MEAL_LOGS_URL = reverse('meal_logs')
PAYMENTS_URL = reverse('record_payment')


def snapshot_url(student):
    return reverse('student_snapshot', kwargs={'student_id': student.id})


class TestStaffTokenAuthentication:

    def test_missing_token_is_unauthorized(self):
        response = APIClient().post(SCAN_URL, {'qr_data': 'x'}, format='json')
        assert response.status_code == 401
        assert response['WWW-Authenticate'] == 'Bearer'

    def test_unknown_token_is_rejected(self):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION='Bearer not-a-real-token')
        response = client.post(SCAN_URL, {'qr_data': 'x'}, format='json')
        assert response.status_code == 401
        assert response.data['detail'] == 'Invalid token'

    def test_expired_token_is_rejected(self, staff):
        row, token = StaffToken.create_token(staff, 'Counter 2')
        StaffToken.objects.filter(pk=row.pk).update(expires_at=row.issued_at - timedelta(minutes=1))
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = client.post(SCAN_URL, {'qr_data': 'x'}, format='json')

        assert response.status_code == 401
        assert response.data['detail'] == 'Token expired'

    def test_revoked_token_is_rejected(self, staff):
        row, token = StaffToken.create_token(staff, 'Counter 3')
        StaffToken.objects.filter(pk=row.pk).update(active=False)
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        assert client.post(SCAN_URL, {'qr_data': 'x'}, format='json').status_code == 401

    def test_student_session_cannot_scan(self, student_client):
        assert student_client.post(SCAN_URL, {'qr_data': 'x'}, format='json').status_code == 403


class TestScannerScan:

    def test_valid_code_is_served(self, staff_client, student, staff, at, freeze_time):
        _, qr_code = ensure_active_credential(student, at(13, 5))
        freeze_time(at(13, 10))

        response = staff_client.post(SCAN_URL, {'qr_data': qr_code.qr_data}, format='json')

        assert response.status_code == 200
        assert response.data['success'] is True
        assert response.data['result'] == 'ALLOWED'
        assert response.data['message'] == 'Meal served successfully!'
        assert response.data['meal_type'] == 'lunch'
        assert response.data['student_snapshot']['reg_number'] == student.reg_number
        assert response.data['student_snapshot']['meal_balance'] == -1
        assert response.data['meal_log']['staff_name'] == staff.full_name
        assert MealLog.objects.get().staff == staff

    def test_replayed_code_is_blocked(self, staff_client, student, at, freeze_time):
        _, qr_code = ensure_active_credential(student, at(13, 5))
        freeze_time(at(13, 10))
        staff_client.post(SCAN_URL, {'qr_data': qr_code.qr_data}, format='json')

        response = staff_client.post(SCAN_URL, {'qr_data': qr_code.qr_data}, format='json')

        assert response.status_code == 200
        assert response.data['success'] is False
        assert response.data['result'] == 'BLOCKED_ALREADY_USED'
        assert response.data['meal_log'] is None

    def test_garbage_is_invalid_format(self, staff_client):
        response = staff_client.post(SCAN_URL, {'qr_data': 'hello there'}, format='json')

        assert response.status_code == 200
        assert response.data['result'] == 'BLOCKED_QR_INVALID'
        assert response.data['student_snapshot'] is None

    def test_blank_scan_is_invalid_format(self, staff_client):
        response = staff_client.post(SCAN_URL, {'qr_data': '   '}, format='json')

        assert response.status_code == 200
        assert response.data['result'] == 'BLOCKED_QR_INVALID'
        assert response.data['message'] == 'Invalid QR format'

    def test_missing_qr_data_is_a_bad_request(self, staff_client):
        response = staff_client.post(SCAN_URL, {}, format='json')

        assert response.status_code == 400
        assert 'qr_data' in response.data['details']

    def test_store_failure_is_service_unavailable(self, staff_client, student, at, freeze_time):
        _, qr_code = ensure_active_credential(student, at(13, 5))
        freeze_time(at(13, 10))

        with mock.patch.object(MealLog.objects, 'create', side_effect=DatabaseError('connection lost')):
            response = staff_client.post(SCAN_URL, {'qr_data': qr_code.qr_data}, format='json')

        assert response.status_code == 503
        assert response.data['result'] == 'ERROR'


class TestStudentSnapshot:

    def test_snapshot_reports_the_ledger_balance(self, staff_client, student):
        apply_payment(student, Decimal('400.00'), 4)

        response = staff_client.get(snapshot_url(student))

        assert response.status_code == 200
        assert response.data['full_name'] == 'Amina Wanjiru'
        assert response.data['meal_balance'] == 4

    def test_unknown_student_is_404(self, staff_client):
        response = staff_client.get(reverse('student_snapshot', kwargs={'student_id': '00000000-0000-0000-0000-000000000000'}))
        assert response.status_code == 404


class TestStudentActiveQR:

    def test_ready_during_a_window(self, student_client, student, at, freeze_time):
        freeze_time(at(6, 20))

        response = student_client.get(STUDENT_QR_URL)

        assert response.status_code == 200
        assert response.data['status'] == 'ready'
        assert response.data['meal_type'] == 'breakfast'
        assert response.data['expires_in_seconds'] == 40 * 60
        assert response.data['used'] is False
        assert response.data['meal_balance'] == 0
        assert response.data['qr_code_id'] == str(student.qr_codes.get().id)

    def test_polling_returns_the_same_code(self, student_client, at, freeze_time):
        freeze_time(at(6, 20))
        first = student_client.get(STUDENT_QR_URL).data
        freeze_time(at(6, 21))
        second = student_client.get(STUDENT_QR_URL).data

        assert first['qr_code_id'] == second['qr_code_id']
        assert second['expires_in_seconds'] == 39 * 60

    def test_idle_between_windows(self, student_client, at, freeze_time):
        freeze_time(at(10, 0))

        response = student_client.get(STUDENT_QR_URL)

        assert response.status_code == 200
        assert response.data['status'] == 'idle'
        assert response.data['qr_code_id'] is None
        assert response.data['next_meal'] == 'lunch'

    def test_preparing_is_service_unavailable(self, student_client, at, freeze_time):
        freeze_time(at(13, 0))

        with mock.patch('apps.core.services.store_qr_image', side_effect=OSError('disk full')):
            response = student_client.get(STUDENT_QR_URL)

        assert response.status_code == 503
        assert response.data['status'] == 'preparing'
        assert 'message' in response.data

    def test_staff_token_is_not_a_student(self, staff_client):
        assert staff_client.get(STUDENT_QR_URL).status_code == 403


class TestStudentLogin:

    @pytest.fixture
    def student_user(self, student):
        user = User.objects.create_user(username='amina', password='ugali-and-beans')
        student.user = user
        student.save(update_fields=['user'])
        return user

    def test_student_logs_in_and_polls_their_qr(self, student_user, at, freeze_time):
        freeze_time(at(13, 5))
        client = APIClient()

        response = client.post(LOGIN_URL, {'username': 'amina', 'password': 'ugali-and-beans'})

        assert response.status_code == 302
        assert response['Location'] == STUDENT_QR_URL

        response = client.get(STUDENT_QR_URL)
        assert response.status_code == 200
        assert response.data['status'] == 'ready'
        assert response.data['meal_type'] == 'lunch'

    def test_wrong_password_gets_no_session(self, student_user):
        client = APIClient()

        response = client.post(LOGIN_URL, {'username': 'amina', 'password': 'wrong'})

        assert response.status_code == 200
        assert client.get(STUDENT_QR_URL).status_code == 401


class TestStudentMealHistory:

    def test_history_lists_own_meals_newest_first(self, student_client, student, other_student, at):
        apply_payment(student, Decimal('500.00'), 5)
        for who, hour in ((student, 6), (other_student, 6), (student, 13)):
            _, qr_code = ensure_active_credential(who, at(hour, 30))
            redeem_qr(qr_code.qr_data, now=at(hour, 35))

        response = student_client.get(STUDENT_MEALS_URL)

        assert response.status_code == 200
        assert response.data['meal_balance'] == 3
        assert [row['meal_type'] for row in response.data['meals']] == ['lunch', 'breakfast']
        assert {row['student_reg_number'] for row in response.data['meals']} == {student.reg_number}

    def test_history_is_capped(self, student_client, student, at, settings):
        settings.MESS_CONFIG = {**settings.MESS_CONFIG, 'meal_history_limit': 1}
        for hour in (6, 13):
            _, qr_code = ensure_active_credential(student, at(hour, 30))
            redeem_qr(qr_code.qr_data, now=at(hour, 35))

        assert len(student_client.get(STUDENT_MEALS_URL).data['meals']) == 1

    def test_staff_token_has_no_history(self, staff_client):
        assert staff_client.get(STUDENT_MEALS_URL).status_code == 403


class TestMealLogs:

    def _serve(self, student, at, hour, minute, day=19):
        _, qr_code = ensure_active_credential(student, at(hour, minute, day=day))
        redeem_qr(qr_code.qr_data, now=at(hour, minute + 1, day=day))

    def test_logs_for_a_day_with_stats(self, staff_client, student, other_student, at):
        self._serve(student, at, 6, 10)
        self._serve(other_student, at, 6, 15)
        self._serve(student, at, 13, 10)
        self._serve(student, at, 13, 10, day=18)

        response = staff_client.get(MEAL_LOGS_URL, {'date': '2026-10-19'})

        assert response.status_code == 200
        assert response.data['date'] == '2026-10-19'
        assert response.data['count'] == 3
        assert response.data['stats'] == {'breakfast': 2, 'lunch': 1, 'supper': 0, 'total': 3}
        assert [row['meal_type'] for row in response.data['results']] == ['lunch', 'breakfast', 'breakfast']

    def test_defaults_to_today(self, staff_client, student, at, freeze_time):
        self._serve(student, at, 13, 10)
        freeze_time(at(20, 0))

        response = staff_client.get(MEAL_LOGS_URL)

        assert response.data['date'] == '2026-10-19'
        assert response.data['stats']['total'] == 1

    def test_bad_date_is_a_bad_request(self, staff_client):
        response = staff_client.get(MEAL_LOGS_URL, {'date': '19/10/2026'})
        assert response.status_code == 400


class TestRecordPayment:

    def test_admin_records_a_payment(self, admin_client, admin_staff, student):
        response = admin_client.post(PAYMENTS_URL, {
            'student_id': str(student.id),
            'amount': '500.00',
            'meals_added': 5,
        }, format='json')

        assert response.status_code == 201
        assert response.data['payment']['meals_added'] == 5
        assert response.data['payment']['amount'] == '500.00'
        assert response.data['student_snapshot']['meal_balance'] == 5
        assert student.payments.get().recorded_by == admin_staff

    def test_counter_staff_cannot_record_payments(self, staff_client, student):
        response = staff_client.post(PAYMENTS_URL, {
            'student_id': str(student.id),
            'amount': '500.00',
            'meals_added': 5,
        }, format='json')

        assert response.status_code == 403
        assert not student.payments.exists()

    @pytest.mark.parametrize('body', [
        {'meals_added': 5},
        {'student_id': '00000000-0000-0000-0000-000000000000', 'amount': '500.00', 'meals_added': 5},
        {'amount': '500.00', 'meals_added': 0},
    ])
    def test_invalid_payment_is_a_bad_request(self, admin_client, student, body):
        body.setdefault('student_id', str(student.id))
        response = admin_client.post(PAYMENTS_URL, body, format='json')
        assert response.status_code == 400
