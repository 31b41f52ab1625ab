from datetime import datetime
from unittest import mock

import pytest
from django.contrib.auth.models import User
from django.utils import timezone
from rest_framework.test import APIClient

from apps.core.models import Staff, StaffToken, Student


def local_time(hour, minute=0, day=19, month=10, year=2026):
	"""Aware datetime in the project time zone"""
	return timezone.make_aware(datetime(year, month, day, hour, minute))


@pytest.fixture
def at():
	return local_time


@pytest.fixture
def freeze_time():
	"""Pin django.utils.timezone.now for code that reads the clock itself"""
	patchers = []

	def _freeze(moment):
		patcher = mock.patch('django.utils.timezone.now', return_value=moment)
		patcher.start()
		patchers.append(patcher)
		return moment

	yield _freeze
	for patcher in patchers:
		patcher.stop()


@pytest.fixture
def student(db):
	return Student.objects.create(reg_number='SCT211-0001/2022', full_name='Amina Wanjiru')


@pytest.fixture
def other_student(db):
	return Student.objects.create(reg_number='SCT211-0002/2022', full_name='Brian Kiprono')


@pytest.fixture
def staff(db):
	return Staff.objects.create(staff_id='STF-001', full_name='Peter Otieno')


@pytest.fixture
def admin_staff(db):
	return Staff.objects.create(staff_id='ADM-001', full_name='Grace Mutua', role='admin')


def _client_for(staff_member):
	_, token = StaffToken.create_token(staff_member, 'Counter 1')
	client = APIClient()
	client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
	return client


@pytest.fixture
def staff_client(staff):
	return _client_for(staff)


@pytest.fixture
def admin_client(admin_staff):
	return _client_for(admin_staff)


@pytest.fixture
def student_client(student):
	user = User.objects.create_user(username='amina', password='not-used')
	student.user = user
	student.save(update_fields=['user'])
	client = APIClient()
	client.force_authenticate(user=user)
	return client
