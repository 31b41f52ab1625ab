from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission
from rest_framework.exceptions import AuthenticationFailed
from apps.core.models import StaffToken


class StaffUser:
	"""Request user for a scanning device authenticated by a staff token"""
	is_authenticated = True
	is_anonymous = False

	def __init__(self, staff_token):
		self.staff_token = staff_token
		self.staff = staff_token.staff


class StaffTokenAuthentication(BaseAuthentication):
	"""Custom authentication for staff tokens"""

	def authenticate(self, request):
		auth_header = request.META.get('HTTP_AUTHORIZATION')
		if not auth_header or not auth_header.startswith('Bearer '):
			return None

		token = auth_header.split(' ', 1)[1].strip()
		staff_token = StaffToken.objects.select_related('staff').filter(
			token_hash=StaffToken.hash_token(token),
			active=True
		).first()

		if staff_token is None:
			raise AuthenticationFailed('Invalid token')

		if staff_token.is_expired():
			raise AuthenticationFailed('Token expired')

		return (StaffUser(staff_token), staff_token)

	def authenticate_header(self, request):
		return 'Bearer'


class IsStaffUser(BasePermission):
	"""Permission class for staff users"""

	def has_permission(self, request, view):
		return hasattr(request.user, 'staff_token')


class IsAdminStaff(IsStaffUser):
	"""Staff token belonging to an admin"""

	def has_permission(self, request, view):
		return super().has_permission(request, view) and request.user.staff.is_admin


class IsStudentUser(BasePermission):
	"""Session user linked to a student record"""

	def has_permission(self, request, view):
		user = request.user
		return bool(user and user.is_authenticated and hasattr(user, 'student'))
