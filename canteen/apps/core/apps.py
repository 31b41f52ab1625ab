from django.apps import AppConfig


class CoreConfig(AppConfig):
	default_auto_field = 'django.db.models.BigAutoField'
	name = 'apps.core'

	def ready(self):
		from apps.utils.qr_utils import check_image_storage
		from .meal_windows import get_calendar
		# Fail at boot on a bad meal window table or image backend
		get_calendar()
		check_image_storage()
