"""
Daily meal windows.

Every meal type owns one ``[start, end)`` interval of local wall-clock time
that recurs each day. Nothing is persisted per occurrence: today's window is
the configured time of day combined with the date of the instant being asked
about, in the project's ``TIME_ZONE``.
"""
import re
from datetime import datetime, time, timedelta

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from .models import MEAL_TYPES

TIME_OF_DAY_RE = re.compile(r'^(\d{1,2}):(\d{2})\s*(am|pm)?$')


def parse_time_of_day(value):
	"""Parse ``'HH:MM'`` or ``'H:MMam'``/``'H:MMpm'`` into a ``time``.

	Raises ImproperlyConfigured instead of guessing a default.
	"""
	match = TIME_OF_DAY_RE.match(str(value).strip().lower())
	if not match:
		raise ImproperlyConfigured(f"Invalid meal window time {value!r}, expected HH:MM")

	hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3)
	if meridiem:
		if not 1 <= hour <= 12:
			raise ImproperlyConfigured(f"Invalid 12-hour meal window time {value!r}")
		if meridiem == 'pm' and hour < 12:
			hour += 12
		elif meridiem == 'am' and hour == 12:
			hour = 0

	if hour > 23 or minute > 59:
		raise ImproperlyConfigured(f"Meal window time {value!r} is out of range")
	return time(hour, minute)


class MealWindowCalendar:
	def __init__(self, table):
		self.windows = {}
		for meal_type, bounds in table.items():
			if meal_type not in MEAL_TYPES:
				raise ImproperlyConfigured(f"Unknown meal type {meal_type!r} in meal windows")
			try:
				start, end = bounds['start'], bounds['end']
			except (KeyError, TypeError):
				raise ImproperlyConfigured(f"Meal window {meal_type!r} needs 'start' and 'end'")
			start, end = parse_time_of_day(start), parse_time_of_day(end)
			if start >= end:
				raise ImproperlyConfigured(f"Meal window {meal_type!r} must start before it ends")
			self.windows[meal_type] = (start, end)

		if not self.windows:
			raise ImproperlyConfigured("No meal windows configured")

		by_start = sorted(self.windows.items(), key=lambda item: item[1][0])
		for (meal_a, (_, end_a)), (meal_b, (start_b, _)) in zip(by_start, by_start[1:]):
			if start_b < end_a:
				raise ImproperlyConfigured(f"Meal windows {meal_a!r} and {meal_b!r} overlap")
		self.first_meal = by_start[0][0]

	def meal_types(self):
		# breakfast -> lunch -> supper, whatever order the table was written in
		return [meal for meal in MEAL_TYPES if meal in self.windows]

	def window_bounds(self, meal_type, now=None, day_offset=0):
		"""Return today's (start, end) for ``meal_type`` as aware datetimes"""
		local_now = _local(now)
		day = local_now.date() + timedelta(days=day_offset)
		start, end = self.windows[meal_type]
		tz = local_now.tzinfo
		return (
			timezone.make_aware(datetime.combine(day, start), tz),
			timezone.make_aware(datetime.combine(day, end), tz),
		)

	def active_meal(self, now=None):
		now = _local(now)
		for meal_type in self.meal_types():
			start, end = self.window_bounds(meal_type, now)
			if start <= now < end:
				return meal_type
		return None

	def next_meal(self, now=None):
		"""Return (meal_type, start) of the first window starting after ``now``"""
		now = _local(now)
		upcoming = []
		for meal_type in self.meal_types():
			start, _ = self.window_bounds(meal_type, now)
			if start > now:
				upcoming.append((start, meal_type))
		if upcoming:
			start, meal_type = min(upcoming)
			return meal_type, start

		start, _ = self.window_bounds(self.first_meal, now, day_offset=1)
		return self.first_meal, start


def _local(now):
	if now is None:
		now = timezone.now()
	elif timezone.is_naive(now):
		now = timezone.make_aware(now)
	return timezone.localtime(now)


def get_calendar():
	return MealWindowCalendar(settings.MESS_CONFIG['meal_windows'])
