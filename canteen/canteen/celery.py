import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'canteen.settings')

app = Celery('canteen')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks(['apps.utils'], related_name='notifications')
