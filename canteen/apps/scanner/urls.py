# URLs for scanner app
from django.urls import path
from .views import ScannerView

urlpatterns = [
	path('<str:token>/', ScannerView.as_view(), name='scanner_view'),
]
