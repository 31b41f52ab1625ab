# URL configuration for canteen project.
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
	path('admin/', admin.site.urls),
	path('api/v1/', include('apps.api.urls')),
	path('api-auth/', include('rest_framework.urls')),
	path('scanner/', include('apps.scanner.urls')),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
