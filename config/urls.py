from django.contrib import admin
from django.conf import settings
from django.conf.urls.static import static
from django.urls import path, include

urlpatterns = [
    path("admin/", admin.site.urls),

    path("api/cars/", include("apps.fleet.urls")),
    path("api/bookings/", include("apps.bookings.urls")),
    path("api/repairs/", include("apps.maintenance.urls")),
    path("api/reports/", include("apps.reports.urls")),
]


if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
