from django.urls import path
from . import views

app_name = "bookings"

urlpatterns = [
    path("", views.booking_collection, name="booking_list"),
    path("<int:pk>/", views.booking_detail, name="booking_detail"),
    path("<int:pk>/status/", views.booking_status, name="booking_status"),
]
