from django.urls import path
from . import views

app_name = "maintenance"

urlpatterns = [
    path("", views.repair_collection, name="repair_list"),
    path("<int:pk>/", views.repair_detail, name="repair_detail"),
    path("<int:pk>/status/", views.repair_status, name="repair_status"),
]
