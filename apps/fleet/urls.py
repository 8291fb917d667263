from django.urls import path
from . import views

app_name = "fleet"

urlpatterns = [
    path("", views.car_collection, name="car_list"),
    path("available/", views.car_available, name="car_available"),
    path("<int:pk>/", views.car_detail, name="car_detail"),
]
