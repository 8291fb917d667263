from django.urls import path
from . import views

app_name = "reports"

urlpatterns = [
    path("dashboard/", views.dashboard, name="dashboard"),

    path("daily/", views.daily_report, name="daily_report"),
    path("weekly/", views.weekly_report, name="weekly_report"),
    path("monthly/", views.monthly_report, name="monthly_report"),
    path("yearly/", views.yearly_report, name="yearly_report"),
    path("car/<str:plate_number>/", views.car_report, name="car_report"),

    # Excel exports
    path("weekly/export.xlsx", views.export_weekly_xlsx, name="export_weekly_xlsx"),
    path("monthly/export.xlsx", views.export_monthly_xlsx, name="export_monthly_xlsx"),
    path("yearly/export.xlsx", views.export_yearly_xlsx, name="export_yearly_xlsx"),
]
