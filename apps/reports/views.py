import io
from dataclasses import asdict

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_date

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment
from openpyxl.utils import get_column_letter

from apps.bookings.views import serialize_booking
from apps.core.errors import ValidationError
from apps.core.http import api_view, int_param, json_response, staff_required
from apps.fleet.views import serialize_car
from apps.maintenance.views import serialize_repair

from .aggregator import ReportAggregator, Totals


def _totals(t: Totals) -> dict:
    return {
        "total_income": t.total_income,
        "total_expenses": t.total_expenses,
        "net_profit": t.net_profit,
        "total_bookings": t.total_bookings,
        "total_repairs": t.total_repairs,
    }


def _xlsx_response(wb: Workbook, filename: str) -> HttpResponse:
    bio = io.BytesIO()
    wb.save(bio)
    bio.seek(0)

    resp = HttpResponse(
        bio.getvalue(),
        content_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
    resp["Content-Disposition"] = f'attachment; filename="{filename}"'
    return resp


def _autosize_columns(ws):
    for col in range(1, ws.max_column + 1):
        max_len = 0
        for row in range(1, ws.max_row + 1):
            v = ws.cell(row=row, column=col).value
            if v is None:
                continue
            v = str(v)
            if len(v) > max_len:
                max_len = len(v)
        ws.column_dimensions[get_column_letter(col)].width = min(max(12, max_len + 2), 55)


def _write_sheet(ws, title: str, headers: list[str], rows: list[list]):
    ws.title = title
    ws.append(headers)

    header_font = Font(bold=True)
    for i in range(1, len(headers) + 1):
        c = ws.cell(row=1, column=i)
        c.font = header_font
        c.alignment = Alignment(vertical="center")

    for r in rows:
        ws.append(r)

    _autosize_columns(ws)


def _write_summary(wb: Workbook, totals: Totals, extra: list[list] | None = None):
    ws = wb.create_sheet()
    rows = [
        ["Total Income", float(totals.total_income)],
        ["Total Expenses", float(totals.total_expenses)],
        ["Net Profit", float(totals.net_profit)],
        ["Bookings", totals.total_bookings],
        ["Repairs", totals.total_repairs],
    ]
    _write_sheet(ws, "Summary", ["Metric", "Value"], rows + (extra or []))


# ---------------- JSON REPORTS ----------------

@login_required
@api_view(["GET"])
@staff_required
def dashboard(request):
    stats = ReportAggregator().dashboard()
    return json_response(asdict(stats))


@login_required
@api_view(["GET"])
@staff_required
def daily_report(request):
    raw = (request.GET.get("date") or "").strip()
    day = None
    if raw:
        day = parse_date(raw)
        if day is None:
            raise ValidationError("date must be a date.", errors={"date": ["Use YYYY-MM-DD."]})

    report = ReportAggregator().daily(day)
    now = timezone.now()
    return json_response({
        "date": report.date,
        "bookings": [serialize_booking(b, now) for b in report.bookings],
        "repairs": [serialize_repair(r) for r in report.repairs],
        **_totals(report.totals),
        "cars_rented": report.cars_rented,
        "repairs_count": report.repairs_count,
    })


@login_required
@api_view(["GET"])
@staff_required
def weekly_report(request):
    report = ReportAggregator().weekly(int_param(request, "week"), int_param(request, "year"))
    return json_response({
        "week": report.week,
        "year": report.year,
        "start_date": report.start_date,
        "end_date": report.end_date,
        **_totals(report.totals),
        "daily_data": [asdict(b) for b in report.daily_data],
    })


@login_required
@api_view(["GET"])
@staff_required
def monthly_report(request):
    report = ReportAggregator().monthly(int_param(request, "month"), int_param(request, "year"))
    return json_response({
        "month": report.month,
        "year": report.year,
        "month_name": report.month_name,
        **_totals(report.totals),
        "car_type_stats": [asdict(s) for s in report.car_type_stats],
        "average_daily_income": report.average_daily_income,
    })


@login_required
@api_view(["GET"])
@staff_required
def yearly_report(request):
    report = ReportAggregator().yearly(int_param(request, "year"))
    return json_response({
        "year": report.year,
        **_totals(report.totals),
        "monthly_data": [asdict(b) for b in report.monthly_data],
        "average_monthly_income": report.average_monthly_income,
    })


@login_required
@api_view(["GET"])
@staff_required
def car_report(request, plate_number: str):
    report = ReportAggregator().car(plate_number)
    now = timezone.now()
    return json_response({
        "car": serialize_car(report.car, now, with_occupant=True),
        "bookings": [serialize_booking(b, now) for b in report.bookings],
        "repairs": [serialize_repair(r) for r in report.repairs],
        "stats": {
            **_totals(report.stats.totals),
            "completed_bookings": report.stats.completed_bookings,
            "utilization_rate": report.stats.utilization_rate,
        },
    })


# ---------------- EXCEL EXPORTS ----------------

@login_required
@api_view(["GET"])
@staff_required
def export_weekly_xlsx(request):
    report = ReportAggregator().weekly(int_param(request, "week"), int_param(request, "year"))

    wb = Workbook()
    rows = [
        [b.date, b.bookings, float(b.income), b.repairs, float(b.expenses)]
        for b in report.daily_data
    ]
    _write_sheet(wb.active, "Daily", ["Date", "Bookings", "Income", "Repairs", "Expenses"], rows)
    _write_summary(wb, report.totals, [["Week", f"{report.year}-W{report.week:02d}"]])
    return _xlsx_response(wb, f"weekly_report_{report.year}_w{report.week:02d}.xlsx")


@login_required
@api_view(["GET"])
@staff_required
def export_monthly_xlsx(request):
    report = ReportAggregator().monthly(int_param(request, "month"), int_param(request, "year"))

    wb = Workbook()
    rows = [[s.car_type, s.count, float(s.income)] for s in report.car_type_stats]
    _write_sheet(wb.active, "Car Types", ["Car Type", "Bookings", "Income"], rows)
    _write_summary(wb, report.totals, [
        ["Month", f"{report.month_name} {report.year}"],
        ["Average Daily Income", float(report.average_daily_income)],
    ])
    return _xlsx_response(wb, f"monthly_report_{report.year}_{report.month:02d}.xlsx")


@login_required
@api_view(["GET"])
@staff_required
def export_yearly_xlsx(request):
    report = ReportAggregator().yearly(int_param(request, "year"))

    wb = Workbook()
    rows = [
        [b.month_name, b.bookings, float(b.income), b.repairs, float(b.expenses)]
        for b in report.monthly_data
    ]
    _write_sheet(wb.active, "Monthly", ["Month", "Bookings", "Income", "Repairs", "Expenses"], rows)
    _write_summary(wb, report.totals, [
        ["Year", report.year],
        ["Average Monthly Income", float(report.average_monthly_income)],
    ])
    return _xlsx_response(wb, f"yearly_report_{report.year}.xlsx")
