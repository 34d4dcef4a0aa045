"""Sales and analytics aggregation plus XLSX/PDF rendering for the back office."""
import io
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from openpyxl import Workbook
from openpyxl.styles import Font
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import func

from models import db
from models.booking import BOOKING_STATUSES, COMPLETED, PAYMENT_COMPLETED, Booking
from models.service import Service
from models.user import User

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MIMETYPE = "application/pdf"

SALES_COLUMNS = [
    ("Date", "date", 15),
    ("Customer", "customerName", 20),
    ("Email", "customerEmail", 25),
    ("Service", "serviceName", 20),
    ("Vehicle", "vehicleInfo", 20),
    ("Amount (ZAR)", "totalAmount", 15),
    ("Status", "status", 15),
    ("Payment Status", "paymentStatus", 15),
]

CENTS = Decimal("0.01")


def money(value) -> str:
    return str(Decimal(value or 0).quantize(CENTS))


def _sales_row(booking: Booking) -> dict:
    user = booking.user
    service = booking.service
    return {
        "bookingId": booking.id,
        "date": booking.created_at.date().isoformat(),
        "customerName": user.full_name or user.email,
        "customerEmail": user.email,
        "serviceName": service.name,
        "vehicleInfo": f"{booking.vehicle_brand} {booking.vehicle_model} ({booking.registration_plate})",
        "totalAmount": money(booking.total_amount),
        "status": booking.status,
        "paymentStatus": booking.payment_status,
        "paymentMethod": booking.payment_method,
    }


def summarize(rows: list[dict]) -> dict:
    total_revenue = sum((Decimal(r["totalAmount"]) for r in rows), Decimal("0"))
    completed_revenue = sum(
        (Decimal(r["totalAmount"]) for r in rows if r["paymentStatus"] == PAYMENT_COMPLETED),
        Decimal("0"),
    )
    count = len(rows)
    average = (total_revenue / count) if count else Decimal("0")
    return {
        "totalBookings": count,
        "completedBookings": sum(1 for r in rows if r["status"] == COMPLETED),
        "totalRevenue": money(total_revenue),
        "completedRevenue": money(completed_revenue),
        "averageOrderValue": money(average),
    }


def sales_data(start_date: date | None = None, end_date: date | None = None) -> dict:
    """Bookings created within [start_date, end_date] (inclusive, either end open), newest first."""
    q = Booking.query
    if start_date:
        q = q.filter(Booking.created_at >= datetime.combine(start_date, time.min))
    if end_date:
        q = q.filter(Booking.created_at < datetime.combine(end_date + timedelta(days=1), time.min))

    rows = [_sales_row(b) for b in q.order_by(Booking.created_at.desc(), Booking.id.desc()).all()]
    return {"salesData": rows, "summary": summarize(rows)}


def analytics() -> dict:
    status_counts = dict(
        db.session.query(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    )
    completed_revenue = (
        db.session.query(func.coalesce(func.sum(Booking.total_amount), 0))
        .filter(Booking.status == COMPLETED)
        .scalar()
    )

    popularity = (
        db.session.query(
            Service.id,
            Service.name,
            func.count(Booking.id),
            func.coalesce(func.sum(Booking.total_amount), 0),
        )
        .outerjoin(Booking, Booking.service_id == Service.id)
        .group_by(Service.id, Service.name)
        .order_by(func.count(Booking.id).desc(), Service.name.asc())
        .all()
    )

    return {
        "totalUsers": User.query.count(),
        "totalBookings": Booking.query.count(),
        "totalServices": Service.query.count(),
        "totalRevenue": money(completed_revenue),
        "bookingsByStatus": {s: status_counts.get(s, 0) for s in BOOKING_STATUSES},
        "servicePopularity": [
            {"serviceId": sid, "serviceName": name, "bookings": count, "revenue": money(revenue)}
            for sid, name, count, revenue in popularity
        ],
    }


# ---------------------------------------------------------------- customers

SEGMENTS = ("new", "regular", "premium", "vip")
PREMIUM_SPEND = Decimal("2000.00")
VIP_SPEND = Decimal("5000.00")


def segment_for(visits: int, spent: Decimal) -> str:
    if spent >= VIP_SPEND:
        return "vip"
    if spent >= PREMIUM_SPEND:
        return "premium"
    if visits >= 2:
        return "regular"
    return "new"


def customer_summaries() -> list[dict]:
    """One row per customer with at least one completed, paid visit."""
    rows = (
        db.session.query(
            User.id,
            User.email,
            func.count(Booking.id),
            func.coalesce(func.sum(Booking.total_amount), 0),
            func.max(Booking.scheduled_date),
        )
        .join(Booking, Booking.user_id == User.id)
        .filter(Booking.status == COMPLETED, Booking.payment_status == PAYMENT_COMPLETED)
        .group_by(User.id, User.email)
        .order_by(User.id.asc())
        .all()
    )

    summaries = []
    for user_id, email, visits, spent, last_visit in rows:
        spent = Decimal(str(spent)).quantize(CENTS)
        summaries.append({
            "userId": user_id,
            "email": email,
            "visits": visits,
            "totalSpent": money(spent),
            "lastVisit": last_visit.isoformat() if last_visit else None,
            "segment": segment_for(visits, spent),
        })
    return summaries


def customer_segmentation() -> list[dict]:
    counts = dict.fromkeys(SEGMENTS, 0)
    values = {s: Decimal("0") for s in SEGMENTS}
    for row in customer_summaries():
        counts[row["segment"]] += 1
        values[row["segment"]] += Decimal(row["totalSpent"])
    return [{"segment": s, "count": counts[s], "totalValue": money(values[s])} for s in SEGMENTS]


# ---------------------------------------------------------------- rendering

def _workbook_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def render_sales_xlsx(data: dict) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Sales Data"

    ws.append([header for header, _, _ in SALES_COLUMNS])
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for idx, (_, _, width) in enumerate(SALES_COLUMNS, start=1):
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = width

    for row in data["salesData"]:
        values = [row[key] for _, key, _ in SALES_COLUMNS]
        values[5] = f"R{row['totalAmount']}"
        ws.append(values)

    summary = data["summary"]
    ws.append([])
    ws.append(["SUMMARY"])
    ws.append(["Total Bookings:", summary["totalBookings"]])
    ws.append(["Completed Bookings:", summary["completedBookings"]])
    ws.append(["Total Revenue:", f"R{summary['totalRevenue']}"])
    ws.append(["Completed Revenue:", f"R{summary['completedRevenue']}"])
    ws.append(["Average Order Value:", f"R{summary['averageOrderValue']}"])
    return _workbook_bytes(wb)


def _pdf(title: str, story_builder) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=title,
    )
    styles = getSampleStyleSheet()
    story = [
        Paragraph(title, styles["Title"]),
        Paragraph(f"Generated on: {date.today().isoformat()}", styles["Normal"]),
        Spacer(1, 0.25 * inch),
    ]
    story.extend(story_builder(styles))
    doc.build(story)
    return buffer.getvalue()


def _grid(rows: list[list]) -> Table:
    table = Table(rows, repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#0ea5e9")),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#cbd5e1")),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]))
    return table


def render_sales_pdf(data: dict, business_name: str = "AquaShine", row_limit: int = 20) -> bytes:
    summary = data["summary"]
    rows = data["salesData"]

    def build(styles):
        story = [
            Paragraph("Summary", styles["Heading2"]),
            Paragraph(f"Total Bookings: {summary['totalBookings']}", styles["Normal"]),
            Paragraph(f"Completed Bookings: {summary['completedBookings']}", styles["Normal"]),
            Paragraph(f"Total Revenue: R{summary['totalRevenue']}", styles["Normal"]),
            Paragraph(f"Completed Revenue: R{summary['completedRevenue']}", styles["Normal"]),
            Spacer(1, 0.25 * inch),
            Paragraph("Detailed Sales Data", styles["Heading2"]),
        ]
        if rows:
            grid = [["Date", "Customer", "Service", "Amount"]]
            grid += [
                [r["date"], r["customerName"], r["serviceName"], f"R{r['totalAmount']}"]
                for r in rows[:row_limit]
            ]
            story.append(_grid(grid))
        if len(rows) > row_limit:
            story.append(Spacer(1, 0.15 * inch))
            story.append(Paragraph(f"... and {len(rows) - row_limit} more records", styles["Normal"]))
        return story

    return _pdf(f"{business_name} Sales Report", build)


def _analytics_metrics(data: dict) -> list[tuple[str, object]]:
    metrics = [
        ("Total Revenue", f"R{data['totalRevenue']}"),
        ("Total Customers", data["totalUsers"]),
        ("Total Bookings", data["totalBookings"]),
        ("Total Services", data["totalServices"]),
    ]
    metrics += [(f"{status.capitalize()} Bookings", n) for status, n in data["bookingsByStatus"].items()]
    return metrics


def render_analytics_xlsx(data: dict) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Analytics"
    ws.append(["Metric", "Value"])
    for metric, value in _analytics_metrics(data):
        ws.append([metric, value])

    popular = wb.create_sheet("Service Popularity")
    popular.append(["Service", "Bookings", "Revenue (ZAR)"])
    for row in data["servicePopularity"]:
        popular.append([row["serviceName"], row["bookings"], f"R{row['revenue']}"])

    for sheet in (ws, popular):
        for cell in sheet[1]:
            cell.font = Font(bold=True)
        sheet.column_dimensions["A"].width = 24
        sheet.column_dimensions["B"].width = 15
    return _workbook_bytes(wb)


def render_analytics_pdf(data: dict, business_name: str = "AquaShine") -> bytes:
    def build(styles):
        story = [_grid([["Metric", "Value"]] + [[m, str(v)] for m, v in _analytics_metrics(data)])]
        if data["servicePopularity"]:
            story += [
                Spacer(1, 0.25 * inch),
                Paragraph("Service Popularity", styles["Heading2"]),
                _grid([["Service", "Bookings", "Revenue"]] + [
                    [r["serviceName"], str(r["bookings"]), f"R{r['revenue']}"]
                    for r in data["servicePopularity"]
                ]),
            ]
        return story

    return _pdf(f"{business_name} Business Analytics Report", build)
