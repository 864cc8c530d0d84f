"""Day book and stock ledger exports as Excel (openpyxl) or PDF (reportlab)."""
import io
from decimal import Decimal

import openpyxl
from django.conf import settings
from django.http import HttpResponse
from django.utils import timezone
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from orders.choices import OrderStatus

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _items_summary(order, limit=None):
    items = [f"{item['quantity']}x {item['name']} ({item['size']})" for item in order.items]
    if limit is not None and len(items) > limit:
        items = items[:limit] + ['...']
    return ", ".join(items)


def _local(dt, fmt):
    return timezone.localtime(dt).strftime(fmt)


def _autosize(ws, header_row=4):
    # Title rows above the header are merged cells
    for column in ws.iter_cols(min_row=header_row):
        column_letter = get_column_letter(column[0].column)
        max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
        ws.column_dimensions[column_letter].width = min(max_length + 2, 50)


def _xlsx_response(wb, filename):
    response = HttpResponse(content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    wb.save(response)
    return response


# =============== DAY BOOK ===============

DAYBOOK_HEADERS = [
    'Date', 'Order ID', 'Table', 'Dining Type', 'Items', 'Subtotal',
    'Fees', 'Discount', 'Total', 'Payment Method', 'Status'
]


def generate_daybook_excel(orders, start_date, end_date):
    """Day book workbook; cancelled orders are listed but not totalled"""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Day Book Report"

    header_font = Font(bold=True, size=12)
    title_font = Font(bold=True, size=16)

    ws['A1'] = f"{settings.CAFE_POS['CAFE_NAME']} - Day Book Report"
    ws['A1'].font = title_font
    ws['A2'] = f"Period: {start_date:%Y-%m-%d} to {end_date:%Y-%m-%d}"
    ws.merge_cells('A1:K1')
    ws.merge_cells('A2:K2')

    for col, header in enumerate(DAYBOOK_HEADERS, 1):
        ws.cell(row=4, column=col, value=header).font = header_font

    row = 5
    total_sales = Decimal('0.00')
    total_fees = Decimal('0.00')
    total_discount = Decimal('0.00')
    for order in orders:
        ws.cell(row=row, column=1, value=_local(order.created_at, '%Y-%m-%d %H:%M'))
        ws.cell(row=row, column=2, value=order.short_id)
        ws.cell(row=row, column=3, value=order.table_number or '')
        ws.cell(row=row, column=4, value=order.get_dining_type_display())
        ws.cell(row=row, column=5, value=_items_summary(order))
        ws.cell(row=row, column=6, value=float(order.subtotal))
        ws.cell(row=row, column=7, value=float(order.fees_total))
        ws.cell(row=row, column=8, value=float(order.discount_amount))
        ws.cell(row=row, column=9, value=float(order.total))
        ws.cell(row=row, column=10, value=order.get_payment_method_display())
        ws.cell(row=row, column=11, value=order.get_status_display())

        if order.status != OrderStatus.CANCELLED:
            total_sales += order.total
            total_fees += order.fees_total
            total_discount += order.discount_amount
        row += 1

    row += 1
    ws.cell(row=row, column=6, value="TOTALS:").font = header_font
    ws.cell(row=row, column=7, value=float(total_fees)).font = header_font
    ws.cell(row=row, column=8, value=float(total_discount)).font = header_font
    ws.cell(row=row, column=9, value=float(total_sales)).font = header_font

    _autosize(ws)
    return _xlsx_response(wb, f"daybook_report_{start_date}_{end_date}.xlsx")


def generate_daybook_pdf(orders, start_date, end_date):
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=landscape(A4))
    story = []

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'DaybookTitle',
        parent=styles['Heading1'],
        fontSize=18,
        spaceAfter=30,
        alignment=1,
    )
    story.append(Paragraph(f"{settings.CAFE_POS['CAFE_NAME']} - Day Book Report", title_style))
    story.append(Paragraph(f"Period: {start_date:%Y-%m-%d} to {end_date:%Y-%m-%d}", styles['Heading2']))
    story.append(Spacer(1, 20))

    currency = settings.CAFE_POS['CURRENCY']
    data = [['Date/Time', 'Order', 'Table', 'Type', 'Items', 'Total', 'Payment', 'Status']]
    total_sales = Decimal('0.00')
    for order in orders:
        data.append([
            _local(order.created_at, '%m/%d %H:%M'),
            order.short_id,
            str(order.table_number or '-'),
            order.get_dining_type_display(),
            _items_summary(order, limit=2)[:40],
            f"{currency}{order.total:.2f}",
            order.get_payment_method_display(),
            order.get_status_display(),
        ])
        if order.status != OrderStatus.CANCELLED:
            total_sales += order.total

    data.append(['', '', '', '', '', f"Total: {currency}{total_sales:.2f}", '', ''])

    table = Table(data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('BACKGROUND', (0, 1), (-1, -2), colors.beige),
        ('BACKGROUND', (0, -1), (-1, -1), colors.lightgrey),
        ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ('GRID', (0, 0), (-1, -1), 1, colors.black),
    ]))
    story.append(table)
    doc.build(story)

    buffer.seek(0)
    response = HttpResponse(buffer, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="daybook_report_{start_date}_{end_date}.pdf"'
    return response


# =============== STOCK LEDGER ===============

STOCK_HEADERS = [
    'Date', 'Product', 'Change Type', 'Quantity Change', 'Previous Quantity',
    'New Quantity', 'Reason', 'Notes', 'Staff'
]


def generate_stock_history_excel(entries):
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Stock History"

    header_font = Font(bold=True, size=12)
    ws['A1'] = f"{settings.CAFE_POS['CAFE_NAME']} - Stock History"
    ws['A1'].font = Font(bold=True, size=16)
    ws['A2'] = f"Generated: {_local(timezone.now(), '%Y-%m-%d %H:%M')}"
    ws.merge_cells('A1:I1')
    ws.merge_cells('A2:I2')

    for col, header in enumerate(STOCK_HEADERS, 1):
        ws.cell(row=4, column=col, value=header).font = header_font

    for row, entry in enumerate(entries, 5):
        ws.cell(row=row, column=1, value=_local(entry.created_at, '%Y-%m-%d %H:%M'))
        ws.cell(row=row, column=2, value=entry.product.name)
        ws.cell(row=row, column=3, value=entry.get_change_type_display())
        ws.cell(row=row, column=4, value=entry.quantity_change)
        ws.cell(row=row, column=5, value=entry.previous_quantity)
        ws.cell(row=row, column=6, value=entry.new_quantity)
        ws.cell(row=row, column=7, value=entry.reason)
        ws.cell(row=row, column=8, value=entry.notes)
        ws.cell(row=row, column=9, value=entry.staff.email if entry.staff else '')

    _autosize(ws)
    return _xlsx_response(wb, f"stock_history_{timezone.localdate()}.xlsx")
