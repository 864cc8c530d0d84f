import logging
from datetime import datetime

from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.negotiation import DefaultContentNegotiation
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import Permissions, permission_required
from inventory.models import StockHistory
from .exports import generate_daybook_excel, generate_daybook_pdf, generate_stock_history_excel
from .services import get_summary, most_frequent_table, orders_between, table_status

logger = logging.getLogger(__name__)


def _parse_date(value, field_name, default=None):
    if not value:
        return default
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError({field_name: 'Use the YYYY-MM-DD format.'})


@extend_schema(
    summary="Most frequent table",
    description="Table number with the most orders, or null when no table has been used",
    responses={200: OpenApiTypes.OBJECT},
)
@api_view(['GET'])
@permission_classes([permission_required(Permissions.VIEW_ORDERS)])
def most_frequent_table_view(request):
    # A bare null when no table has been used
    return JsonResponse(most_frequent_table(), safe=False)


@extend_schema(
    summary="Table status",
    description="Available, occupied or outstanding state of every table from its open dine-in orders",
    responses={200: OpenApiTypes.OBJECT},
)
@api_view(['GET'])
@permission_classes([permission_required(Permissions.VIEW_ORDERS)])
def table_status_view(request):
    data = table_status()
    data['refresh_seconds'] = settings.CAFE_POS['TABLE_REFRESH_SECONDS']
    return Response(data)


@extend_schema(
    summary="Daily sales summary",
    parameters=[OpenApiParameter('date', OpenApiTypes.DATE, description="Day to summarise (default today)")],
    responses={200: OpenApiTypes.OBJECT},
)
@api_view(['GET'])
@permission_classes([permission_required(Permissions.VIEW_REPORTS)])
def sales_summary(request):
    day = _parse_date(request.query_params.get('date'), 'date', timezone.localdate())
    return Response(get_summary(day))


class FileExportNegotiation(DefaultContentNegotiation):
    """Exports use ?format= for the file type, not for picking a renderer"""

    def select_renderer(self, request, renderers, format_suffix=None):
        renderer = renderers[0]
        return renderer, renderer.media_type


class DaybookReportView(APIView):
    """Day Book Report (Excel/PDF)"""
    permission_classes = [permission_required(Permissions.VIEW_REPORTS)]
    content_negotiation_class = FileExportNegotiation

    @extend_schema(
        summary="Day book export",
        parameters=[
            OpenApiParameter('start_date', OpenApiTypes.DATE, description="First day (default today)"),
            OpenApiParameter('end_date', OpenApiTypes.DATE, description="Last day (default start_date)"),
            OpenApiParameter('format', OpenApiTypes.STR, enum=['excel', 'pdf'], description="Export format"),
        ],
        responses={200: OpenApiTypes.BINARY},
    )
    def get(self, request):
        start_date = _parse_date(request.query_params.get('start_date'), 'start_date', timezone.localdate())
        end_date = _parse_date(request.query_params.get('end_date'), 'end_date', start_date)
        if end_date < start_date:
            raise ValidationError({'end_date': 'End date cannot be before the start date.'})

        format_type = request.query_params.get('format', 'excel')
        if format_type not in ('excel', 'pdf'):
            raise ValidationError({'format': "Choose 'excel' or 'pdf'."})

        orders = orders_between(start_date, end_date)
        logger.info(f"Day book {format_type} export {start_date}..{end_date} by {request.user.email}")
        if format_type == 'excel':
            return generate_daybook_excel(orders, start_date, end_date)
        return generate_daybook_pdf(orders, start_date, end_date)


@extend_schema(
    summary="Stock history export",
    parameters=[
        OpenApiParameter('product', OpenApiTypes.INT, description="Limit to one product"),
        OpenApiParameter('start_date', OpenApiTypes.DATE),
        OpenApiParameter('end_date', OpenApiTypes.DATE),
    ],
    responses={200: OpenApiTypes.BINARY},
)
@api_view(['GET'])
@permission_classes([permission_required(Permissions.VIEW_REPORTS)])
def stock_history_report(request):
    entries = StockHistory.objects.select_related('product', 'staff').order_by('-created_at', '-id')

    product_id = request.query_params.get('product')
    if product_id:
        if not product_id.isdigit():
            raise ValidationError({'product': 'Must be a product id.'})
        entries = entries.filter(product_id=int(product_id))

    start_date = _parse_date(request.query_params.get('start_date'), 'start_date')
    end_date = _parse_date(request.query_params.get('end_date'), 'end_date')
    if start_date:
        entries = entries.filter(created_at__date__gte=start_date)
    if end_date:
        entries = entries.filter(created_at__date__lte=end_date)

    return generate_stock_history_excel(entries)
