"""
Public invoice gateway.

Endpoints:
    GET  /api/v1/invoices/public/{token}/         - Invoice page data
    POST /api/v1/invoices/public/{token}/declare/ - Customer reports payment

No authentication: the token in the URL is the capability. Any token that
does not resolve answers the same 404 body.
"""

from __future__ import annotations

from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework.views import APIView

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiResponse, extend_schema

from core.exceptions import BaseApplicationError
from core.views import error_response

from settlement.channels import get_manual_channel
from settlement.serializers import DeclarePaymentSerializer
from settlement.services import PublicInvoiceService


class PublicInvoiceView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [AnonRateThrottle]

    @extend_schema(
        operation_id="get_public_invoice",
        summary="Get invoice by public token",
        responses={
            200: OpenApiTypes.OBJECT,
            404: OpenApiResponse(description="Invoice not found or invalid"),
        },
        tags=["Invoices - Public"],
    )
    def get(self, request, token):
        try:
            invoice = PublicInvoiceService.get_invoice(token)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(invoice)


class PublicInvoiceDeclareView(APIView):
    """
    Customer declares they have paid.

    The invoice stays PENDING until the owner confirms or a provider
    webhook settles it.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = [AnonRateThrottle]

    @extend_schema(
        operation_id="declare_public_invoice_paid",
        summary="Declare invoice paid",
        request=DeclarePaymentSerializer,
        responses={
            200: OpenApiTypes.OBJECT,
            404: OpenApiResponse(description="Invoice not found or invalid"),
            409: OpenApiResponse(description="Invoice already paid"),
        },
        tags=["Invoices - Public"],
    )
    def post(self, request, token):
        serializer = DeclarePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            invoice = get_manual_channel().declare_paid(
                token,
                method=serializer.validated_data.get("method"),
                notes=serializer.validated_data.get("notes"),
            )
        except BaseApplicationError as e:
            return error_response(e)
        return Response(invoice)
