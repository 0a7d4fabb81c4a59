"""
Owner-facing ledger views.

Endpoints:
    GET    /api/v1/settlement/entries/              - List entries (filtered)
    POST   /api/v1/settlement/entries/              - Bill a completed appointment
    GET    /api/v1/settlement/entries/export/       - CSV export
    GET    /api/v1/settlement/entries/{id}/         - Entry detail
    DELETE /api/v1/settlement/entries/{id}/         - Delete pending, unreferenced entry
    POST   /api/v1/settlement/entries/{id}/confirm/ - Owner confirms payment
    POST   /api/v1/settlement/links/                - Create hosted payment link
    POST   /api/v1/settlement/appointments/{id}/cancel/ - Drop unreferenced pending entries

Every lookup is scoped to request.user; another owner's entry is a 404.
"""

from __future__ import annotations

from django.http import StreamingHttpResponse
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema

from core.exceptions import BaseApplicationError
from core.views import error_response

from settlement.channels import get_manual_channel
from settlement.permissions import IsBusinessOwner
from settlement.serializers import (
    AppointmentCancellationSerializer,
    AppointmentCompletionSerializer,
    ConfirmPaymentSerializer,
    LedgerEntryListQuerySerializer,
    LedgerEntrySerializer,
    PaymentLinkRequestSerializer,
    PaymentLinkSerializer,
    SettlementOutcomeSerializer,
)
from settlement.services import LedgerEntryService, PaymentLinkService
from settlement.services.export import export_filename, iter_csv

LIST_PARAMETERS = [
    OpenApiParameter("date_from", OpenApiTypes.DATE, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("date_to", OpenApiTypes.DATE, OpenApiParameter.QUERY, required=False),
    OpenApiParameter("status", str, OpenApiParameter.QUERY, required=False, enum=["pending", "paid"]),
    OpenApiParameter("kind", str, OpenApiParameter.QUERY, required=False, enum=["revenue", "expense"]),
]


class EntryListCreateView(GenericAPIView):
    """
    List the owner's ledger or bill a completed appointment.

    Without date filters the last SETTLEMENT_LIST_DEFAULT_DAYS days are
    listed, newest due date first.
    """

    permission_classes = [IsAuthenticated, IsBusinessOwner]
    serializer_class = LedgerEntrySerializer

    @extend_schema(
        operation_id="list_ledger_entries",
        summary="List ledger entries",
        parameters=LIST_PARAMETERS,
        responses={200: LedgerEntrySerializer(many=True)},
        tags=["Settlement - Ledger"],
    )
    def get(self, request):
        query = LedgerEntryListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        entries = LedgerEntryService.list_entries(request.user, **query.validated_data)

        page = self.paginate_queryset(entries)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(entries, many=True).data)

    @extend_schema(
        operation_id="create_ledger_entries",
        summary="Bill a completed appointment",
        description=(
            "Creates the revenue entry and, for a helper with a payout policy, "
            "the helper payout entry. Idempotent by appointment_id: a repeat "
            "returns 409 with the existing entry id."
        ),
        request=AppointmentCompletionSerializer,
        responses={
            201: LedgerEntrySerializer(many=True),
            400: OpenApiResponse(description="Invalid amount or payload"),
            409: OpenApiResponse(description="Entry already exists for this appointment"),
        },
        tags=["Settlement - Ledger"],
    )
    def post(self, request):
        serializer = AppointmentCompletionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            entries = LedgerEntryService.create_from_appointment(
                serializer.to_completion(request.user),
                owner=request.user,
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            LedgerEntrySerializer(entries, many=True).data,
            status=status.HTTP_201_CREATED,
        )


class EntryExportView(APIView):
    """Stream the filtered ledger as a ';'-delimited CSV with a UTF-8 BOM."""

    permission_classes = [IsAuthenticated, IsBusinessOwner]

    @extend_schema(
        operation_id="export_ledger_entries",
        summary="Export ledger as CSV",
        parameters=LIST_PARAMETERS,
        responses={(200, "text/csv"): OpenApiTypes.STR},
        tags=["Settlement - Ledger"],
    )
    def get(self, request):
        query = LedgerEntryListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        entries = LedgerEntryService.list_entries(request.user, **query.validated_data)

        response = StreamingHttpResponse(
            iter_csv(entries.iterator()),
            content_type="text/csv; charset=utf-8",
        )
        response["Content-Disposition"] = f'attachment; filename="{export_filename()}"'
        return response


class EntryDetailView(APIView):
    permission_classes = [IsAuthenticated, IsBusinessOwner]

    @extend_schema(
        operation_id="get_ledger_entry",
        summary="Get ledger entry",
        responses={200: LedgerEntrySerializer, 404: OpenApiResponse(description="Not found")},
        tags=["Settlement - Ledger"],
    )
    def get(self, request, entry_id):
        try:
            entry = LedgerEntryService.get_for_owner(entry_id, request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(LedgerEntrySerializer(entry).data)

    @extend_schema(
        operation_id="delete_ledger_entry",
        summary="Delete pending entry",
        description="Only PENDING entries without a payment link or customer declaration.",
        responses={
            204: None,
            404: OpenApiResponse(description="Not found"),
            409: OpenApiResponse(description="Entry is paid or in use"),
        },
        tags=["Settlement - Ledger"],
    )
    def delete(self, request, entry_id):
        try:
            LedgerEntryService.delete_pending(entry_id, request.user)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class EntryConfirmView(APIView):
    """
    Owner confirms that payment was received.

    A prior customer declaration is optional. Confirming an entry that is
    already PAID is a successful no-op (applied=false).
    """

    permission_classes = [IsAuthenticated, IsBusinessOwner]

    @extend_schema(
        operation_id="confirm_ledger_entry",
        summary="Confirm payment received",
        request=ConfirmPaymentSerializer,
        responses={
            200: SettlementOutcomeSerializer,
            404: OpenApiResponse(description="Not found"),
            409: OpenApiResponse(description="Entry changed since it was read"),
        },
        tags=["Settlement - Ledger"],
    )
    def post(self, request, entry_id):
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            outcome = get_manual_channel().confirm(
                entry_id,
                request.user,
                method=serializer.validated_data.get("method"),
                expected_version=serializer.validated_data.get("expected_version"),
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {"applied": outcome.applied, "entry": LedgerEntrySerializer(outcome.entry).data}
        )


class PaymentLinkView(APIView):
    """
    Create (or return the existing) hosted payment link for an entry.

    503 CHANNEL_UNAVAILABLE means the provider could not be reached or is
    not configured; the entry is unchanged and the request may be retried.
    """

    permission_classes = [IsAuthenticated, IsBusinessOwner]

    @extend_schema(
        operation_id="create_payment_link",
        summary="Create hosted payment link",
        request=PaymentLinkRequestSerializer,
        responses={
            200: PaymentLinkSerializer,
            404: OpenApiResponse(description="Not found"),
            409: OpenApiResponse(description="Already paid or link creation in progress"),
            503: OpenApiResponse(description="Payment channel unavailable"),
        },
        tags=["Settlement - Payment Links"],
    )
    def post(self, request):
        serializer = PaymentLinkRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            link = PaymentLinkService.create_for_entry(
                serializer.validated_data["entry_id"],
                request.user,
                payer_info=serializer.payer_info(),
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            PaymentLinkSerializer(
                {"url": link.url, "link_id": link.link_id, "reused": link.reused}
            ).data
        )


class AppointmentCancelView(APIView):
    """
    The appointment system reports a cancellation.

    Pending entries billed for the appointment are deleted unless a payment
    link or customer declaration already refers to them; paid entries stay.
    """

    permission_classes = [IsAuthenticated, IsBusinessOwner]

    @extend_schema(
        operation_id="cancel_appointment_entries",
        summary="Discard entries of a cancelled appointment",
        request=None,
        responses={200: AppointmentCancellationSerializer},
        tags=["Settlement - Ledger"],
    )
    def post(self, request, appointment_id):
        deleted = LedgerEntryService.discard_pending_for_appointment(
            appointment_id, owner=request.user
        )
        return Response({"deleted": deleted})
