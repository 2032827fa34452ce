"""
rentals.views

REST endpoints for manufacturers, vehicles, customers, employees and rentals.
"""

from __future__ import annotations

from datetime import datetime, time

from django.db import transaction
from django.shortcuts import get_object_or_404
from django.urls import reverse
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .models import Customer, Employee, Manufacturer, Rental, Vehicle
from .serializers import (
    CustomerSerializer,
    EmployeeSerializer,
    ManufacturerSerializer,
    RentalSerializer,
    RentalSummarySerializer,
    VehicleByManufacturerSerializer,
    VehicleSerializer,
)


# -----------------------------------------------------------------------------
# Generic CRUD
# -----------------------------------------------------------------------------


class RecordListCreateView(APIView):
    permission_classes = [AllowAny]
    model = None
    serializer_class = None
    detail_url_name = None

    def get_queryset(self):
        return self.model.objects.all()

    def get(self, request):
        serializer = self.serializer_class(self.get_queryset(), many=True)
        return Response(serializer.data)

    def post(self, request):
        serializer = self.serializer_class(data=request.data)
        serializer.is_valid(raise_exception=True)
        instance = serializer.save()
        location = reverse(f"rentals:{self.detail_url_name}", args=[instance.pk])
        return Response(serializer.data, status=status.HTTP_201_CREATED, headers={"Location": location})


class RecordDetailView(APIView):
    permission_classes = [AllowAny]
    model = None
    serializer_class = None

    def get_queryset(self):
        return self.model.objects.all()

    def get(self, request, pk):
        instance = get_object_or_404(self.get_queryset(), pk=pk)
        return Response(self.serializer_class(instance).data)

    def put(self, request, pk):
        if not isinstance(request.data, dict):
            raise ValidationError({"non_field_errors": ["Expected a JSON object in the request body."]})
        if str(request.data.get("id")) != str(pk):
            raise ValidationError({"id": ["The id in the body does not match the id in the URL."]})
        with transaction.atomic():
            instance = services.get_for_update(self.model, pk)
            serializer = self.serializer_class(instance, data=request.data)
            serializer.is_valid(raise_exception=True)
            serializer.save()
        return Response(status=status.HTTP_204_NO_CONTENT)

    def delete(self, request, pk):
        services.delete_record(self.model, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


# -----------------------------------------------------------------------------
# Entities
# -----------------------------------------------------------------------------


class ManufacturerListCreateView(RecordListCreateView):
    model = Manufacturer
    serializer_class = ManufacturerSerializer
    detail_url_name = "manufacturer_detail"


class ManufacturerDetailView(RecordDetailView):
    model = Manufacturer
    serializer_class = ManufacturerSerializer


class VehicleListCreateView(RecordListCreateView):
    model = Vehicle
    serializer_class = VehicleSerializer
    detail_url_name = "vehicle_detail"

    def get_queryset(self):
        return Vehicle.objects.select_related("manufacturer")


class VehicleDetailView(RecordDetailView):
    model = Vehicle
    serializer_class = VehicleSerializer

    def get_queryset(self):
        return Vehicle.objects.select_related("manufacturer")


class VehiclesByManufacturerView(APIView):
    permission_classes = [AllowAny]

    def get(self, request, name):
        vehicles = Vehicle.objects.select_related("manufacturer").filter(manufacturer__name__contains=name)
        return Response(VehicleByManufacturerSerializer(vehicles, many=True).data)


class CustomerListCreateView(RecordListCreateView):
    model = Customer
    serializer_class = CustomerSerializer
    detail_url_name = "customer_detail"


class CustomerDetailView(RecordDetailView):
    model = Customer
    serializer_class = CustomerSerializer


class EmployeeListCreateView(RecordListCreateView):
    model = Employee
    serializer_class = EmployeeSerializer
    detail_url_name = "employee_detail"


class EmployeeDetailView(RecordDetailView):
    model = Employee
    serializer_class = EmployeeSerializer


def _rentals_expanded():
    return Rental.objects.select_related("customer", "vehicle__manufacturer", "employee")


class RentalListCreateView(RecordListCreateView):
    model = Rental
    serializer_class = RentalSerializer
    detail_url_name = "rental_detail"

    def get_queryset(self):
        return _rentals_expanded()


class RentalDetailView(RecordDetailView):
    model = Rental
    serializer_class = RentalSerializer

    def get_queryset(self):
        return _rentals_expanded()


# -----------------------------------------------------------------------------
# Rental projections
# -----------------------------------------------------------------------------


def _parse_query_datetime(name: str, value: str | None) -> datetime | None:
    """Accept an ISO date or datetime; a bare date means midnight of that day."""
    if not value:
        return None
    try:
        parsed = parse_datetime(value)
        day = None if parsed is not None else parse_date(value)
    except ValueError:
        parsed = day = None
    if parsed is None:
        if day is None:
            raise ValidationError({name: [f"'{value}' is not a valid date."]})
        parsed = datetime.combine(day, time.min)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


class RentalDetailedListView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        rentals = Rental.objects.select_related("customer", "vehicle")
        return Response(RentalSummarySerializer(rentals, many=True).data)


class RentalFilterView(APIView):
    """Rentals of customers whose name contains ``cliente``, inside [inicio, fim]."""

    permission_classes = [AllowAny]

    def get(self, request):
        customer = request.query_params.get("cliente", "")
        start = _parse_query_datetime("inicio", request.query_params.get("inicio"))
        end = _parse_query_datetime("fim", request.query_params.get("fim"))

        rentals = Rental.objects.select_related("customer", "vehicle").filter(
            customer__name__contains=customer
        )
        if start is not None:
            rentals = rentals.filter(start_date__gte=start)
        if end is not None:
            rentals = rentals.filter(end_date__lte=end)
        return Response(RentalSummarySerializer(rentals, many=True).data)
