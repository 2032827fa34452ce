"""
Data models for the car rental backend.

This module defines the entities of the system (manufacturers, vehicles,
customers, employees and rentals) and their relationships. Rentals carry
the booking rule: a vehicle cannot be rented twice over intersecting date
ranges, touching boundaries included.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .pricing import compute_total
from .validators import (
    TOTAL_PRICE_DECIMAL_PLACES,
    TOTAL_PRICE_MAX_DIGITS,
    plate_validator,
    rental_errors,
    tax_id_validator,
)


class TimestampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Updated")

    class Meta:
        abstract = True


class Manufacturer(TimestampedModel):
    """A vehicle maker."""

    name = models.CharField(max_length=100, unique=True, verbose_name="Name")

    class Meta:
        verbose_name = "Manufacturer"
        verbose_name_plural = "Manufacturers"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Vehicle(TimestampedModel):
    """Represents a vehicle available for rent."""

    model = models.CharField(max_length=100, verbose_name="Model")
    year = models.PositiveIntegerField(
        validators=[MinValueValidator(1886), MaxValueValidator(2100)], verbose_name="Year"
    )
    odometer = models.FloatField(default=0, validators=[MinValueValidator(0)], verbose_name="Odometer")
    plate = models.CharField(
        max_length=8, unique=True, validators=[plate_validator], verbose_name="Plate"
    )
    manufacturer = models.ForeignKey(
        Manufacturer,
        on_delete=models.PROTECT,
        related_name="vehicles",
        verbose_name="Manufacturer",
    )

    class Meta:
        verbose_name = "Vehicle"
        verbose_name_plural = "Vehicles"
        ordering = ["model", "plate"]

    def __str__(self) -> str:
        return f"{self.model} - {self.plate}"


class Customer(TimestampedModel):
    """Represents a customer renting vehicles."""

    name = models.CharField(max_length=100, verbose_name="Name")
    tax_id = models.CharField(
        max_length=11, unique=True, validators=[tax_id_validator], verbose_name="Tax id"
    )
    email = models.EmailField(unique=True, verbose_name="Email")

    class Meta:
        verbose_name = "Customer"
        verbose_name_plural = "Customers"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Employee(TimestampedModel):
    """A staff member who registers rentals."""

    name = models.CharField(max_length=100, verbose_name="Name")
    tax_id = models.CharField(
        max_length=11, unique=True, validators=[tax_id_validator], verbose_name="Tax id"
    )
    role = models.CharField(max_length=50, verbose_name="Role")
    email = models.EmailField(verbose_name="Email")

    class Meta:
        verbose_name = "Employee"
        verbose_name_plural = "Employees"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.role})"


class Rental(TimestampedModel):
    """A booking of a vehicle by a customer, registered by an employee."""

    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="rentals", verbose_name="Customer"
    )
    vehicle = models.ForeignKey(
        Vehicle, on_delete=models.PROTECT, related_name="rentals", verbose_name="Vehicle"
    )
    employee = models.ForeignKey(
        Employee, on_delete=models.PROTECT, related_name="registered_rentals", verbose_name="Employee"
    )
    start_date = models.DateTimeField(verbose_name="Start date")
    end_date = models.DateTimeField(verbose_name="End date")
    return_date = models.DateTimeField(null=True, blank=True, verbose_name="Return date")
    start_odometer = models.FloatField(
        default=0, validators=[MinValueValidator(0)], verbose_name="Start odometer"
    )
    end_odometer = models.FloatField(
        null=True, blank=True, validators=[MinValueValidator(0)], verbose_name="End odometer"
    )
    daily_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        verbose_name="Daily rate",
    )
    total_price = models.DecimalField(
        max_digits=TOTAL_PRICE_MAX_DIGITS,
        decimal_places=TOTAL_PRICE_DECIMAL_PLACES,
        blank=True,
        validators=[MinValueValidator(Decimal("0.01"))],
        verbose_name="Total price",
    )

    class Meta:
        verbose_name = "Rental"
        verbose_name_plural = "Rentals"
        ordering = ["-start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="rental_end_after_start",
            ),
            models.CheckConstraint(
                condition=models.Q(end_odometer__isnull=True)
                | models.Q(end_odometer__gte=models.F("start_odometer")),
                name="rental_end_odometer_after_start",
            ),
            models.CheckConstraint(
                condition=models.Q(daily_rate__gt=0),
                name="rental_daily_rate_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(total_price__gt=0),
                name="rental_total_price_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.customer} - {self.vehicle} ({self.start_date:%Y-%m-%d} - {self.end_date:%Y-%m-%d})"

    @property
    def is_closed(self) -> bool:
        return self.return_date is not None

    @classmethod
    def has_conflict(
        cls,
        *,
        vehicle: Vehicle | int,
        start_date: datetime,
        end_date: datetime,
        exclude_pk: int | None = None,
    ) -> bool:
        """True when another rental of ``vehicle`` intersects the given range."""
        queryset = cls.objects.filter(
            vehicle=vehicle,
            end_date__gte=start_date,
            start_date__lte=end_date,
        )
        if exclude_pk is not None:
            queryset = queryset.exclude(pk=exclude_pk)
        return queryset.exists()

    def clean(self) -> None:
        """
        Model-level validation used by the admin.

        New rentals get their total from the pricing rule when the duration is
        positive; existing ones keep the stored total, as in API updates.
        """
        if self.pk is None and None not in (self.start_date, self.end_date, self.daily_rate):
            self.total_price = compute_total(self.start_date, self.end_date, self.daily_rate) or self.total_price
        errors = rental_errors(
            {
                "start_date": self.start_date,
                "end_date": self.end_date,
                "start_odometer": self.start_odometer,
                "end_odometer": self.end_odometer,
                "daily_rate": self.daily_rate,
                "total_price": self.total_price,
            },
            derive_total=False,
        )
        if errors:
            raise ValidationError(errors)
        if self.vehicle_id and self.start_date and self.end_date:
            if Rental.has_conflict(
                vehicle=self.vehicle_id,
                start_date=self.start_date,
                end_date=self.end_date,
                exclude_pk=self.pk,
            ):
                raise ValidationError("The vehicle is already rented in the selected period.")
