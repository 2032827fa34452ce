"""
rentals.services

Write operations for every entity. Each one runs its business checks and its
write inside a single transaction, with the rows it checks against locked, so
two requests cannot both pass a check and both commit.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db import IntegrityError, models, transaction
from django.db.models import Q
from django.http import Http404
from django.utils import timezone
from rest_framework.exceptions import NotFound

from .exceptions import ConcurrencyError, ConflictError
from .models import Customer, Employee, Manufacturer, Rental, Vehicle
from .pricing import compute_total

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _insert(model: type[models.Model], data: dict[str, Any]) -> models.Model:
    try:
        with transaction.atomic():
            return model.objects.create(**data)
    except IntegrityError as exc:
        logger.warning("Insert of %s rejected by the database: %s", model.__name__, exc)
        raise ConflictError(
            f"{model._meta.verbose_name} violates a database constraint.",
            code="constraint_violation",
        ) from exc


def write_changes(instance: models.Model, changes: dict[str, Any]) -> models.Model:
    """
    Replace the fields of ``instance`` with ``changes`` in the database.

    The row is only written if its ``updated_at`` still matches the loaded
    value. When nothing is written the row either vanished (404) or was
    changed by someone else (``ConcurrencyError``).
    """
    model = type(instance)
    changes = dict(changes, updated_at=timezone.now())
    try:
        with transaction.atomic():
            written = model.objects.filter(pk=instance.pk, updated_at=instance.updated_at).update(**changes)
    except IntegrityError as exc:
        logger.warning("Update of %s %s rejected by the database: %s", model.__name__, instance.pk, exc)
        raise ConflictError(
            f"{model._meta.verbose_name} violates a database constraint.",
            code="constraint_violation",
        ) from exc
    if not written:
        if model.objects.filter(pk=instance.pk).exists():
            raise ConcurrencyError()
        raise NotFound(f"{model._meta.verbose_name} not found.")
    for field, value in changes.items():
        setattr(instance, field, value)
    return instance


def delete_record(model: type[models.Model], pk: int) -> None:
    """Delete one record; 404 when missing, 409 while other records depend on it."""
    with transaction.atomic():
        instance = model.objects.select_for_update().filter(pk=pk).first()
        if instance is None:
            raise NotFound(f"{model._meta.verbose_name} not found.")
        try:
            with transaction.atomic():
                instance.delete()
        except models.ProtectedError as exc:
            raise ConflictError(
                f"{model._meta.verbose_name} cannot be deleted while it has dependent records.",
                code="protected",
            ) from exc
    logger.info("%s %s deleted", model.__name__, pk)


def get_for_update(model: type[models.Model], pk: int) -> models.Model:
    try:
        return model.objects.select_for_update().get(pk=pk)
    except model.DoesNotExist as exc:
        raise Http404(f"{model._meta.verbose_name} not found.") from exc


def _ensure_unique(queryset, exclude_pk: int | None, message: str) -> None:
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    if queryset.exists():
        raise ConflictError(message, code="duplicate")


# -----------------------------------------------------------------------------
# Manufacturers, vehicles, customers, employees
# -----------------------------------------------------------------------------


def _check_manufacturer(data: dict[str, Any], exclude_pk: int | None = None) -> None:
    _ensure_unique(
        Manufacturer.objects.filter(name=data["name"]),
        exclude_pk,
        "A manufacturer with this name already exists.",
    )


def _check_vehicle(data: dict[str, Any], exclude_pk: int | None = None) -> None:
    _ensure_unique(
        Vehicle.objects.filter(plate=data["plate"]),
        exclude_pk,
        "A vehicle with this plate is already registered.",
    )


def _check_customer(data: dict[str, Any], exclude_pk: int | None = None) -> None:
    _ensure_unique(
        Customer.objects.filter(Q(tax_id=data["tax_id"]) | Q(email=data["email"])),
        exclude_pk,
        "A customer with the same tax id or email already exists.",
    )


def _check_employee(data: dict[str, Any], exclude_pk: int | None = None) -> None:
    _ensure_unique(
        Employee.objects.filter(tax_id=data["tax_id"]),
        exclude_pk,
        "An employee with this tax id already exists.",
    )


def _create(model: type[models.Model], check, data: dict[str, Any]) -> models.Model:
    with transaction.atomic():
        check(data)
        instance = _insert(model, data)
    logger.info("%s %s created", model.__name__, instance.pk)
    return instance


def _update(instance: models.Model, check, data: dict[str, Any]) -> models.Model:
    with transaction.atomic():
        check(data, exclude_pk=instance.pk)
        write_changes(instance, data)
    logger.info("%s %s updated", type(instance).__name__, instance.pk)
    return instance


def create_manufacturer(data: dict[str, Any]) -> Manufacturer:
    return _create(Manufacturer, _check_manufacturer, data)


def update_manufacturer(manufacturer: Manufacturer, data: dict[str, Any]) -> Manufacturer:
    return _update(manufacturer, _check_manufacturer, data)


def create_vehicle(data: dict[str, Any]) -> Vehicle:
    return _create(Vehicle, _check_vehicle, data)


def update_vehicle(vehicle: Vehicle, data: dict[str, Any]) -> Vehicle:
    return _update(vehicle, _check_vehicle, data)


def create_customer(data: dict[str, Any]) -> Customer:
    return _create(Customer, _check_customer, data)


def update_customer(customer: Customer, data: dict[str, Any]) -> Customer:
    return _update(customer, _check_customer, data)


def create_employee(data: dict[str, Any]) -> Employee:
    return _create(Employee, _check_employee, data)


def update_employee(employee: Employee, data: dict[str, Any]) -> Employee:
    return _update(employee, _check_employee, data)


# -----------------------------------------------------------------------------
# Rentals
# -----------------------------------------------------------------------------


def _lock_vehicle(vehicle: Vehicle) -> Vehicle:
    # Serializes bookings of the same vehicle until the transaction ends.
    return Vehicle.objects.select_for_update().get(pk=vehicle.pk)


def _reject_overlap(vehicle: Vehicle, data: dict[str, Any], exclude_pk: int | None = None) -> None:
    if Rental.has_conflict(
        vehicle=vehicle,
        start_date=data["start_date"],
        end_date=data["end_date"],
        exclude_pk=exclude_pk,
    ):
        logger.info(
            "Rejected booking of vehicle %s from %s to %s: overlap",
            vehicle.pk,
            data["start_date"],
            data["end_date"],
        )
        raise ConflictError("This vehicle is already rented in that period.", code="overlap")


def create_rental(data: dict[str, Any]) -> Rental:
    """
    Book a vehicle.

    ``data`` is already validated. The total price is derived from the daily
    rate when the duration is positive; otherwise the supplied one is kept.
    """
    data = dict(data)
    with transaction.atomic():
        vehicle = _lock_vehicle(data["vehicle"])
        _reject_overlap(vehicle, data)
        total = compute_total(data["start_date"], data["end_date"], data["daily_rate"])
        if total is not None:
            data["total_price"] = total
        rental = _insert(Rental, data)
    logger.info(
        "Rental %s created for vehicle %s (%s - %s), total %s",
        rental.pk,
        vehicle.pk,
        rental.start_date,
        rental.end_date,
        rental.total_price,
    )
    return rental


def update_rental(rental: Rental, data: dict[str, Any]) -> Rental:
    """
    Replace every field of ``rental``.

    The overlap check ignores the rental itself, so keeping the same dates is
    always allowed. Supplying ``return_date`` closes the rental.
    """
    with transaction.atomic():
        vehicle = _lock_vehicle(data["vehicle"])
        _reject_overlap(vehicle, data, exclude_pk=rental.pk)
        write_changes(rental, data)
    logger.info("Rental %s updated%s", rental.pk, " (closed)" if rental.is_closed else "")
    return rental
