from datetime import datetime, timedelta, timezone
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.forms import modelform_factory
from django.test import TestCase
from rest_framework.exceptions import NotFound

from rentals import services
from rentals.exceptions import ConcurrencyError, ConflictError
from rentals.models import Customer, Employee, Manufacturer, Rental, Vehicle


def day(year, month, dom):
    return datetime(year, month, dom, tzinfo=timezone.utc)


class RentalRulesTests(TestCase):
    def setUp(self):
        manufacturer = Manufacturer.objects.create(name="Toyota")
        self.vehicle = Vehicle.objects.create(
            model="Yaris",
            year=2022,
            odometer=1500,
            plate="ABC-1234",
            manufacturer=manufacturer,
        )
        self.other_vehicle = Vehicle.objects.create(
            model="Corolla",
            year=2021,
            odometer=30000,
            plate="XYZ1A23",
            manufacturer=manufacturer,
        )
        self.customer = Customer.objects.create(
            name="Ana Perez", tax_id="12345678901", email="ana@example.com"
        )
        self.employee = Employee.objects.create(
            name="Luis Gomez", tax_id="10987654321", role="Agent", email="luis@example.com"
        )
        self.existing = services.create_rental(self._data(day(2024, 1, 1), day(2024, 1, 10)))

    def _data(self, start, end, **overrides):
        data = {
            "customer": self.customer,
            "vehicle": self.vehicle,
            "employee": self.employee,
            "start_date": start,
            "end_date": end,
            "start_odometer": 1500,
            "daily_rate": Decimal("100.00"),
        }
        data.update(overrides)
        return data

    def test_boundary_touching_booking_is_rejected(self):
        with self.assertRaises(ConflictError) as ctx:
            services.create_rental(self._data(day(2024, 1, 10), day(2024, 1, 15)))
        self.assertEqual(ctx.exception.detail.code, "overlap")
        self.assertEqual(Rental.objects.count(), 1)

    def test_enclosing_booking_is_rejected(self):
        with self.assertRaises(ConflictError):
            services.create_rental(self._data(day(2023, 12, 20), day(2024, 2, 1)))

    def test_next_day_booking_succeeds_and_is_priced(self):
        rental = services.create_rental(self._data(day(2024, 1, 11), day(2024, 1, 20)))
        self.assertEqual(rental.total_price, Decimal("900.00"))
        self.assertEqual(Rental.objects.filter(vehicle=self.vehicle).count(), 2)

    def test_other_vehicle_is_not_affected(self):
        rental = services.create_rental(
            self._data(day(2024, 1, 5), day(2024, 1, 6), vehicle=self.other_vehicle)
        )
        self.assertEqual(rental.total_price, Decimal("100.00"))

    def test_zero_length_rental_keeps_supplied_total(self):
        rental = services.create_rental(
            self._data(day(2024, 3, 1), day(2024, 3, 1), total_price=Decimal("45.00"))
        )
        self.assertEqual(rental.total_price, Decimal("45.00"))

    def test_has_conflict_excludes_given_rental(self):
        self.assertTrue(
            Rental.has_conflict(vehicle=self.vehicle, start_date=day(2024, 1, 1), end_date=day(2024, 1, 10))
        )
        self.assertFalse(
            Rental.has_conflict(
                vehicle=self.vehicle,
                start_date=day(2024, 1, 1),
                end_date=day(2024, 1, 10),
                exclude_pk=self.existing.pk,
            )
        )

    def test_update_with_unchanged_dates_succeeds(self):
        data = self._data(day(2024, 1, 1), day(2024, 1, 10), total_price=self.existing.total_price)
        services.update_rental(self.existing, data)
        self.existing.refresh_from_db()
        self.assertEqual(self.existing.start_date, day(2024, 1, 1))

    def test_update_into_another_booking_is_rejected(self):
        later = services.create_rental(self._data(day(2024, 2, 1), day(2024, 2, 5)))
        data = self._data(day(2024, 1, 8), day(2024, 2, 2), total_price=later.total_price)
        with self.assertRaises(ConflictError):
            services.update_rental(later, data)
        later.refresh_from_db()
        self.assertEqual(later.start_date, day(2024, 2, 1))

    def test_update_with_return_date_closes_rental(self):
        self.assertFalse(self.existing.is_closed)
        data = self._data(
            day(2024, 1, 1),
            day(2024, 1, 10),
            return_date=day(2024, 1, 9),
            end_odometer=2100,
            total_price=self.existing.total_price,
        )
        services.update_rental(self.existing, data)
        self.existing.refresh_from_db()
        self.assertTrue(self.existing.is_closed)
        self.assertEqual(self.existing.end_odometer, 2100)

    def test_stale_update_raises_concurrency_error(self):
        stale = Rental.objects.get(pk=self.existing.pk)
        Rental.objects.filter(pk=stale.pk).update(updated_at=stale.updated_at + timedelta(seconds=5))
        with self.assertRaises(ConcurrencyError):
            services.write_changes(stale, {"end_odometer": 1800})

    def test_update_of_vanished_rental_is_not_found(self):
        stale = Rental.objects.get(pk=self.existing.pk)
        Rental.objects.filter(pk=stale.pk).delete()
        with self.assertRaises(NotFound):
            services.write_changes(stale, {"end_odometer": 1800})

    def test_delete_missing_rental_is_not_found(self):
        with self.assertRaises(NotFound):
            services.delete_record(Rental, self.existing.pk + 100)

    def test_delete_removes_rental(self):
        services.delete_record(Rental, self.existing.pk)
        self.assertFalse(Rental.objects.filter(pk=self.existing.pk).exists())

    def test_model_clean_blocks_overlap(self):
        conflicting = Rental(
            customer=self.customer,
            vehicle=self.vehicle,
            employee=self.employee,
            start_date=day(2024, 1, 5),
            end_date=day(2024, 1, 12),
            daily_rate=Decimal("100.00"),
            total_price=Decimal("700.00"),
        )
        with self.assertRaises(ValidationError):
            conflicting.full_clean()

    def test_model_clean_derives_total_for_new_rentals(self):
        rental = Rental(
            customer=self.customer,
            vehicle=self.vehicle,
            employee=self.employee,
            start_date=day(2024, 1, 11),
            end_date=day(2024, 1, 20),
            daily_rate=Decimal("100.00"),
            total_price=Decimal("5.00"),
        )
        rental.full_clean()
        self.assertEqual(rental.total_price, Decimal("900.00"))

    def test_model_clean_keeps_total_of_saved_rentals(self):
        self.existing.total_price = Decimal("500.00")
        self.existing.full_clean()
        self.assertEqual(self.existing.total_price, Decimal("500.00"))

    def test_model_form_saves_derived_total(self):
        form_class = modelform_factory(
            Rental,
            fields=["customer", "vehicle", "employee", "start_date", "end_date", "daily_rate", "total_price"],
        )
        form = form_class(
            data={
                "customer": self.customer.pk,
                "vehicle": self.vehicle.pk,
                "employee": self.employee.pk,
                "start_date": "2024-01-11 00:00:00",
                "end_date": "2024-01-20 00:00:00",
                "daily_rate": "100.00",
                "total_price": "",
            }
        )
        self.assertTrue(form.is_valid(), form.errors)
        rental = form.save()
        rental.refresh_from_db()
        self.assertEqual(rental.total_price, Decimal("900.00"))

    def test_model_clean_rejects_total_too_large_for_storage(self):
        rental = Rental(
            customer=self.customer,
            vehicle=self.other_vehicle,
            employee=self.employee,
            start_date=day(2025, 1, 1),
            end_date=day(2025, 12, 31),
            daily_rate=Decimal("99999999.99"),
        )
        with self.assertRaises(ValidationError) as ctx:
            rental.full_clean()
        self.assertIn("total_price", ctx.exception.message_dict)

    def test_model_clean_checks_odometers(self):
        rental = Rental(
            customer=self.customer,
            vehicle=self.other_vehicle,
            employee=self.employee,
            start_date=day(2024, 5, 1),
            end_date=day(2024, 5, 2),
            start_odometer=500,
            end_odometer=100,
            daily_rate=Decimal("100.00"),
            total_price=Decimal("100.00"),
        )
        with self.assertRaises(ValidationError) as ctx:
            rental.full_clean()
        self.assertIn("end_odometer", ctx.exception.message_dict)
