"""
Admin registrations for the rental entities.

Rentals added here go through ``Rental.clean``, so they get the same overlap
check and derived total as rentals booked through the API.
"""

from __future__ import annotations

from django.contrib import admin

from .models import Customer, Employee, Manufacturer, Rental, Vehicle


class RentalInline(admin.TabularInline):
    model = Rental
    extra = 0
    fields = ("customer", "employee", "start_date", "end_date", "return_date", "total_price")
    readonly_fields = fields
    can_delete = False
    max_num = 0
    show_change_link = True


class VehicleInline(admin.TabularInline):
    model = Vehicle
    extra = 0
    fields = ("model", "year", "plate", "odometer")


@admin.register(Manufacturer)
class ManufacturerAdmin(admin.ModelAdmin):
    list_display = ("name", "updated_at")
    search_fields = ("name",)
    inlines = (VehicleInline,)


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ("model", "manufacturer", "year", "plate", "odometer", "updated_at")
    search_fields = ("model", "plate", "manufacturer__name")
    list_filter = ("manufacturer", "year")
    inlines = (RentalInline,)


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "tax_id", "email", "updated_at")
    search_fields = ("name", "tax_id", "email")


@admin.register(Employee)
class EmployeeAdmin(admin.ModelAdmin):
    list_display = ("name", "role", "tax_id", "email", "updated_at")
    search_fields = ("name", "tax_id", "email")
    list_filter = ("role",)


@admin.register(Rental)
class RentalAdmin(admin.ModelAdmin):
    list_display = ("customer", "vehicle", "employee", "start_date", "end_date", "return_date", "total_price")
    list_filter = ("start_date", "return_date")
    search_fields = ("customer__name", "vehicle__plate", "employee__name")
