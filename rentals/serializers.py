from __future__ import annotations

from rest_framework import serializers

from . import services
from .models import Customer, Employee, Manufacturer, Rental, Vehicle
from .validators import plate_validator, rental_errors, tax_id_validator


class FullRecordMixin:
    """
    PUT replaces the whole record: optional fields left out of the payload
    fall back to their model defaults instead of keeping the stored value.
    """

    def full_record(self, validated_data: dict) -> dict:
        record = dict(validated_data)
        for name, field in self.fields.items():
            if field.read_only or field.required:
                continue
            source = field.source
            if source in record:
                continue
            model_field = self.Meta.model._meta.get_field(source)
            record[source] = model_field.get_default()
        return record


class ManufacturerSerializer(FullRecordMixin, serializers.ModelSerializer):
    class Meta:
        model = Manufacturer
        fields = ["id", "name"]
        # Uniqueness is checked by the services so it is reported as a conflict.
        extra_kwargs = {"name": {"validators": []}}

    def create(self, validated_data):
        return services.create_manufacturer(validated_data)

    def update(self, instance, validated_data):
        return services.update_manufacturer(instance, self.full_record(validated_data))


class VehicleSerializer(FullRecordMixin, serializers.ModelSerializer):
    manufacturer = ManufacturerSerializer(read_only=True)
    manufacturer_id = serializers.PrimaryKeyRelatedField(
        source="manufacturer",
        queryset=Manufacturer.objects.all(),
        error_messages={"does_not_exist": "Manufacturer {pk_value} does not exist."},
    )

    class Meta:
        model = Vehicle
        fields = ["id", "model", "year", "odometer", "plate", "manufacturer_id", "manufacturer"]
        extra_kwargs = {"plate": {"validators": [plate_validator]}}

    def create(self, validated_data):
        return services.create_vehicle(validated_data)

    def update(self, instance, validated_data):
        return services.update_vehicle(instance, self.full_record(validated_data))


class CustomerSerializer(FullRecordMixin, serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ["id", "name", "tax_id", "email"]
        extra_kwargs = {
            "tax_id": {"validators": [tax_id_validator], "min_length": 11},
            "email": {"validators": []},
        }

    def create(self, validated_data):
        return services.create_customer(validated_data)

    def update(self, instance, validated_data):
        return services.update_customer(instance, self.full_record(validated_data))


class EmployeeSerializer(FullRecordMixin, serializers.ModelSerializer):
    class Meta:
        model = Employee
        fields = ["id", "name", "tax_id", "role", "email"]
        extra_kwargs = {"tax_id": {"validators": [tax_id_validator], "min_length": 11}}

    def create(self, validated_data):
        return services.create_employee(validated_data)

    def update(self, instance, validated_data):
        return services.update_employee(instance, self.full_record(validated_data))


class RentalSerializer(FullRecordMixin, serializers.ModelSerializer):
    """Rental with its customer, vehicle and employee expanded on output."""

    customer = CustomerSerializer(read_only=True)
    vehicle = VehicleSerializer(read_only=True)
    employee = EmployeeSerializer(read_only=True)
    customer_id = serializers.PrimaryKeyRelatedField(
        source="customer",
        queryset=Customer.objects.all(),
        error_messages={"does_not_exist": "Customer {pk_value} does not exist."},
    )
    vehicle_id = serializers.PrimaryKeyRelatedField(
        source="vehicle",
        queryset=Vehicle.objects.all(),
        error_messages={"does_not_exist": "Vehicle {pk_value} does not exist."},
    )
    employee_id = serializers.PrimaryKeyRelatedField(
        source="employee",
        queryset=Employee.objects.all(),
        error_messages={"does_not_exist": "Employee {pk_value} does not exist."},
    )

    class Meta:
        model = Rental
        fields = [
            "id",
            "customer_id",
            "vehicle_id",
            "employee_id",
            "start_date",
            "end_date",
            "return_date",
            "start_odometer",
            "end_odometer",
            "daily_rate",
            "total_price",
            "customer",
            "vehicle",
            "employee",
        ]
        extra_kwargs = {"total_price": {"required": False}}

    def validate(self, attrs):
        errors = rental_errors(attrs, derive_total=self.instance is None)
        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def create(self, validated_data):
        return services.create_rental(validated_data)

    def update(self, instance, validated_data):
        return services.update_rental(instance, self.full_record(validated_data))


class RentalSummarySerializer(serializers.Serializer):
    """Flat projection used by the detailed listing and the customer filter."""

    customer_name = serializers.CharField(source="customer.name")
    vehicle_model = serializers.CharField(source="vehicle.model")
    start_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField()


class VehicleByManufacturerSerializer(serializers.Serializer):
    model = serializers.CharField()
    plate = serializers.CharField()
    year = serializers.IntegerField()
    manufacturer = serializers.CharField(source="manufacturer.name")
