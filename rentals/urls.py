from __future__ import annotations

from django.urls import path

from . import views

app_name = "rentals"

urlpatterns = [
    path("manufacturers", views.ManufacturerListCreateView.as_view(), name="manufacturer_list"),
    path("manufacturers/<int:pk>", views.ManufacturerDetailView.as_view(), name="manufacturer_detail"),

    path("vehicles", views.VehicleListCreateView.as_view(), name="vehicle_list"),
    path("vehicles/<int:pk>", views.VehicleDetailView.as_view(), name="vehicle_detail"),
    path(
        "vehicles/manufacturer/<str:name>",
        views.VehiclesByManufacturerView.as_view(),
        name="vehicles_by_manufacturer",
    ),

    path("customers", views.CustomerListCreateView.as_view(), name="customer_list"),
    path("customers/<int:pk>", views.CustomerDetailView.as_view(), name="customer_detail"),

    path("employees", views.EmployeeListCreateView.as_view(), name="employee_list"),
    path("employees/<int:pk>", views.EmployeeDetailView.as_view(), name="employee_detail"),

    path("rentals", views.RentalListCreateView.as_view(), name="rental_list"),
    path("rentals/detailes", views.RentalDetailedListView.as_view(), name="rental_detailed"),
    path("rentals/filtro", views.RentalFilterView.as_view(), name="rental_filter"),
    path("rentals/<int:pk>", views.RentalDetailView.as_view(), name="rental_detail"),
]
