from django.contrib.auth.models import AbstractUser
from django.db import models
from phonenumber_field.modelfields import PhoneNumberField

class User(AbstractUser):
    class Roles(models.TextChoices):
        CUSTOMER = "CUSTOMER", "Customer"
        RIDER = "RIDER", "Rider"
        STORE_MANAGER = "STORE_MANAGER", "Store Manager"
        ADMIN = "ADMIN", "Admin"

    # Role fields define permissions in the app
    # CUSTOMER: Can track their own orders
    # RIDER: Runs delivery trips (GPS pushes, delivery confirmation)
    # STORE_MANAGER: Can run any trip of the store
    # ADMIN: Superuser access
    role = models.CharField(max_length=20, choices=Roles.choices, default=Roles.CUSTOMER)

    # Shown to customers tracking a delivery so they can call the rider
    phone_number = PhoneNumberField(blank=True, null=True, unique=True)

    # Riders only, shown next to their name on the tracking screen (e.g. "Bike", "Scooter")
    vehicle_type = models.CharField(max_length=50, blank=True, null=True)

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
