from django.db import models
from django.contrib.auth.models import User


class Role(models.TextChoices):
    INVESTOR = "investor", "Investor"
    CREATOR = "creator", "Creator"
    ADMIN = "admin", "Admin"


class Profile(models.Model):
    """Platform identity attached to a Django auth user.

    ``wallet_address`` and ``email`` are stored lower-cased so uniqueness is
    case-insensitive. ``email`` mirrors the auth user's address, which carries
    no unique index of its own.
    """
    user = models.OneToOneField(User, on_delete=models.CASCADE)
    wallet_address = models.CharField(max_length=42, unique=True)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.INVESTOR)
    is_kyc_verified = models.BooleanField(default=False)
    is_accredited = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        self.wallet_address = self.wallet_address.lower()
        self.email = self.email.lower()
        super().save(*args, **kwargs)

    @property
    def is_admin(self):
        return self.role == Role.ADMIN

    def __str__(self):
        return f"{self.user.username} – {self.wallet_address}"
