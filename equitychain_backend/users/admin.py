from django.contrib import admin

from .models import Profile


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "wallet_address", "email", "role", "is_kyc_verified", "is_accredited")
    list_filter = ("role", "is_kyc_verified")
    search_fields = ("wallet_address", "email")
