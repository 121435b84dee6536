# users/serializers.py
from django.contrib.auth.models import User
from rest_framework import serializers

from .models import Role


class UserSerializer(serializers.ModelSerializer):
    walletAddress = serializers.CharField(source="profile.wallet_address", read_only=True)
    firstName = serializers.CharField(source="first_name", read_only=True)
    lastName = serializers.CharField(source="last_name", read_only=True)
    role = serializers.CharField(source="profile.role", read_only=True)
    isKycVerified = serializers.BooleanField(source="profile.is_kyc_verified", read_only=True)
    isAccredited = serializers.BooleanField(source="profile.is_accredited", read_only=True)
    createdAt = serializers.DateTimeField(source="profile.created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="profile.updated_at", read_only=True)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'walletAddress', 'firstName', 'lastName', 'role',
            'isKycVerified', 'isAccredited', 'createdAt', 'updatedAt',
        ]


class WalletAuthSerializer(serializers.Serializer):
    walletAddress = serializers.RegexField(r"^0x[0-9a-fA-F]{40}$", error_messages={"invalid": "Invalid wallet address"})
    signature = serializers.CharField()
    message = serializers.CharField()


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    walletAddress = serializers.RegexField(r"^0x[0-9a-fA-F]{40}$", error_messages={"invalid": "Invalid wallet address"})
    firstName = serializers.CharField(required=False, min_length=1, max_length=50)
    lastName = serializers.CharField(required=False, min_length=1, max_length=50)
    role = serializers.ChoiceField(choices=[Role.INVESTOR, Role.CREATOR], required=False, default=Role.INVESTOR)


class ProfileUpdateSerializer(serializers.Serializer):
    firstName = serializers.CharField(required=False, min_length=1, max_length=50)
    lastName = serializers.CharField(required=False, min_length=1, max_length=50)
    email = serializers.EmailField(required=False)


class KycRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)
