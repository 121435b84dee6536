"""User accounts, wallet sign-in and JWT issuance."""

import logging
import re
from datetime import datetime, timedelta, timezone as dt_timezone

from django.conf import settings
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from eth_account import Account
from eth_account.messages import encode_defunct
from jose import JWTError, jwt

from equitychain_backend import errors
from .models import Profile, Role

logger = logging.getLogger(__name__)

WALLET_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

EMAIL_TAKEN = "User already exists with this email"
WALLET_TAKEN = "User already exists with this wallet address"

# API field -> (model, column). Only these may be written through update_user.
PROFILE_FIELDS = {
    "firstName": ("user", "first_name"),
    "lastName": ("user", "last_name"),
    "email": ("user", "email"),
}
ADMIN_FIELDS = {
    "isKycVerified": ("profile", "is_kyc_verified"),
    "isAccredited": ("profile", "is_accredited"),
    "role": ("profile", "role"),
}


def normalize_wallet(address):
    if not isinstance(address, str) or not WALLET_RE.match(address):
        raise errors.ValidationError("Invalid wallet address")
    return address.lower()


def normalize_email(email):
    email = (email or "").strip().lower()
    try:
        validate_email(email)
    except DjangoValidationError:
        raise errors.ValidationError("Invalid email address")
    return email


class UserService:

    def create_user(self, email, wallet_address, first_name=None, last_name=None, role=Role.INVESTOR):
        wallet = normalize_wallet(wallet_address)
        email = normalize_email(email)
        if role not in (Role.INVESTOR, Role.CREATOR):
            raise errors.ValidationError("Role must be investor or creator")

        try:
            with transaction.atomic():
                if self._email_taken(email):
                    raise errors.Conflict(EMAIL_TAKEN)
                if Profile.objects.filter(wallet_address=wallet).exists():
                    raise errors.Conflict(WALLET_TAKEN)
                user = User.objects.create_user(
                    username=wallet,
                    email=email,
                    first_name=first_name or "",
                    last_name=last_name or "",
                )
                Profile.objects.create(user=user, wallet_address=wallet, email=email, role=role)
        except IntegrityError:
            # lost a race against a concurrent registration
            if Profile.objects.filter(email=email).exists():
                raise errors.Conflict(EMAIL_TAKEN)
            raise errors.Conflict(WALLET_TAKEN)

        logger.info("user created", extra={"user_id": user.pk, "role": role})
        return self.get_user(user.pk)

    def _email_taken(self, email, exclude_user=None):
        qs = Profile.objects.filter(email=email)
        if exclude_user is not None:
            qs = qs.exclude(user_id=exclude_user.pk)
        return qs.exists()

    def get_user(self, user_id):
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            return None
        return User.objects.select_related("profile").filter(pk=user_id, profile__isnull=False).first()

    def require_user(self, user_id):
        user = self.get_user(user_id)
        if user is None:
            raise errors.NotFound("User not found")
        return user

    def get_user_by_wallet(self, wallet_address):
        return (
            User.objects.select_related("profile")
            .filter(profile__wallet_address=wallet_address.lower())
            .first()
        )

    def get_user_by_email(self, email):
        return User.objects.select_related("profile").filter(profile__email=email.strip().lower()).first()

    def update_user(self, user, updates, fields=PROFILE_FIELDS):
        """Apply ``updates`` (API names) through the ``fields`` mapping.

        Unknown keys and ``None`` values are ignored; nothing left to write is
        a validation error.
        """
        changes = {"user": {}, "profile": {}}
        for key, value in updates.items():
            if value is None or key not in fields:
                continue
            model, column = fields[key]
            changes[model][column] = value

        if not changes["user"] and not changes["profile"]:
            raise errors.ValidationError("No valid fields to update")

        if "email" in changes["user"]:
            email = normalize_email(changes["user"]["email"])
            if self._email_taken(email, exclude_user=user):
                raise errors.Conflict(EMAIL_TAKEN)
            changes["user"]["email"] = changes["profile"]["email"] = email
        if "role" in changes["profile"] and changes["profile"]["role"] not in Role.values:
            raise errors.ValidationError("Invalid role")

        try:
            with transaction.atomic():
                if changes["user"]:
                    User.objects.filter(pk=user.pk).update(**changes["user"])
                profile = Profile.objects.select_for_update().get(user_id=user.pk)
                for column, value in changes["profile"].items():
                    setattr(profile, column, value)
                profile.save()
        except IntegrityError:
            raise errors.Conflict(EMAIL_TAKEN)

        return self.require_user(user.pk)

    def set_kyc(self, user_id, verified):
        user = self.require_user(user_id)
        logger.info("kyc status changed", extra={"user_id": user.pk, "verified": verified})
        return self.update_user(user, {"isKycVerified": verified}, fields=ADMIN_FIELDS)

    def list_users(self, role=None, kyc_status=None):
        qs = User.objects.select_related("profile").filter(profile__isnull=False)
        if role:
            if role not in Role.values:
                raise errors.ValidationError("Invalid role")
            qs = qs.filter(profile__role=role)
        if kyc_status == "approved":
            qs = qs.filter(profile__is_kyc_verified=True)
        elif kyc_status == "pending":
            qs = qs.filter(profile__is_kyc_verified=False)
        return qs.order_by("-date_joined")

    def pending_kyc(self):
        return (
            User.objects.select_related("profile")
            .filter(profile__isnull=False, profile__is_kyc_verified=False)
            .order_by("date_joined")
        )

    # --- Wallet sign-in -------------------------------------------------------

    def verify_wallet_signature(self, wallet_address, signature, message):
        try:
            recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
        except Exception as e:
            logger.warning("signature recovery failed", extra={"wallet": wallet_address, "error": str(e)})
            return False
        return recovered.lower() == wallet_address.lower()

    def authenticate_wallet(self, wallet_address, signature, message):
        wallet = normalize_wallet(wallet_address)
        if not self.verify_wallet_signature(wallet, signature, message):
            raise errors.Unauthorized("Invalid signature")

        user = self.get_user_by_wallet(wallet)
        if user is None:
            user = self.create_user(email=f"{wallet}@wallet.local", wallet_address=wallet)
        return user

    # --- Tokens ---------------------------------------------------------------

    def generate_auth_token(self, user):
        now = datetime.now(dt_timezone.utc)
        payload = {
            "sub": str(user.pk),
            "email": user.email,
            "walletAddress": user.profile.wallet_address,
            "role": user.profile.role,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=settings.JWT_EXPIRES_MINUTES)).timestamp()),
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    def decode_auth_token(self, token):
        try:
            claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        except JWTError:
            raise errors.Unauthorized("Invalid or expired token")
        user = self.get_user(claims.get("sub"))
        if user is None:
            raise errors.Unauthorized("User not found")
        return user
