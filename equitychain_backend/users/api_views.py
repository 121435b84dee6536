# users/api_views.py
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from equitychain_backend.api import envelope, paginate
from .permissions import IsAdmin
from .serializers import (
    KycRejectSerializer, ProfileUpdateSerializer, RegisterSerializer, UserSerializer, WalletAuthSerializer,
)
from .services import ADMIN_FIELDS, UserService

users = UserService()


def _auth_payload(user):
    return {"user": UserSerializer(user).data, "token": users.generate_auth_token(user)}


@api_view(['POST'])
def wallet_auth(request):
    serializer = WalletAuthSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    user = users.authenticate_wallet(data["walletAddress"], data["signature"], data["message"])
    return envelope(data=_auth_payload(user), message="Authentication successful")


@api_view(['POST'])
def register(request):
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    user = users.create_user(
        email=data["email"],
        wallet_address=data["walletAddress"],
        first_name=data.get("firstName"),
        last_name=data.get("lastName"),
        role=data["role"],
    )
    return envelope(data=_auth_payload(user), message="User registered successfully", status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile(request):
    if request.method == 'GET':
        return envelope(data={"user": UserSerializer(users.require_user(request.user.pk)).data})

    serializer = ProfileUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = users.update_user(request.user, serializer.validated_data)
    return envelope(data={"user": UserSerializer(user).data}, message="Profile updated successfully")


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kyc_status(request):
    verified = request.user.profile.is_kyc_verified
    return envelope(data={
        "kycStatus": "approved" if verified else "pending",
        "isKycVerified": verified,
        "isAccredited": request.user.profile.is_accredited,
    })


# --- Admin -------------------------------------------------------------------

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def admin_users(request):
    qs = users.list_users(role=request.query_params.get("role"), kyc_status=request.query_params.get("kycStatus"))
    return paginate(request, qs, UserSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def admin_pending_kyc(request):
    return paginate(request, users.pending_kyc(), UserSerializer)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def approve_kyc(request, user_id):
    user = users.set_kyc(user_id, True)
    return envelope(data={"user": UserSerializer(user).data}, message="KYC approved successfully")


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def reject_kyc(request, user_id):
    KycRejectSerializer(data=request.data).is_valid(raise_exception=True)
    user = users.set_kyc(user_id, False)
    return envelope(data={"user": UserSerializer(user).data}, message="KYC rejected")


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def update_user_flags(request, user_id):
    user = users.update_user(users.require_user(user_id), request.data, fields=ADMIN_FIELDS)
    return envelope(data={"user": UserSerializer(user).data}, message="User updated")
