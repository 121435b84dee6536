# projects/api_views.py
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from blockchain.gateway import get_gateway
from blockchain.reconciliation import ReconciliationService
from blockchain.verification import VerificationService
from equitychain_backend import errors
from equitychain_backend.api import envelope, paginate
from users.permissions import IsAdmin, IsCreator, IsInvestor, IsKycVerified, check_permissions
from .investments import InvestmentService
from .models import InvestmentStatus
from .serializers import (
    ContractBindSerializer, InvestmentCreateSerializer, InvestmentSerializer, ProjectCreateSerializer,
    ProjectRejectSerializer, ProjectSerializer, TransactionCheckSerializer,
)
from .services import ProjectService

logger = logging.getLogger(__name__)

projects = ProjectService()


def _investments():
    return InvestmentService(gateway=get_gateway(), projects=projects)


# --- Projects ------------------------------------------------------------------

@api_view(['GET', 'POST'])
def project_list(request):
    if request.method == 'GET':
        qs = projects.list_active(category=request.query_params.get("category"))
        return paginate(request, qs, ProjectSerializer)

    check_permissions(request, IsCreator, IsKycVerified)
    serializer = ProjectCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    project = projects.create_project(request.user, serializer.validated_data)
    return envelope(
        data={"project": ProjectSerializer(project).data},
        message="Project created successfully and submitted for approval",
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET'])
def categories(request):
    return envelope(data={"categories": projects.categories()})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_projects(request):
    return paginate(request, projects.list_by_creator(request.user), ProjectSerializer)


@api_view(['GET'])
def project_detail(request, project_id):
    return envelope(data={"project": ProjectSerializer(projects.get_project(project_id)).data})


@api_view(['GET'])
def project_by_contract(request, address):
    project = projects.get_project_by_contract(address)
    try:
        chain_data = get_gateway().get_project_details(project.chain_id, project.contract_address)
    except errors.NetworkUnavailable as e:
        # ledger data is still useful when the chain cannot be read
        logger.warning("live project data unavailable", extra={"contract": address, "error": e.code})
        chain_data = None
    return envelope(data={"project": ProjectSerializer(project).data, "blockchainData": chain_data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def deploy_project(request, project_id):
    serializer = ContractBindSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    project = projects.bind_contract(project_id, data["contractAddress"], data.get("chainId"), request.user)
    return envelope(data={"project": ProjectSerializer(project).data}, message="Project deployed")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def sync_project(request, project_id):
    project = ReconciliationService(get_gateway()).reconcile(project_id)
    return envelope(data={"project": ProjectSerializer(project).data}, message="Project synced with blockchain")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def sync_contract(request, address):
    project = ReconciliationService(get_gateway()).reconcile_contract(address)
    return envelope(data={"project": ProjectSerializer(project).data}, message="Project synced with blockchain")


# --- Investments ---------------------------------------------------------------

@api_view(['POST'])
@permission_classes([IsAuthenticated, IsInvestor, IsKycVerified])
def create_investment(request):
    serializer = InvestmentCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    investment = _investments().create_investment(
        request.user, data["projectId"], data["amount"], data["transactionHash"], chain_id=data.get("chainId")
    )
    payload = {"investment": InvestmentSerializer(investment).data}

    if investment.status == InvestmentStatus.CONFIRMED:
        return envelope(data=payload, message="Investment confirmed", status=status.HTTP_201_CREATED)
    if investment.status == InvestmentStatus.PENDING:
        return envelope(
            data=payload,
            error=errors.VerificationPending.code,
            message="Investment recorded, transaction verification pending",
            status=errors.VerificationPending.status_code,
        )
    return envelope(
        data=payload,
        success=False,
        error=errors.VerificationFailed.code,
        message=f"Transaction verification failed: {investment.failure_reason}",
        status=errors.VerificationFailed.status_code,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_investments(request):
    return paginate(request, _investments().list_by_investor(request.user), InvestmentSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def project_investments(request, project_id):
    return paginate(request, _investments().list_by_project(project_id), InvestmentSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def investment_stats(request):
    return envelope(data={"stats": _investments().stats(request.user)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def portfolio(request):
    result = _investments().portfolio(request.user)
    return envelope(data={
        "stats": result["stats"],
        "recentInvestments": InvestmentSerializer(result["recent"], many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_investment(request, investment_id):
    service = _investments()
    investment = service.get_investment(investment_id)
    if investment.investor_id != request.user.pk and not IsAdmin().has_permission(request, None):
        raise errors.Forbidden("Not your investment")
    investment = service.verify_investment(investment.pk)
    return envelope(data={"investment": InvestmentSerializer(investment).data}, message=f"Investment {investment.status}")


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def check_transaction(request):
    serializer = TransactionCheckSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    chain_id = data.get("chainId") or settings.DEFAULT_CHAIN_ID
    result = VerificationService(get_gateway()).verify(chain_id, data["transactionHash"].lower())
    return envelope(data={"transaction": result.as_dict()})


# --- Admin ---------------------------------------------------------------------

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def admin_pending_projects(request):
    return paginate(request, projects.list_pending(), ProjectSerializer)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def approve_project(request, project_id):
    project = projects.approve_project(project_id, request.user)
    return envelope(data={"project": ProjectSerializer(project).data}, message="Project approved successfully")


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdmin])
def reject_project(request, project_id):
    serializer = ProjectRejectSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    project = projects.reject_project(project_id, request.user, serializer.validated_data["reason"])
    return envelope(data={"project": ProjectSerializer(project).data}, message="Project rejected")


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def admin_stats(request):
    return envelope(data={"stats": _investments().platform_stats()})
