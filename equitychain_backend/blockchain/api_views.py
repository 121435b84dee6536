# blockchain/api_views.py
from django.conf import settings
from rest_framework.decorators import api_view

from equitychain_backend import errors
from equitychain_backend.api import envelope
from projects.investments import TX_HASH_RE
from .gateway import get_gateway
from .verification import VerificationService


def _chain_id(request):
    return request.query_params.get("chainId") or settings.DEFAULT_CHAIN_ID


@api_view(['GET'])
def networks(request):
    return envelope(data={"networks": get_gateway().supported_networks()})


@api_view(['GET'])
def network_projects(request, chain_id):
    projects = get_gateway().list_network_projects(chain_id)
    return envelope(data={"chainId": chain_id, "projects": projects})


@api_view(['GET'])
def project_details(request, address):
    return envelope(data={"project": get_gateway().get_project_details(_chain_id(request), address)})


@api_view(['GET'])
def investor_data(request, address, investor):
    data = get_gateway().get_investor_data(_chain_id(request), address, investor)
    return envelope(data={"investor": data})


@api_view(['GET'])
def verify_transaction(request, tx_hash):
    if not TX_HASH_RE.match(tx_hash):
        raise errors.ValidationError("Invalid transaction hash")
    result = VerificationService.single_lookup(get_gateway()).verify(_chain_id(request), tx_hash.lower())
    return envelope(data={"transactionHash": tx_hash.lower(), "transaction": result.as_dict()})
