import logging

from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from blockchain.gateway import get_gateway
from users.permissions import IsAdmin
from .api import envelope

logger = logging.getLogger(__name__)


@api_view(['GET'])
def health(request):
    return envelope(data={"status": "OK", "timestamp": timezone.now().isoformat()})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def admin_health(request):
    """Database reachability plus which networks have an RPC endpoint configured."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        database = "connected"
    except DatabaseError as e:
        logger.error("database health check failed", extra={"error": str(e)})
        database = "unavailable"

    data = {
        "status": "healthy" if database == "connected" else "degraded",
        "timestamp": timezone.now().isoformat(),
        "database": database,
        "networks": get_gateway().supported_networks(),
    }
    code = status.HTTP_200_OK if database == "connected" else status.HTTP_503_SERVICE_UNAVAILABLE
    return envelope(data=data, status=code)
