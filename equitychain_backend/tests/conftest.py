from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from projects.models import Project, ProjectStatus
from users.models import Role
from users.services import ADMIN_FIELDS, UserService

from .fakes import CONTRACT, FakeGateway, wallet


@pytest.fixture(autouse=True)
def _fast_chain(settings):
    settings.VERIFICATION_ATTEMPTS = 2
    settings.VERIFICATION_BACKOFF = 0
    cache.clear()


@pytest.fixture
def gateway(monkeypatch):
    fake = FakeGateway()
    for target in (
        "projects.api_views.get_gateway",
        "blockchain.api_views.get_gateway",
        "equitychain_backend.views.get_gateway",
    ):
        monkeypatch.setattr(target, lambda: fake)
    return fake


@pytest.fixture
def make_user(db):
    service = UserService()

    def make(role=Role.INVESTOR, kyc=True, email=None):
        address = wallet()
        user = service.create_user(
            email=email or f"{address[-8:]}@example.com",
            wallet_address=address,
            first_name="Test",
            last_name=role.capitalize(),
            role=Role.INVESTOR if role == Role.ADMIN else role,
        )
        changes = {"isKycVerified": kyc}
        if role == Role.ADMIN:
            changes["role"] = Role.ADMIN
        return service.update_user(user, changes, fields=ADMIN_FIELDS)

    return make


@pytest.fixture
def investor(make_user):
    return make_user(Role.INVESTOR)


@pytest.fixture
def creator(make_user):
    return make_user(Role.CREATOR)


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN)


@pytest.fixture
def active_project(creator):
    return Project.objects.create(
        creator=creator,
        name="Solar Farm",
        symbol="SOLAR",
        description="Community solar",
        category="energy",
        funding_goal=Decimal("50000"),
        equity_percentage=Decimal("10"),
        min_investment=Decimal("1000"),
        max_investment=Decimal("50000"),
        status=ProjectStatus.ACTIVE,
        is_approved=True,
        contract_address=CONTRACT,
        chain_id=1,
        funding_active=True,
    )


@pytest.fixture
def client_for():
    def make(user=None):
        client = APIClient()
        if user is not None:
            token = UserService().generate_auth_token(user)
            client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return client

    return make
