from decimal import Decimal

import pytest

from blockchain.reconciliation import ReconciliationService
from equitychain_backend import errors
from projects.models import Project, ProjectStatus

from .fakes import CONTRACT, FakeGateway

pytestmark = pytest.mark.django_db


@pytest.fixture
def chain():
    return FakeGateway()


@pytest.fixture
def service(chain):
    return ReconciliationService(chain, workers=1, timeout=5)


def _row(project):
    return Project.objects.filter(pk=project.pk).values().get()


def test_mirrors_chain_state(service, chain, active_project):
    chain.set_funding(CONTRACT, "12500", 4)

    project = service.reconcile(active_project.pk)

    assert project.current_funding == Decimal("12500")
    assert project.investor_count == 4
    assert project.funding_active is True
    assert project.status == ProjectStatus.ACTIVE


def test_leaves_off_chain_fields_alone(service, chain, active_project):
    chain.set_funding(CONTRACT, "12500", 4)
    before = _row(active_project)

    service.reconcile(active_project.pk)

    after = _row(active_project)
    for field in ("name", "description", "funding_goal", "min_investment", "is_approved", "contract_address"):
        assert after[field] == before[field]


def test_second_run_is_a_no_op(service, chain, active_project):
    chain.set_funding(CONTRACT, "12500", 4)
    service.reconcile(active_project.pk)
    first = _row(active_project)

    service.reconcile(active_project.pk)

    assert _row(active_project) == first


def test_successful_funding_closes_project(service, chain, active_project):
    chain.set_funding(CONTRACT, "50000", 12, active=False, successful=True)

    assert service.reconcile(active_project.pk).status == ProjectStatus.SUCCESSFUL


def test_closed_unsuccessful_funding_fails_project(service, chain, active_project):
    chain.set_funding(CONTRACT, "100", 1, active=False, successful=False)

    assert service.reconcile(active_project.pk).status == ProjectStatus.FAILED


def test_project_without_contract(service, creator):
    project = Project.objects.create(
        creator=creator, name="Draft", description="d", category="tech",
        funding_goal=10000, equity_percentage=5, min_investment=10, max_investment=10000,
    )
    with pytest.raises(errors.NoContractBound):
        service.reconcile(project.pk)


def test_unknown_project(service):
    with pytest.raises(errors.NotFound):
        service.reconcile("3f1c2d9e-0000-4000-8000-000000000000")
    with pytest.raises(errors.NotFound):
        service.reconcile("not-a-uuid")


def test_chain_failure_writes_nothing(service, chain, active_project):
    chain.funding[CONTRACT] = errors.ContractUnreachable()
    before = _row(active_project)

    with pytest.raises(errors.ContractUnreachable):
        service.reconcile(active_project.pk)

    assert _row(active_project) == before


def test_reconcile_by_contract(service, chain, active_project):
    chain.set_funding(CONTRACT, "700", 2)

    project = service.reconcile_contract(CONTRACT.upper().replace("0X", "0x"))

    assert project.pk == active_project.pk
    assert project.investor_count == 2


@pytest.mark.django_db(transaction=True)
def test_reconcile_many_isolates_failures(service, chain, active_project, creator):
    broken = Project.objects.create(
        creator=creator, name="Broken", description="d", category="tech",
        funding_goal=10000, equity_percentage=5, min_investment=10, max_investment=10000,
        status=ProjectStatus.ACTIVE, contract_address="0x" + "cd" * 20, chain_id=1,
    )
    chain.set_funding(CONTRACT, "900", 3)

    results = service.reconcile_many([active_project.pk, broken.pk])

    assert results[active_project.pk].current_funding == Decimal("900")
    assert isinstance(results[broken.pk], errors.ContractUnreachable)


@pytest.mark.django_db(transaction=True)
def test_slow_project_times_out_without_blocking_others(chain, active_project, creator):
    slow_contract = "0x" + "ef" * 20
    slow = Project.objects.create(
        creator=creator, name="Slow", description="d", category="tech",
        funding_goal=10000, equity_percentage=5, min_investment=10, max_investment=10000,
        status=ProjectStatus.ACTIVE, contract_address=slow_contract, chain_id=1,
    )
    chain.set_funding(slow_contract, "900", 3)
    chain.funding_delays[slow_contract] = 0.6
    chain.set_funding(CONTRACT, "777", 2)
    service = ReconciliationService(chain, workers=1, timeout=0.3)

    results = service.reconcile_many([slow.pk, active_project.pk])

    assert isinstance(results[slow.pk], errors.NetworkUnavailable)
    assert results[active_project.pk].current_funding == Decimal("777")
    assert Project.objects.get(pk=slow.pk).current_funding == 0
    assert Project.objects.get(pk=slow.pk).investor_count == 0
