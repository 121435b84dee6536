"""Mirror on-chain funding state into the ledger.

This is the only writer of the mirrored project columns. Chain reads happen
before any transaction is opened; the write is a single ``UPDATE`` that either
applies every mirrored field or none.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import connection, transaction
from django.utils import timezone

from equitychain_backend import errors
from projects.models import Project, ProjectStatus

logger = logging.getLogger(__name__)

MIRRORED_FIELDS = ("current_funding", "investor_count", "funding_active", "funding_successful")


class ReconciliationService:

    def __init__(self, gateway, workers=None, timeout=None):
        self.gateway = gateway
        self.workers = workers or settings.RECONCILE_WORKERS
        self.timeout = timeout or settings.RECONCILE_TIMEOUT

    def reconcile(self, project_id, deadline=None):
        try:
            project = Project.objects.get(pk=project_id)
        except (Project.DoesNotExist, ValueError, DjangoValidationError):
            raise errors.NotFound("Project not found")
        return self._reconcile(project, deadline)

    def reconcile_contract(self, contract_address):
        project = Project.objects.filter(contract_address=contract_address.lower()).first()
        if project is None:
            raise errors.NotFound("Project not found")
        return self._reconcile(project)

    def _reconcile(self, project, deadline=None):
        if not project.contract_address:
            raise errors.NoContractBound(f"Project {project.pk} has no contract address")

        chain_id = project.chain_id or settings.DEFAULT_CHAIN_ID
        state = self.gateway.read_funding_state(chain_id, project.contract_address)
        if deadline is not None and time.monotonic() > deadline:
            logger.error("reconciliation timed out", extra={"project_id": str(project.pk), "chain_id": chain_id})
            raise errors.NetworkUnavailable(f"Reconciliation of {project.pk} timed out")

        with transaction.atomic():
            current = Project.objects.select_for_update().get(pk=project.pk)
            updates = {
                field: getattr(state, field)
                for field in MIRRORED_FIELDS
                if getattr(current, field) != getattr(state, field)
            }
            if current.status == ProjectStatus.ACTIVE:
                if state.funding_successful:
                    updates["status"] = ProjectStatus.SUCCESSFUL
                elif not state.funding_active:
                    updates["status"] = ProjectStatus.FAILED

            if not updates:
                logger.info("project in sync", extra={"project_id": str(project.pk), "chain_id": chain_id})
                return current

            updates["updated_at"] = timezone.now()
            Project.objects.filter(pk=project.pk).update(**updates)

        logger.info(
            "project reconciled",
            extra={"project_id": str(project.pk), "chain_id": chain_id, "fields": sorted(updates)},
        )
        return Project.objects.get(pk=project.pk)

    def _unit(self, project_id):
        deadline = time.monotonic() + self.timeout
        try:
            return self.reconcile(project_id, deadline=deadline)
        except errors.DomainError as e:
            logger.warning(
                "reconciliation failed", extra={"project_id": str(project_id), "error": e.code}
            )
            return e
        finally:
            connection.close()

    def reconcile_many(self, project_ids):
        """Reconcile each project independently; failures are returned, not raised.

        A unit's deadline starts when a worker picks it up, so projects queued
        behind a slow one still get their full budget. A unit past its
        deadline returns ``NetworkUnavailable`` and writes nothing.
        """
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            futures = {project_id: pool.submit(self._unit, project_id) for project_id in project_ids}
        return {project_id: future.result() for project_id, future in futures.items()}
