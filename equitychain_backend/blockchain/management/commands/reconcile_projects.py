# blockchain/management/commands/reconcile_projects.py

from django.core.management.base import BaseCommand

from blockchain.gateway import get_gateway
from blockchain.reconciliation import ReconciliationService
from equitychain_backend.errors import DomainError
from projects.models import Project


class Command(BaseCommand):
    help = "Mirror on-chain funding state into every project with a bound contract"

    def add_arguments(self, parser):
        parser.add_argument("--project", action="append", dest="projects", metavar="ID",
                            help="Reconcile only this project (repeatable)")
        parser.add_argument("--workers", type=int, help="Projects reconciled in parallel")

    def handle(self, *args, **options):
        ids = options["projects"] or list(
            Project.objects.exclude(contract_address__isnull=True).values_list("pk", flat=True)
        )
        if not ids:
            self.stdout.write("⏭️ No projects with a bound contract")
            return

        service = ReconciliationService(get_gateway(), workers=options["workers"])
        self.stdout.write(f"🔗 Reconciling {len(ids)} project(s)")

        failures = 0
        for project_id, result in service.reconcile_many(ids).items():
            if isinstance(result, DomainError):
                failures += 1
                self.stderr.write(f"⚠️ {project_id}: {result.code} ({result.message})")
                continue
            self.stdout.write(
                f"✅ {result.name}: {result.current_funding} raised by {result.investor_count} investor(s), "
                f"status {result.status}"
            )

        if failures:
            self.stderr.write(f"❌ {failures} project(s) could not be reconciled")
