# blockchain/management/commands/verify_investments.py

from django.core.management.base import BaseCommand

from blockchain.gateway import get_gateway
from projects.investments import InvestmentService
from projects.models import InvestmentStatus


class Command(BaseCommand):
    help = "Re-verify pending investments against their chain transactions"

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, help="Verify at most this many investments")

    def handle(self, *args, **options):
        outcomes = InvestmentService(gateway=get_gateway()).verify_pending(limit=options["limit"])
        if not outcomes:
            self.stdout.write("⏭️ No pending investments")
            return

        counts = {}
        for investment_id, outcome in outcomes.items():
            counts[outcome] = counts.get(outcome, 0) + 1
            if outcome == InvestmentStatus.CONFIRMED:
                self.stdout.write(f"✅ {investment_id} confirmed")
            elif outcome == InvestmentStatus.FAILED:
                self.stdout.write(f"❌ {investment_id} failed")
            elif outcome == InvestmentStatus.PENDING:
                self.stdout.write(f"⏳ {investment_id} still pending")
            else:
                self.stderr.write(f"⚠️ {investment_id}: {outcome}")

        summary = ", ".join(f"{count} {outcome}" for outcome, count in sorted(counts.items()))
        self.stdout.write(f"🔗 Verified {len(outcomes)} investment(s): {summary}")
