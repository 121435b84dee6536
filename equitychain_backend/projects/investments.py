"""Investment claims and their confirmation against the chain.

An investment is recorded ``pending`` in a short transaction, verified with no
transaction open, then moved once to ``confirmed`` or ``failed``. Transient
chain failures leave it ``pending`` for a later retry.
"""

import logging
import re
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from blockchain.gateway import get_gateway
from blockchain.verification import VerificationService
from equitychain_backend import errors
from users.models import Role
from .models import Investment, InvestmentStatus, Project, ProjectStatus
from .services import ProjectService, parse_amount

logger = logging.getLogger(__name__)

TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
LIVE_STATUSES = (InvestmentStatus.PENDING, InvestmentStatus.CONFIRMED)


def decimal_str(value):
    if value is None:
        return "0"
    return format(Decimal(value).normalize(), "f")


class InvestmentService:

    def __init__(self, gateway=None, verifier=None, projects=None):
        self.verifier = verifier or VerificationService(gateway if gateway is not None else get_gateway())
        self.projects = projects or ProjectService()

    def _verify(self, investment):
        return self.verifier.verify(
            investment.chain_id,
            investment.tx_hash,
            expected_amount=investment.amount,
            contract_address=investment.project.contract_address,
            investor_address=investment.investor.profile.wallet_address,
        )

    def _hash_is_live(self, tx_hash):
        return Investment.objects.filter(tx_hash=tx_hash, status__in=LIVE_STATUSES).exists()

    def create_investment(self, investor, project_id, amount, tx_hash, chain_id=None):
        amount = parse_amount(amount, "amount")
        if amount <= 0:
            raise errors.ValidationError("Amount must be positive")
        if not isinstance(tx_hash, str) or not TX_HASH_RE.match(tx_hash):
            raise errors.ValidationError("Invalid transaction hash")
        tx_hash = tx_hash.lower()

        project = self.projects.get_project(project_id)
        if project.status != ProjectStatus.ACTIVE:
            raise errors.ValidationError("Project is not accepting investments")
        if not project.contract_address:
            raise errors.NoContractBound(f"Project {project.pk} has no contract address")
        if chain_id is not None and int(chain_id) != project.chain_id:
            raise errors.ValidationError(f"Project is deployed on chain {project.chain_id}")
        if amount < project.min_investment:
            raise errors.ValidationError(f"Minimum investment is {decimal_str(project.min_investment)}")
        if amount > project.max_investment:
            raise errors.ValidationError(f"Maximum investment is {decimal_str(project.max_investment)}")
        profile = getattr(investor, "profile", None)
        if profile is None or not profile.wallet_address:
            raise errors.ValidationError("Investor has no wallet address")

        try:
            with transaction.atomic():
                if self._hash_is_live(tx_hash):
                    raise errors.Conflict("Transaction already recorded")
                investment = Investment.objects.create(
                    investor=investor,
                    project=project,
                    amount=amount,
                    chain_id=project.chain_id,
                    tx_hash=tx_hash,
                )
        except IntegrityError:
            raise errors.Conflict("Transaction already recorded")

        logger.info(
            "investment recorded",
            extra={"investment_id": str(investment.pk), "project_id": str(project.pk), "tx_hash": tx_hash},
        )
        return self.apply_verification(investment.pk, self._verify(investment))

    def apply_verification(self, investment_id, result):
        with transaction.atomic():
            try:
                investment = Investment.objects.select_for_update().get(pk=investment_id)
            except Investment.DoesNotExist:
                raise errors.NotFound("Investment not found")
            if investment.status != InvestmentStatus.PENDING:
                return investment

            investment.verification_attempts = F("verification_attempts") + 1
            if result.ok:
                duplicate = (
                    Investment.objects.filter(tx_hash=investment.tx_hash, status=InvestmentStatus.CONFIRMED)
                    .exclude(pk=investment.pk)
                    .exists()
                )
                if duplicate:
                    raise errors.Conflict("Transaction already confirmed for another investment")
                investment.status = InvestmentStatus.CONFIRMED
                investment.block_number = result.block_number
                investment.confirmed_at = timezone.now()
                investment.equity_tokens = result.equity_tokens
            elif result.definitive:
                investment.status = InvestmentStatus.FAILED
                investment.failure_reason = result.reason
            investment.save()
            investment.refresh_from_db()

        logger.info(
            "investment verified",
            extra={
                "investment_id": str(investment.pk),
                "tx_hash": investment.tx_hash,
                "status": investment.status,
                "reason": result.reason,
            },
        )
        return investment

    def get_investment(self, investment_id):
        try:
            return Investment.objects.select_related("project", "investor__profile").get(pk=investment_id)
        except (Investment.DoesNotExist, ValueError, DjangoValidationError):
            raise errors.NotFound("Investment not found")

    def verify_investment(self, investment_id):
        investment = self.get_investment(investment_id)
        if investment.status != InvestmentStatus.PENDING:
            return investment
        return self.apply_verification(investment.pk, self._verify(investment))

    def verify_pending(self, limit=None):
        ids = Investment.objects.filter(status=InvestmentStatus.PENDING).order_by("created_at").values_list(
            "pk", flat=True
        )
        if limit:
            ids = ids[:limit]

        outcomes = {}
        for investment_id in list(ids):
            try:
                outcomes[investment_id] = self.verify_investment(investment_id).status
            except errors.DomainError as e:
                logger.warning(
                    "investment verification failed", extra={"investment_id": str(investment_id), "error": e.code}
                )
                outcomes[investment_id] = e.code
        return outcomes

    # --- Queries --------------------------------------------------------------

    def list_by_investor(self, investor):
        return Investment.objects.select_related("project", "investor__profile").filter(investor=investor)

    def list_by_project(self, project_id):
        project = self.projects.get_project(project_id)
        return Investment.objects.select_related("project", "investor__profile").filter(project=project)

    def stats(self, investor):
        """Totals over the investor's confirmed investments, amounts as decimal strings."""
        totals = Investment.objects.filter(investor=investor, status=InvestmentStatus.CONFIRMED).aggregate(
            count=Count("id"),
            invested=Sum("amount"),
            tokens=Sum("equity_tokens"),
            projects=Count("project", distinct=True),
        )
        return {
            "totalInvestments": totals["count"],
            "totalInvested": decimal_str(totals["invested"]),
            "totalEquityTokens": decimal_str(totals["tokens"]),
            "uniqueProjects": totals["projects"],
        }

    def portfolio(self, investor):
        return {
            "stats": self.stats(investor),
            "recent": list(self.list_by_investor(investor)[:5]),
        }

    def platform_stats(self):
        projects = Project.objects.aggregate(
            total=Count("id"),
            approved=Count("id", filter=Q(is_approved=True)),
        )
        investments = Investment.objects.filter(status=InvestmentStatus.CONFIRMED).aggregate(
            count=Count("id"), invested=Sum("amount")
        )
        users = User.objects.filter(profile__isnull=False)
        return {
            "totalProjects": projects["total"],
            "approvedProjects": projects["approved"],
            "pendingProjects": Project.objects.filter(status=ProjectStatus.PENDING).count(),
            "activeProjects": Project.objects.filter(status=ProjectStatus.ACTIVE).count(),
            "totalUsers": users.count(),
            "investors": users.filter(profile__role=Role.INVESTOR).count(),
            "creators": users.filter(profile__role=Role.CREATOR).count(),
            "pendingKyc": users.filter(profile__is_kyc_verified=False).count(),
            "totalInvestments": investments["count"],
            "totalInvested": decimal_str(investments["invested"]),
        }
