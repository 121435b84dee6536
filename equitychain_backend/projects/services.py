import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from equitychain_backend import errors
from users.models import Role
from .models import Project, ProjectStatus

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "description", "category", "fundingGoal", "equityPercentage", "minInvestment")

# API name -> model column for the optional descriptive fields
OPTIONAL_FIELDS = {
    "symbol": "symbol",
    "teamSize": "team_size",
    "website": "website",
    "businessPlan": "business_plan",
}


def parse_amount(value, label):
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise errors.ValidationError(f"{label} must be a decimal number")
    if not amount.is_finite():
        raise errors.ValidationError(f"{label} must be a decimal number")
    return amount


def _is_admin(user):
    return getattr(getattr(user, "profile", None), "role", None) == Role.ADMIN


class ProjectService:

    def create_project(self, creator, data):
        missing = [field for field in REQUIRED_FIELDS if data.get(field) in (None, "")]
        if missing:
            raise errors.ValidationError(f"Missing required fields: {', '.join(missing)}")

        funding_goal = parse_amount(data["fundingGoal"], "fundingGoal")
        if not settings.MIN_PROJECT_FUNDING <= funding_goal <= settings.MAX_PROJECT_FUNDING:
            raise errors.ValidationError(
                f"Funding goal must be between {settings.MIN_PROJECT_FUNDING} and {settings.MAX_PROJECT_FUNDING}"
            )

        equity = parse_amount(data["equityPercentage"], "equityPercentage")
        if not Decimal(1) <= equity <= Decimal(100):
            raise errors.ValidationError("Equity percentage must be between 1 and 100")

        min_investment = parse_amount(data["minInvestment"], "minInvestment")
        if min_investment <= 0:
            raise errors.ValidationError("Minimum investment must be positive")

        if data.get("maxInvestment") in (None, ""):
            max_investment = funding_goal
        else:
            max_investment = parse_amount(data["maxInvestment"], "maxInvestment")
            if max_investment < min_investment:
                raise errors.ValidationError("Maximum investment must be at least the minimum investment")

        duration = data.get("fundingDuration") or settings.DEFAULT_FUNDING_DURATION
        try:
            duration = int(duration)
        except (TypeError, ValueError):
            raise errors.ValidationError("fundingDuration must be an integer")
        if duration <= 0:
            raise errors.ValidationError("Funding duration must be positive")

        fields = {
            column: data[key] for key, column in OPTIONAL_FIELDS.items() if data.get(key) not in (None, "")
        }
        project = Project.objects.create(
            creator=creator,
            name=data["name"],
            description=data["description"],
            category=data["category"],
            funding_goal=funding_goal,
            equity_percentage=equity,
            min_investment=min_investment,
            max_investment=max_investment,
            funding_duration=duration,
            **fields,
        )
        logger.info("project created", extra={"project_id": str(project.pk), "creator_id": creator.pk})
        return project

    # --- Lookups --------------------------------------------------------------

    def get_project(self, project_id):
        try:
            return Project.objects.select_related("creator__profile").get(pk=project_id)
        except (Project.DoesNotExist, ValueError, DjangoValidationError):
            raise errors.NotFound("Project not found")

    def get_project_by_contract(self, contract_address):
        project = (
            Project.objects.select_related("creator__profile")
            .filter(contract_address=contract_address.lower())
            .first()
        )
        if project is None:
            raise errors.NotFound("Project not found")
        return project

    def list_active(self, category=None):
        qs = Project.objects.select_related("creator__profile").filter(
            status=ProjectStatus.ACTIVE, is_approved=True
        )
        if category:
            qs = qs.filter(category=category)
        return qs

    def list_by_creator(self, creator):
        return Project.objects.filter(creator=creator)

    def list_pending(self):
        return Project.objects.select_related("creator__profile").filter(status=ProjectStatus.PENDING).order_by("created_at")

    def categories(self):
        rows = (
            Project.objects.filter(status=ProjectStatus.ACTIVE, is_approved=True)
            .values("category")
            .annotate(count=Count("id"))
            .order_by("-count", "category")
        )
        return [{"category": row["category"], "count": row["count"]} for row in rows]

    # --- Workflow -------------------------------------------------------------

    def _review(self, project_id, admin, status, **changes):
        if not _is_admin(admin):
            raise errors.Forbidden("Admin role required")
        with transaction.atomic():
            try:
                project = Project.objects.select_for_update().get(pk=project_id)
            except (Project.DoesNotExist, ValueError, DjangoValidationError):
                raise errors.NotFound("Project not found")
            if project.status != ProjectStatus.PENDING:
                raise errors.Conflict(f"Project is {project.status}, not pending")
            project.status = status
            project.approved_by = admin
            for field, value in changes.items():
                setattr(project, field, value)
            project.save()
        logger.info(
            "project reviewed", extra={"project_id": str(project.pk), "status": status, "admin_id": admin.pk}
        )
        return project

    def approve_project(self, project_id, admin):
        return self._review(
            project_id, admin, ProjectStatus.APPROVED, is_approved=True, approved_at=timezone.now()
        )

    def reject_project(self, project_id, admin, reason):
        if not reason or not str(reason).strip():
            raise errors.ValidationError("Rejection reason is required")
        return self._review(
            project_id, admin, ProjectStatus.REJECTED, is_approved=False, rejection_reason=str(reason).strip()
        )

    def bind_contract(self, project_id, contract_address, chain_id, actor):
        """Record the deployed contract of an approved project and open it for investment."""
        address = (contract_address or "").strip().lower()
        if not address.startswith("0x") or len(address) != 42:
            raise errors.ValidationError("Invalid contract address")
        try:
            int(address[2:], 16)
        except ValueError:
            raise errors.ValidationError("Invalid contract address")
        try:
            chain_id = int(chain_id if chain_id is not None else settings.DEFAULT_CHAIN_ID)
        except (TypeError, ValueError):
            raise errors.UnsupportedNetwork(f"Unsupported network: {chain_id}")
        if chain_id not in settings.CHAIN_NETWORKS:
            raise errors.UnsupportedNetwork(f"Unsupported network: {chain_id}")

        try:
            with transaction.atomic():
                try:
                    project = Project.objects.select_for_update().get(pk=project_id)
                except (Project.DoesNotExist, ValueError, DjangoValidationError):
                    raise errors.NotFound("Project not found")
                if project.creator_id != actor.pk and not _is_admin(actor):
                    raise errors.Forbidden("Only the project creator can deploy it")
                if project.status != ProjectStatus.APPROVED:
                    raise errors.Conflict(f"Project is {project.status}, not approved")
                if Project.objects.filter(contract_address=address).exclude(pk=project.pk).exists():
                    raise errors.Conflict("Contract address already bound to another project")
                project.contract_address = address
                project.chain_id = chain_id
                project.status = ProjectStatus.ACTIVE
                project.save()
        except IntegrityError:
            raise errors.Conflict("Contract address already bound to another project")

        logger.info(
            "contract bound", extra={"project_id": str(project.pk), "contract": address, "chain_id": chain_id}
        )
        return project
