import uuid

from django.db import models
from django.db.models import Q
from django.conf import settings


def _amount(**kwargs):
    return models.DecimalField(max_digits=36, decimal_places=18, **kwargs)


class ProjectStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    ACTIVE = "active", "Active"
    SUCCESSFUL = "successful", "Successful"
    FAILED = "failed", "Failed"


class Project(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contract_address = models.CharField(max_length=42, unique=True, null=True, blank=True)
    chain_id = models.IntegerField(null=True, blank=True)
    creator = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="projects")

    name = models.CharField(max_length=200)
    symbol = models.CharField(max_length=50, blank=True, default="")
    description = models.TextField()
    category = models.CharField(max_length=100)
    team_size = models.IntegerField(null=True, blank=True)
    website = models.URLField(blank=True, default="")
    business_plan = models.TextField(blank=True, default="")

    funding_goal = _amount()
    equity_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    min_investment = _amount()
    max_investment = _amount()
    funding_duration = models.PositiveIntegerField(default=30)  # days

    status = models.CharField(max_length=16, choices=ProjectStatus.choices, default=ProjectStatus.PENDING)
    is_approved = models.BooleanField(default=False)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    rejection_reason = models.TextField(blank=True, default="")

    # Mirrored from chain; written only by blockchain.reconciliation
    current_funding = _amount(default=0)
    investor_count = models.IntegerField(default=0)
    funding_active = models.BooleanField(default=False)
    funding_successful = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "category"], name="projects_pr_status_4c8f2e_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.symbol})"


class InvestmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    FAILED = "failed", "Failed"


class Investment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    investor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="investments")
    project = models.ForeignKey(Project, on_delete=models.PROTECT, related_name="investments")
    amount = _amount()
    equity_tokens = _amount(null=True, blank=True)
    chain_id = models.IntegerField()
    tx_hash = models.CharField(max_length=66)
    block_number = models.BigIntegerField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=InvestmentStatus.choices, default=InvestmentStatus.PENDING)
    failure_reason = models.CharField(max_length=32, blank=True, default="")
    verification_attempts = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            # one live claim per chain transaction
            models.UniqueConstraint(
                fields=["tx_hash"],
                condition=~Q(status=InvestmentStatus.FAILED),
                name="investment_unique_live_tx_hash",
            ),
            models.CheckConstraint(
                condition=~Q(status=InvestmentStatus.CONFIRMED)
                | Q(confirmed_at__isnull=False, block_number__isnull=False),
                name="investment_confirmed_has_block",
            ),
        ]
        indexes = [
            models.Index(fields=["tx_hash"], name="projects_in_tx_hash_9a1d3b_idx"),
            models.Index(fields=["status"], name="projects_in_status_e27c5a_idx"),
        ]

    def __str__(self):
        return f"{self.investor.username} invested {self.amount} in {self.project.name}"
