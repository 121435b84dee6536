import uuid

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


PROJECT_STATUSES = [
    ("pending", "Pending"),
    ("approved", "Approved"),
    ("rejected", "Rejected"),
    ("active", "Active"),
    ("successful", "Successful"),
    ("failed", "Failed"),
]
INVESTMENT_STATUSES = [("pending", "Pending"), ("confirmed", "Confirmed"), ("failed", "Failed")]


def amount(**kwargs):
    return models.DecimalField(decimal_places=18, max_digits=36, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("contract_address", models.CharField(blank=True, max_length=42, null=True, unique=True)),
                ("chain_id", models.IntegerField(blank=True, null=True)),
                ("name", models.CharField(max_length=200)),
                ("symbol", models.CharField(blank=True, default="", max_length=50)),
                ("description", models.TextField()),
                ("category", models.CharField(max_length=100)),
                ("team_size", models.IntegerField(blank=True, null=True)),
                ("website", models.URLField(blank=True, default="")),
                ("business_plan", models.TextField(blank=True, default="")),
                ("funding_goal", amount()),
                ("equity_percentage", models.DecimalField(decimal_places=2, max_digits=5)),
                ("min_investment", amount()),
                ("max_investment", amount()),
                ("funding_duration", models.PositiveIntegerField(default=30)),
                ("status", models.CharField(choices=PROJECT_STATUSES, default="pending", max_length=16)),
                ("is_approved", models.BooleanField(default=False)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("current_funding", amount(default=0)),
                ("investor_count", models.IntegerField(default=0)),
                ("funding_active", models.BooleanField(default=False)),
                ("funding_successful", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "approved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "creator",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="projects",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status", "category"], name="projects_pr_status_4c8f2e_idx")],
            },
        ),
        migrations.CreateModel(
            name="Investment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", amount()),
                ("equity_tokens", amount(blank=True, null=True)),
                ("chain_id", models.IntegerField()),
                ("tx_hash", models.CharField(max_length=66)),
                ("block_number", models.BigIntegerField(blank=True, null=True)),
                ("status", models.CharField(choices=INVESTMENT_STATUSES, default="pending", max_length=16)),
                ("failure_reason", models.CharField(blank=True, default="", max_length=32)),
                ("verification_attempts", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "investor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="investments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "project",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="investments",
                        to="projects.project",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["tx_hash"], name="projects_in_tx_hash_9a1d3b_idx"),
                    models.Index(fields=["status"], name="projects_in_status_e27c5a_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "failed"), _negated=True),
                        fields=("tx_hash",),
                        name="investment_unique_live_tx_hash",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("status", "confirmed"), _negated=True),
                            models.Q(("block_number__isnull", False), ("confirmed_at__isnull", False)),
                            _connector="OR",
                        ),
                        name="investment_confirmed_has_block",
                    ),
                ],
            },
        ),
    ]
