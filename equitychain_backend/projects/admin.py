from django.contrib import admin

from .models import Investment, Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("name", "symbol", "creator", "status", "contract_address", "chain_id", "current_funding")
    list_filter = ("status", "category", "chain_id")
    search_fields = ("name", "symbol", "contract_address")
    # mirrored from chain by reconciliation
    readonly_fields = ("current_funding", "investor_count", "funding_active", "funding_successful")


@admin.register(Investment)
class InvestmentAdmin(admin.ModelAdmin):
    list_display = ("tx_hash", "investor", "project", "amount", "status", "block_number", "created_at")
    list_filter = ("status", "chain_id")
    search_fields = ("tx_hash", "investor__username")
