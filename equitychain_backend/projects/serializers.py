# projects/serializers.py
from rest_framework import serializers

from .models import Investment, Project


class ProjectSerializer(serializers.ModelSerializer):
    contractAddress = serializers.CharField(source='contract_address', read_only=True)
    chainId = serializers.IntegerField(source='chain_id', read_only=True)
    creatorId = serializers.IntegerField(source='creator_id', read_only=True)
    creatorName = serializers.SerializerMethodField()
    teamSize = serializers.IntegerField(source='team_size', read_only=True)
    businessPlan = serializers.CharField(source='business_plan', read_only=True)
    fundingGoal = serializers.DecimalField(source='funding_goal', max_digits=36, decimal_places=18, read_only=True)
    equityPercentage = serializers.DecimalField(
        source='equity_percentage', max_digits=5, decimal_places=2, read_only=True
    )
    minInvestment = serializers.DecimalField(source='min_investment', max_digits=36, decimal_places=18, read_only=True)
    maxInvestment = serializers.DecimalField(source='max_investment', max_digits=36, decimal_places=18, read_only=True)
    fundingDuration = serializers.IntegerField(source='funding_duration', read_only=True)
    isApproved = serializers.BooleanField(source='is_approved', read_only=True)
    approvedAt = serializers.DateTimeField(source='approved_at', read_only=True)
    rejectionReason = serializers.CharField(source='rejection_reason', read_only=True)
    currentFunding = serializers.DecimalField(
        source='current_funding', max_digits=36, decimal_places=18, read_only=True
    )
    investorCount = serializers.IntegerField(source='investor_count', read_only=True)
    fundingActive = serializers.BooleanField(source='funding_active', read_only=True)
    fundingSuccessful = serializers.BooleanField(source='funding_successful', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Project
        fields = [
            'id', 'contractAddress', 'chainId', 'creatorId', 'creatorName',
            'name', 'symbol', 'description', 'category', 'teamSize', 'website', 'businessPlan',
            'fundingGoal', 'equityPercentage', 'minInvestment', 'maxInvestment', 'fundingDuration',
            'status', 'isApproved', 'approvedAt', 'rejectionReason',
            'currentFunding', 'investorCount', 'fundingActive', 'fundingSuccessful',
            'createdAt', 'updatedAt',
        ]

    def get_creatorName(self, obj):
        return obj.creator.get_full_name() or obj.creator.username


class InvestmentSerializer(serializers.ModelSerializer):
    projectId = serializers.UUIDField(source='project_id', read_only=True)
    projectName = serializers.CharField(source='project.name', read_only=True)
    investorId = serializers.IntegerField(source='investor_id', read_only=True)
    investorWallet = serializers.CharField(source='investor.profile.wallet_address', read_only=True)
    amount = serializers.DecimalField(max_digits=36, decimal_places=18, read_only=True)
    equityTokens = serializers.DecimalField(source='equity_tokens', max_digits=36, decimal_places=18, read_only=True)
    chainId = serializers.IntegerField(source='chain_id', read_only=True)
    transactionHash = serializers.CharField(source='tx_hash', read_only=True)
    blockNumber = serializers.IntegerField(source='block_number', read_only=True)
    failureReason = serializers.CharField(source='failure_reason', read_only=True)
    verificationAttempts = serializers.IntegerField(source='verification_attempts', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    confirmedAt = serializers.DateTimeField(source='confirmed_at', read_only=True)

    class Meta:
        model = Investment
        fields = [
            'id', 'projectId', 'projectName', 'investorId', 'investorWallet', 'amount', 'equityTokens',
            'chainId', 'transactionHash', 'blockNumber', 'status', 'failureReason', 'verificationAttempts',
            'createdAt', 'confirmedAt',
        ]


# --- Input ---------------------------------------------------------------------

class ProjectCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    symbol = serializers.CharField(max_length=50, required=False, allow_blank=True)
    description = serializers.CharField()
    category = serializers.CharField(max_length=100)
    teamSize = serializers.IntegerField(required=False, min_value=1)
    website = serializers.URLField(required=False, allow_blank=True)
    businessPlan = serializers.CharField(required=False, allow_blank=True)
    # amounts stay strings; the service parses and range-checks them
    fundingGoal = serializers.CharField()
    equityPercentage = serializers.CharField()
    minInvestment = serializers.CharField()
    maxInvestment = serializers.CharField(required=False, allow_blank=True)
    fundingDuration = serializers.IntegerField(required=False, min_value=1)


class ContractBindSerializer(serializers.Serializer):
    contractAddress = serializers.RegexField(
        r"^0x[0-9a-fA-F]{40}$", error_messages={"invalid": "Invalid contract address"}
    )
    chainId = serializers.IntegerField(required=False)


class ProjectRejectSerializer(serializers.Serializer):
    reason = serializers.CharField()


class InvestmentCreateSerializer(serializers.Serializer):
    projectId = serializers.CharField()
    amount = serializers.CharField()
    transactionHash = serializers.RegexField(
        r"^0x[0-9a-fA-F]{64}$", error_messages={"invalid": "Invalid transaction hash"}
    )
    chainId = serializers.IntegerField(required=False)


class TransactionCheckSerializer(serializers.Serializer):
    transactionHash = serializers.RegexField(
        r"^0x[0-9a-fA-F]{64}$", error_messages={"invalid": "Invalid transaction hash"}
    )
    chainId = serializers.IntegerField(required=False)
