from decimal import Decimal

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from equitychain_backend import errors
from projects.models import Investment, Project, ProjectStatus
from users.models import Role

from .fakes import CONTRACT, investment_receipt, tx_hash, wallet

pytestmark = pytest.mark.django_db

PROJECT = {
    "name": "Vertical Farm",
    "description": "Hydroponic lettuce for the city",
    "category": "agriculture",
    "fundingGoal": "50000",
    "equityPercentage": "10",
    "minInvestment": "1000",
}


def test_health(client_for):
    response = client_for().get("/health")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "OK"


class TestAuth:

    def test_register_then_profile(self, client_for):
        response = client_for().post(
            "/api/auth/register",
            {"email": "ada@example.com", "walletAddress": wallet(), "firstName": "Ada", "role": "creator"},
            format="json",
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["user"]["role"] == "creator"

        client = client_for()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {body['data']['token']}")
        profile = client.get("/api/auth/profile").json()
        assert profile["data"]["user"]["email"] == "ada@example.com"

    def test_register_conflict(self, client_for, investor):
        response = client_for().post(
            "/api/auth/register", {"email": investor.email, "walletAddress": wallet()}, format="json"
        )

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "error": "conflict",
            "message": "User already exists with this email",
        }

    def test_register_validation(self, client_for):
        response = client_for().post("/api/auth/register", {"email": "x@example.com"}, format="json")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert "walletAddress" in response.json()["message"]

    def test_wallet_sign_in(self, client_for):
        account = Account.create()
        message = "Sign in to EquityChain"
        signature = Account.sign_message(encode_defunct(text=message), private_key=account.key).signature.hex()

        response = client_for().post(
            "/api/auth/wallet",
            {"walletAddress": account.address, "signature": signature, "message": message},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["walletAddress"] == account.address.lower()

    def test_missing_token(self, client_for):
        response = client_for().get("/api/users/profile")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_bad_token(self, client_for):
        client = client_for()
        client.credentials(HTTP_AUTHORIZATION="Bearer not.a.jwt")

        response = client.get("/api/users/kyc-status")

        assert response.status_code == 401

    def test_profile_update(self, client_for, investor):
        response = client_for(investor).put("/api/users/profile", {"firstName": "Grace"}, format="json")

        assert response.status_code == 200
        assert response.json()["data"]["user"]["firstName"] == "Grace"


class TestProjects:

    def test_creator_with_kyc_creates_project(self, client_for, creator):
        response = client_for(creator).post("/api/projects/", PROJECT, format="json")

        assert response.status_code == 201
        project = response.json()["data"]["project"]
        assert project["status"] == "pending"
        assert Decimal(project["fundingGoal"]) == Decimal("50000")
        assert Decimal(project["maxInvestment"]) == Decimal("50000")

    @pytest.mark.parametrize("role, kyc", [(Role.INVESTOR, True), (Role.CREATOR, False)])
    def test_create_project_forbidden(self, client_for, make_user, role, kyc):
        response = client_for(make_user(role, kyc=kyc)).post("/api/projects/", PROJECT, format="json")

        assert response.status_code == 403
        assert response.json()["error"] == "forbidden"

    def test_anonymous_cannot_create(self, client_for):
        assert client_for().post("/api/projects/", PROJECT, format="json").status_code == 401

    def test_list_paginates(self, client_for, active_project):
        body = client_for().get("/api/projects/", {"limit": 5}).json()

        assert [p["id"] for p in body["data"]] == [str(active_project.pk)]
        assert body["pagination"] == {"page": 1, "limit": 5, "total": 1, "totalPages": 1}

    @pytest.mark.parametrize("params", [{"limit": 101}, {"limit": 0}, {"page": 0}, {"page": "x"}])
    def test_bad_pagination(self, client_for, params):
        response = client_for().get("/api/projects/", params)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_unknown_project(self, client_for):
        response = client_for().get("/api/projects/3f1c2d9e-0000-4000-8000-000000000000")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "not_found", "message": "Project not found"}

    def test_by_contract_without_chain(self, client_for, gateway, active_project):
        response = client_for().get(f"/api/projects/contract/{CONTRACT}")

        assert response.status_code == 200
        assert response.json()["data"]["project"]["id"] == str(active_project.pk)
        assert response.json()["data"]["blockchainData"] is None

    def test_deploy_and_sync(self, client_for, gateway, creator, admin):
        project = client_for(creator).post("/api/projects/", PROJECT, format="json").json()["data"]["project"]
        client_for(admin).put(f"/api/admin/projects/{project['id']}/approve")
        address = "0x" + "0f" * 20

        response = client_for(creator).post(
            f"/api/projects/{project['id']}/deploy", {"contractAddress": address, "chainId": 1}, format="json"
        )
        assert response.status_code == 200
        assert response.json()["data"]["project"]["status"] == "active"

        gateway.set_funding(address, "3000", 2)
        synced = client_for(creator).post(f"/api/projects/{project['id']}/sync").json()["data"]["project"]
        assert Decimal(synced["currentFunding"]) == Decimal("3000")
        assert synced["investorCount"] == 2

    def test_sync_by_contract(self, client_for, gateway, investor, active_project):
        gateway.set_funding(CONTRACT, "1200", 3)

        response = client_for(investor).post(f"/api/projects/contract/{CONTRACT.upper().replace('0X', '0x')}/sync")

        assert response.status_code == 200
        assert response.json()["data"]["project"]["id"] == str(active_project.pk)
        assert response.json()["data"]["project"]["investorCount"] == 3
        assert client_for(investor).post(f"/api/projects/contract/{'0x' + '99' * 20}/sync").status_code == 404

    def test_sync_unreachable_chain(self, client_for, gateway, investor, active_project):
        response = client_for(investor).post(f"/api/projects/{active_project.pk}/sync")

        assert response.status_code == 503
        assert response.json()["error"] == "contract_unreachable"


class TestInvestments:

    def _submit(self, client, project, amount, tx):
        return client.post(
            "/api/investments/",
            {"projectId": str(project.pk), "amount": amount, "transactionHash": tx},
            format="json",
        )

    def test_confirmed_investment(self, client_for, gateway, investor, active_project):
        tx = tx_hash()
        gateway.receipts[tx] = investment_receipt(tx, CONTRACT, investor.profile.wallet_address, "5000", block_number=88)

        response = self._submit(client_for(investor), active_project, "5000", tx)

        assert response.status_code == 201
        investment = response.json()["data"]["investment"]
        assert investment["status"] == "confirmed"
        assert investment["blockNumber"] == 88
        assert investment["transactionHash"] == tx

    def test_pending_investment(self, client_for, gateway, investor, active_project):
        tx = tx_hash()
        gateway.receipts[tx] = errors.NetworkUnavailable()

        response = self._submit(client_for(investor), active_project, "5000", tx)

        assert response.status_code == 202
        assert response.json()["data"]["investment"]["status"] == "pending"
        assert response.json()["success"] is True
        assert response.json()["error"] == "verification_pending"

    def test_failed_investment(self, client_for, gateway, investor, active_project):
        tx = tx_hash()
        gateway.receipts[tx] = investment_receipt(tx, CONTRACT, investor.profile.wallet_address, "5000", success=False)

        response = self._submit(client_for(investor), active_project, "5000", tx)

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "verification_failed"
        assert body["data"]["investment"]["failureReason"] == "reverted"

    def test_duplicate_hash(self, client_for, gateway, investor, make_user, active_project):
        tx = tx_hash()
        gateway.receipts[tx] = investment_receipt(tx, CONTRACT, investor.profile.wallet_address, "5000")
        self._submit(client_for(investor), active_project, "5000", tx)

        response = self._submit(client_for(make_user()), active_project, "5000", tx)

        assert response.status_code == 409
        assert Investment.objects.count() == 1

    def test_creator_cannot_invest(self, client_for, gateway, creator, active_project):
        assert self._submit(client_for(creator), active_project, "5000", tx_hash()).status_code == 403

    def test_portfolio_and_stats(self, client_for, gateway, investor, active_project):
        tx = tx_hash()
        gateway.receipts[tx] = investment_receipt(tx, CONTRACT, investor.profile.wallet_address, "5000")
        client = client_for(investor)
        self._submit(client, active_project, "5000", tx)

        stats = client.get("/api/investments/stats").json()["data"]["stats"]
        portfolio = client.get("/api/investments/portfolio").json()["data"]
        mine = client.get("/api/investments/mine").json()

        assert stats["totalInvested"] == "5000"
        assert len(portfolio["recentInvestments"]) == 1
        assert mine["pagination"]["total"] == 1

    def test_manual_verify(self, client_for, gateway, investor, make_user, active_project):
        tx = tx_hash()
        gateway.receipts[tx] = errors.NetworkUnavailable()
        client = client_for(investor)
        investment_id = self._submit(client, active_project, "5000", tx).json()["data"]["investment"]["id"]
        gateway.receipts[tx] = investment_receipt(tx, CONTRACT, investor.profile.wallet_address, "5000")

        assert client_for(make_user()).post(f"/api/investments/{investment_id}/verify").status_code == 403

        response = client.post(f"/api/investments/{investment_id}/verify")

        assert response.status_code == 200
        assert response.json()["data"]["investment"]["status"] == "confirmed"

    def test_transaction_check(self, client_for, gateway, investor):
        tx = tx_hash()
        gateway.receipts[tx] = investment_receipt(tx, CONTRACT, investor.profile.wallet_address, "5000")

        response = client_for(investor).post(
            "/api/investments/verify", {"transactionHash": tx, "chainId": 1}, format="json"
        )

        assert response.json()["data"]["transaction"]["verified"] is True


class TestAdmin:

    def test_non_admin_is_forbidden(self, client_for, investor):
        response = client_for(investor).get("/api/admin/stats")

        assert response.status_code == 403

    def test_pending_projects_and_reject(self, client_for, creator, admin):
        client_for(creator).post("/api/projects/", PROJECT, format="json")
        client = client_for(admin)

        pending = client.get("/api/admin/projects/pending").json()["data"]
        assert len(pending) == 1

        response = client.put(f"/api/admin/projects/{pending[0]['id']}/reject", {}, format="json")
        assert response.status_code == 400

        response = client.put(
            f"/api/admin/projects/{pending[0]['id']}/reject", {"reason": "No business plan"}, format="json"
        )
        assert response.json()["data"]["project"]["status"] == "rejected"
        assert Project.objects.get().status == ProjectStatus.REJECTED

    def test_kyc_approval(self, client_for, make_user, admin):
        user = make_user(kyc=False)
        client = client_for(admin)

        assert client.get("/api/admin/kyc/pending").json()["pagination"]["total"] == 1

        response = client.put(f"/api/admin/users/{user.pk}/kyc/approve")

        assert response.json()["data"]["user"]["isKycVerified"] is True

    def test_update_user_flags(self, client_for, investor, admin):
        response = client_for(admin).put(
            f"/api/admin/users/{investor.pk}", {"isAccredited": True, "role": "creator"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["data"]["user"]["isAccredited"] is True
        assert response.json()["data"]["user"]["role"] == "creator"

    def test_stats_and_health(self, client_for, gateway, admin, active_project):
        client = client_for(admin)

        stats = client.get("/api/admin/stats").json()["data"]["stats"]
        health = client.get("/api/admin/health").json()["data"]

        assert stats["activeProjects"] == 1
        assert health["database"] == "connected"


class TestBlockchainPassthrough:

    def test_networks(self, client_for, gateway):
        networks = client_for().get("/api/blockchain/networks").json()["data"]["networks"]

        assert {n["chainId"] for n in networks} == {1, 137}

    def test_transaction_verify(self, client_for, gateway):
        response = client_for().get(f"/api/blockchain/transactions/{tx_hash()}/verify")

        body = response.json()["data"]["transaction"]
        assert body["verified"] is False
        assert body["reason"] == "not_found"
        assert gateway.receipt_calls == [(1, response.json()["data"]["transactionHash"], False)]

    def test_transaction_verify_rejects_malformed_hash(self, client_for, gateway):
        response = client_for().get("/api/blockchain/transactions/0x1234/verify")

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert gateway.receipt_calls == []

    def test_project_details_unreachable(self, client_for, gateway):
        response = client_for().get(f"/api/blockchain/projects/{CONTRACT}")

        assert response.status_code == 503
        assert response.json()["error"] == "contract_unreachable"
