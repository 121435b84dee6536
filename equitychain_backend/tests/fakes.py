import itertools
import time
from decimal import Decimal

from blockchain.gateway import FundingState, InvestmentEvent, Receipt
from equitychain_backend import errors

CONTRACT = "0x" + "ab" * 20

_seq = itertools.count(1)


def wallet(n=None):
    return "0x" + format(n if n is not None else next(_seq), "040x")


def tx_hash(n=None):
    return "0x" + format(n if n is not None else next(_seq), "064x")


NETWORKS = {
    1: {"name": "Ethereum Mainnet", "currency": "ETH", "rpc_url": "http://node.invalid", "factory_address": ""},
    137: {"name": "Polygon Mainnet", "currency": "MATIC", "rpc_url": "", "factory_address": ""},
}


def investment_receipt(tx_hash, contract, investor, amount, tokens=None, block_number=1234, success=True):
    event = InvestmentEvent(
        contract_address=contract.lower(),
        investor=investor.lower(),
        amount=Decimal(amount),
        tokens=Decimal(tokens if tokens is not None else amount),
        log_index=0,
    )
    return Receipt(
        tx_hash=tx_hash.lower(),
        success=success,
        block_number=block_number,
        gas_used=21000,
        investments=(event,) if success else (),
    )


class FakeGateway:
    """In-memory chain. Receipts and funding states are keyed by hash / contract.

    A value may be an exception instance (raised) or a list of outcomes that
    are consumed one per call, the last one repeating.
    """

    def __init__(self):
        self.networks = NETWORKS
        self.receipts = {}
        self.funding = {}
        self.project_details = {}
        self.receipt_calls = []
        self.funding_calls = []
        self.funding_delays = {}

    @staticmethod
    def _resolve(outcomes):
        outcome = outcomes.pop(0) if isinstance(outcomes, list) and len(outcomes) > 1 else outcomes
        if isinstance(outcome, list):
            outcome = outcome[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get_receipt(self, chain_id, tx_hash, wait=True):
        self.receipt_calls.append((chain_id, tx_hash, wait))
        if tx_hash.lower() not in self.receipts:
            raise errors.ReceiptNotFound(f"Transaction {tx_hash} not found")
        return self._resolve(self.receipts[tx_hash.lower()])

    def read_funding_state(self, chain_id, contract_address):
        self.funding_calls.append((chain_id, contract_address))
        time.sleep(self.funding_delays.get(contract_address.lower(), 0))
        if contract_address.lower() not in self.funding:
            raise errors.ContractUnreachable(f"Contract call getFundingProgress failed on chain {chain_id}")
        return self._resolve(self.funding[contract_address.lower()])

    def set_funding(self, contract, current_funding, investor_count, active=True, successful=False):
        self.funding[contract.lower()] = FundingState(
            current_funding=Decimal(current_funding),
            investor_count=investor_count,
            funding_active=active,
            funding_successful=successful,
        )

    def get_project_details(self, chain_id, contract_address):
        if contract_address.lower() not in self.project_details:
            raise errors.ContractUnreachable("Contract call projects failed")
        return self.project_details[contract_address.lower()]

    def list_network_projects(self, chain_id):
        return list(self.project_details.values())

    def get_investor_data(self, chain_id, project_address, investor_address):
        return {"investment": "0", "tokens": "0", "tokenBalance": "0", "isActive": False}

    def supported_networks(self):
        return [
            {"chainId": chain_id, "name": n["name"], "currency": n["currency"], "configured": bool(n["rpc_url"])}
            for chain_id, n in self.networks.items()
        ]
