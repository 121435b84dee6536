"""JSON-RPC access to the deployed crowdfunding contracts.

The gateway is a stateless accessor: it keeps one web3 client per configured
network but never caches chain state, never retries and never signs. Every
web3/transport failure is translated into the ``equitychain_backend.errors``
taxonomy so callers can tell transient failures from definitive answers.
"""

import json
import logging
import math
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Protocol

import requests
from django.conf import settings
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound, Web3Exception

from equitychain_backend import errors

logger = logging.getLogger(__name__)

ABI_DIR = os.path.join(os.path.dirname(__file__), "abi")


def load_abi(name):
    with open(os.path.join(ABI_DIR, f"{name}.json")) as f:
        artifact = json.load(f)
    return artifact.get("abi", artifact) if isinstance(artifact, dict) else artifact


EQUITY_TOKEN_ABI = load_abi("EquityToken")
PROJECT_FACTORY_ABI = load_abi("ProjectFactory")

EQUITY_TOKEN_QUERIES = frozenset(
    item["name"] for item in EQUITY_TOKEN_ABI
    if item["type"] == "function" and item.get("stateMutability") in ("view", "pure")
)
INVESTMENT_MADE_TOPIC = Web3.keccak(text="InvestmentMade(address,uint256,uint256)")

# RPC failures that say nothing about the transaction or contract itself
TRANSPORT_ERRORS = (requests.exceptions.RequestException, ConnectionError, TimeoutError)


@dataclass(frozen=True)
class InvestmentEvent:
    contract_address: str
    investor: str
    amount: Decimal
    tokens: Decimal
    log_index: int


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    success: bool
    block_number: int
    gas_used: int
    effective_gas_price: int | None = None
    investments: tuple = ()


@dataclass(frozen=True)
class FundingState:
    current_funding: Decimal
    investor_count: int
    funding_active: bool
    funding_successful: bool


class ReceiptReader(Protocol):
    def get_receipt(self, chain_id: int, tx_hash: str, wait: bool = True) -> Receipt: ...


class FundingReader(Protocol):
    def read_funding_state(self, chain_id: int, contract_address: str) -> FundingState: ...


def ether(value) -> Decimal:
    return Decimal(Web3.from_wei(int(value), "ether"))


def checksum(address, label="contract"):
    try:
        return Web3.to_checksum_address(address)
    except (TypeError, ValueError):
        raise errors.ValidationError(f"Invalid {label} address: {address}")


def _hex(value):
    return value.lower() if isinstance(value, str) else "0x" + bytes(value).hex()


class ChainGateway:

    def __init__(self, networks, read_timeout=10, receipt_timeout=20, receipt_poll=1.0):
        self.networks = networks
        self.read_timeout = read_timeout
        self.receipt_timeout = receipt_timeout
        self.receipt_poll = receipt_poll
        self._clients = {}
        self._decoder = Web3().eth.contract(abi=EQUITY_TOKEN_ABI)

    @classmethod
    def from_settings(cls):
        return cls(
            settings.CHAIN_NETWORKS,
            read_timeout=settings.CHAIN_READ_TIMEOUT,
            receipt_timeout=settings.CHAIN_RECEIPT_TIMEOUT,
            receipt_poll=settings.CHAIN_RECEIPT_POLL,
        )

    def network(self, chain_id):
        try:
            chain_id = int(chain_id)
        except (TypeError, ValueError):
            raise errors.UnsupportedNetwork(f"Unsupported network: {chain_id}")
        network = self.networks.get(chain_id)
        if not network or not network.get("rpc_url"):
            raise errors.UnsupportedNetwork(f"Provider not configured for chain ID: {chain_id}")
        return chain_id, network

    def _client(self, chain_id):
        chain_id, network = self.network(chain_id)
        client = self._clients.get(chain_id)
        if client is None:
            client = Web3(Web3.HTTPProvider(network["rpc_url"], request_kwargs={"timeout": self.read_timeout}))
            self._clients[chain_id] = client
        return client

    def _contract(self, chain_id, address, abi):
        w3 = self._client(chain_id)
        return w3.eth.contract(address=checksum(address), abi=abi)

    def _call(self, chain_id, address, fn):
        try:
            return fn.call()
        except TRANSPORT_ERRORS + (Web3Exception, ValueError) as e:
            logger.warning(
                "contract call failed",
                extra={"chain_id": chain_id, "contract": address, "function": fn.fn_name, "error": str(e)},
            )
            raise errors.ContractUnreachable(f"Contract call {fn.fn_name} failed on chain {chain_id}")

    # --- Receipts -------------------------------------------------------------

    def get_receipt(self, chain_id, tx_hash, wait=True):
        """Receipt of ``tx_hash``, polled for up to ``receipt_timeout`` unless ``wait`` is false."""
        w3 = self._client(chain_id)
        try:
            if wait:
                raw = w3.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self.receipt_timeout, poll_latency=self.receipt_poll
                )
            else:
                raw = w3.eth.get_transaction_receipt(tx_hash)
        except (TimeExhausted, TransactionNotFound):
            raise errors.ReceiptNotFound(f"Transaction {tx_hash} not found")
        except TRANSPORT_ERRORS + (Web3Exception, ValueError) as e:
            logger.warning("receipt lookup failed", extra={"chain_id": chain_id, "tx_hash": tx_hash, "error": str(e)})
            raise errors.NetworkUnavailable(f"Network {chain_id} unavailable")
        return self.to_receipt(raw)

    def to_receipt(self, raw):
        return Receipt(
            tx_hash=_hex(raw["transactionHash"]),
            success=raw.get("status") == 1,
            block_number=raw["blockNumber"],
            gas_used=raw.get("gasUsed", 0),
            effective_gas_price=raw.get("effectiveGasPrice"),
            investments=tuple(self.decode_investments(raw.get("logs") or [])),
        )

    def decode_investments(self, logs):
        for log in logs:
            topics = log.get("topics") or []
            if not topics or HexBytes(topics[0]) != INVESTMENT_MADE_TOPIC:
                continue
            try:
                ev = self._decoder.events.InvestmentMade().process_log(log)
            except Exception as e:
                logger.warning("undecodable InvestmentMade log", extra={"log_index": log.get("logIndex"), "error": str(e)})
                continue
            yield InvestmentEvent(
                contract_address=ev["address"].lower(),
                investor=ev["args"]["investor"].lower(),
                amount=ether(ev["args"]["amount"]),
                tokens=ether(ev["args"]["tokens"]),
                log_index=ev["logIndex"],
            )

    # --- Contract state -------------------------------------------------------

    def read_contract_state(self, chain_id, contract_address, query, *args):
        if query not in EQUITY_TOKEN_QUERIES:
            raise errors.ValidationError(f"Unknown contract query: {query}")
        contract = self._contract(chain_id, contract_address, EQUITY_TOKEN_ABI)
        return self._call(chain_id, contract_address, getattr(contract.functions, query)(*args))

    def read_funding_state(self, chain_id, contract_address):
        raised, _goal, _percentage = self.read_contract_state(chain_id, contract_address, "getFundingProgress")
        return FundingState(
            current_funding=ether(raised),
            investor_count=int(self.read_contract_state(chain_id, contract_address, "getInvestorCount")),
            funding_active=bool(self.read_contract_state(chain_id, contract_address, "fundingActive")),
            funding_successful=bool(self.read_contract_state(chain_id, contract_address, "fundingSuccessful")),
        )

    def _factory(self, chain_id):
        chain_id, network = self.network(chain_id)
        if not network.get("factory_address"):
            raise errors.UnsupportedNetwork(f"Factory contract not configured for chain ID: {chain_id}")
        return self._contract(chain_id, network["factory_address"], PROJECT_FACTORY_ABI)

    def get_project_details(self, chain_id, contract_address):
        factory = self._factory(chain_id)
        info = self._call(chain_id, contract_address, factory.functions.projects(checksum(contract_address)))
        creator, name, category, funding_goal, equity_percentage, is_active, is_approved, created_at = info

        def read(query):
            return self.read_contract_state(chain_id, contract_address, query)

        raised, _goal, percentage = read("getFundingProgress")
        return {
            "contractAddress": contract_address.lower(),
            "name": name,
            "description": read("projectDescription"),
            "category": category,
            "creator": creator.lower(),
            "fundingGoal": str(ether(funding_goal)),
            "currentFunding": str(ether(raised)),
            "fundingPercentage": int(percentage),
            "equityPercentage": int(equity_percentage),
            "investors": int(read("getInvestorCount")),
            "daysLeft": math.ceil(int(read("getTimeRemaining")) / (24 * 60 * 60)),
            "minInvestment": str(ether(read("minInvestment"))),
            "maxInvestment": str(ether(read("maxInvestment"))),
            "tokenPrice": str(ether(read("tokenPrice"))),
            "fundingActive": bool(read("fundingActive")),
            "fundingSuccessful": bool(read("fundingSuccessful")),
            "isActive": bool(is_active),
            "isApproved": bool(is_approved),
            "createdAt": datetime.fromtimestamp(int(created_at), tz=timezone.utc).isoformat(),
        }

    def list_network_projects(self, chain_id):
        factory = self._factory(chain_id)
        addresses = self._call(chain_id, factory.address, factory.functions.getApprovedProjects())

        projects = []
        for address in addresses:
            try:
                projects.append(self.get_project_details(chain_id, address))
            except errors.NetworkUnavailable as e:
                logger.error("skipping project", extra={"chain_id": chain_id, "contract": address, "error": e.message})
        return projects

    def get_investor_data(self, chain_id, project_address, investor_address):
        investor = checksum(investor_address, "investor")
        investment, tokens, timestamp, is_active = self.read_contract_state(
            chain_id, project_address, "investors", investor
        )
        balance = self.read_contract_state(chain_id, project_address, "balanceOf", investor)
        return {
            "investment": str(ether(investment)),
            "tokens": str(ether(tokens)),
            "tokenBalance": str(ether(balance)),
            "timestamp": datetime.fromtimestamp(int(timestamp), tz=timezone.utc).isoformat(),
            "isActive": bool(is_active),
        }

    def supported_networks(self):
        return [
            {
                "chainId": chain_id,
                "name": network["name"],
                "currency": network["currency"],
                "configured": bool(network.get("rpc_url")),
            }
            for chain_id, network in self.networks.items()
        ]


@lru_cache(maxsize=1)
def get_gateway():
    return ChainGateway.from_settings()
