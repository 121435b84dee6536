"""Decide whether a chain transaction substantiates an investment claim.

A successful receipt alone proves nothing about the claim: any valid hash
could be attached to a fabricated investment. When a contract address is
given, the receipt must also carry an ``InvestmentMade`` event from that
contract for the claimed investor and amount.
"""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from equitychain_backend import errors

logger = logging.getLogger(__name__)

NOT_FOUND = "not_found"
REVERTED = "reverted"
MISMATCH = "mismatch"
PENDING = "pending"

DEFINITIVE_REASONS = (NOT_FOUND, REVERTED, MISMATCH)


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    block_number: int | None = None
    reason: str | None = None
    equity_tokens: Decimal | None = None
    receipt: object = None

    @property
    def definitive(self):
        """True when the claim can never verify (safe to mark failed)."""
        return not self.ok and self.reason in DEFINITIVE_REASONS

    @property
    def pending(self):
        return self.reason == PENDING

    def as_dict(self):
        receipt = self.receipt
        return {
            "verified": self.ok,
            "status": "pending" if self.pending else ("success" if self.ok else "failed"),
            "reason": self.reason,
            "blockNumber": self.block_number,
            "gasUsed": receipt.gas_used if receipt else None,
            "effectiveGasPrice": receipt.effective_gas_price if receipt else None,
            "investments": [
                {
                    "contractAddress": event.contract_address,
                    "investor": event.investor,
                    "amount": str(event.amount),
                    "tokens": str(event.tokens),
                }
                for event in (receipt.investments if receipt else ())
            ],
        }


class VerificationService:

    def __init__(self, gateway, attempts=None, backoff=None, sleep=time.sleep, wait=True):
        self.gateway = gateway
        self.attempts = max(1, attempts if attempts is not None else settings.VERIFICATION_ATTEMPTS)
        self.backoff = backoff if backoff is not None else settings.VERIFICATION_BACKOFF
        self.sleep = sleep
        self.wait = wait

    @classmethod
    def single_lookup(cls, gateway):
        """One non-waiting receipt lookup, for anonymous status checks."""
        return cls(gateway, attempts=1, backoff=0, wait=False)

    def fetch_receipt(self, chain_id, tx_hash):
        """Receipt lookup retried with exponential backoff while it is not found."""
        for attempt in range(self.attempts):
            try:
                return self.gateway.get_receipt(chain_id, tx_hash, wait=self.wait)
            except errors.ReceiptNotFound:
                if attempt + 1 == self.attempts:
                    raise
                delay = self.backoff * (2 ** attempt)
                logger.info(
                    "receipt not found, retrying",
                    extra={"chain_id": chain_id, "tx_hash": tx_hash, "attempt": attempt + 1, "delay": delay},
                )
                self.sleep(delay)

    def verify(self, chain_id, tx_hash, expected_amount=None, contract_address=None, investor_address=None):
        try:
            receipt = self.fetch_receipt(chain_id, tx_hash)
        except errors.ReceiptNotFound:
            logger.info("transaction not found", extra={"chain_id": chain_id, "tx_hash": tx_hash})
            return VerificationResult(ok=False, reason=NOT_FOUND)
        except errors.NetworkUnavailable as e:
            logger.warning(
                "verification deferred", extra={"chain_id": chain_id, "tx_hash": tx_hash, "error": e.code}
            )
            return VerificationResult(ok=False, reason=PENDING)

        if not receipt.success:
            logger.info("transaction reverted", extra={"chain_id": chain_id, "tx_hash": tx_hash})
            return VerificationResult(ok=False, block_number=receipt.block_number, reason=REVERTED, receipt=receipt)

        equity_tokens = None
        if contract_address is not None:
            event = self.match_investment(receipt, contract_address, expected_amount, investor_address)
            if event is None:
                logger.warning(
                    "transaction does not match claim",
                    extra={"chain_id": chain_id, "tx_hash": tx_hash, "contract": contract_address},
                )
                return VerificationResult(ok=False, block_number=receipt.block_number, reason=MISMATCH, receipt=receipt)
            equity_tokens = event.tokens

        return VerificationResult(
            ok=True, block_number=receipt.block_number, equity_tokens=equity_tokens, receipt=receipt
        )

    @staticmethod
    def match_investment(receipt, contract_address, expected_amount=None, investor_address=None):
        contract_address = contract_address.lower()
        expected = Decimal(expected_amount) if expected_amount is not None else None
        for event in receipt.investments:
            if event.contract_address != contract_address:
                continue
            if investor_address is not None and event.investor != investor_address.lower():
                continue
            if expected is not None and event.amount != expected:
                continue
            return event
        return None
