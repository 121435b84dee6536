"""Error taxonomy shared by services and the HTTP layer.

Each error carries a stable ``code`` that clients can switch on and the HTTP
status the API answers with. Services raise these; raw ORM and web3 errors are
translated before they leave a service.
"""


class DomainError(Exception):
    code = "error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(DomainError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class Conflict(DomainError):
    code = "conflict"
    status_code = 409
    default_message = "Resource already exists"


class ValidationError(DomainError):
    code = "validation_error"
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(DomainError):
    code = "unauthorized"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(DomainError):
    code = "forbidden"
    status_code = 403
    default_message = "Insufficient permissions"


class VerificationFailed(DomainError):
    code = "verification_failed"
    status_code = 422
    default_message = "Transaction verification failed"


class VerificationPending(DomainError):
    code = "verification_pending"
    status_code = 202
    default_message = "Transaction could not be verified yet"


class NoContractBound(DomainError):
    code = "no_contract_bound"
    status_code = 409
    default_message = "Project has no contract address"


# Chain gateway errors

class NetworkUnavailable(DomainError):
    code = "network_unavailable"
    status_code = 503
    default_message = "Blockchain network unavailable"


class UnsupportedNetwork(NetworkUnavailable):
    code = "unsupported_network"
    status_code = 400
    default_message = "Unsupported network"


class ContractUnreachable(NetworkUnavailable):
    code = "contract_unreachable"
    status_code = 503
    default_message = "Contract call failed"


class ReceiptNotFound(NotFound):
    code = "transaction_not_found"
    default_message = "Transaction not found"
