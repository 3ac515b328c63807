"""Protocol error kinds.

Every error is terminal to the operation that raised it; the core never
retries.  ``LedgerSubmissionRejected`` with ``retryable=True`` is the single
case a caller may resolve by refreshing ledger state and resubmitting.
"""

from __future__ import annotations


class MintforgeError(RuntimeError):
    """Base class for all protocol errors."""


class TemplateNotFound(MintforgeError):
    """Raised when the blueprint has no validator for a template name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Validator not found: {name}")
        self.name = name


class DerivationInputInvalid(MintforgeError, ValueError):
    """Raised when parameters do not match a template's declared shape."""


class ResourceNotFound(MintforgeError):
    """Raised when an expected FactoryState / ProductState UTxO is missing."""


class DuplicateProductId(MintforgeError):
    """Raised when a ProductId is already present in the Factory's list."""

    def __init__(self, product_id: bytes) -> None:
        super().__init__(
            f"Product {product_id.hex()} already exists in this factory"
        )
        self.product_id = product_id


class SeedAlreadySpent(MintforgeError):
    """Raised when the one-shot seed of a Factory cannot be consumed."""

    def __init__(self, reference: str, reason: str = "seed output is spent") -> None:
        super().__init__(f"Seed {reference}: {reason}")
        self.reference = reference


class AuthorizationFailed(MintforgeError):
    """Raised when the owner's signature is missing or does not match."""


class LedgerSubmissionRejected(MintforgeError):
    """Raised by a ledger gateway when it refuses a transition.

    ``retryable`` is set when the rejection is a resource-contention loss
    (an input was consumed by a competing transition).
    """

    def __init__(self, reason: str, *, retryable: bool = False) -> None:
        super().__init__(reason)
        self.reason = reason
        self.retryable = retryable
