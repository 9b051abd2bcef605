"""Error taxonomy for the BlindPool client core.

Every error is scoped to the operation that raised it; none of them leave
previously materialized state modified.
"""

from typing import Optional


class BlindPoolError(Exception):
    """Base exception for the BlindPool client."""
    pass


class InvalidInput(BlindPoolError):
    """Malformed or out-of-range user-supplied value, reported per field."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class InvalidPrice(InvalidInput):
    """Price string that cannot be encoded as a positive Q96 value."""

    def __init__(self, message: str, field: str = "price"):
        super().__init__(field, message)


class EncodingRangeExceeded(BlindPoolError):
    """Scaled confidential-path value does not fit the encrypted integer width."""

    def __init__(self, field: str, value: int, maximum: int):
        super().__init__(f"{field}: scaled value {value} exceeds maximum {maximum}")
        self.field = field
        self.value = value
        self.maximum = maximum


class SimulationReverted(BlindPoolError):
    """Pre-flight simulation predicts the transaction would revert."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TransientFetchFailure(BlindPoolError):
    """A log query or state read failed; safe to retry."""

    def __init__(
        self,
        message: str,
        from_block: Optional[int] = None,
        to_block: Optional[int] = None
    ):
        super().__init__(message)
        self.from_block = from_block
        self.to_block = to_block


class WalletOrNetworkFailure(BlindPoolError):
    """Signing was rejected or the RPC connection failed."""
    pass
