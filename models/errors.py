"""
Error types for the Deadlock Toolkit engine.

Business-logic denials (unsafe requests, nothing to resolve) are returned as
values and never raised. The exceptions below signal caller contract
violations or corrupted matrices.
"""


class ConfigurationError(ValueError):
    """Raised when a caller passes an invalid index, unit count or vector."""
    pass


class InvariantViolationError(RuntimeError):
    """Raised when matrices would leave a consistent allocation state."""
    pass


class EngineStateError(RuntimeError):
    """Raised when the engine is used before it has been initialized."""
    pass


def check_index(value: int, limit: int, kind: str) -> None:
    """
    Validate a dense process/resource index.

    Args:
        value: Index to validate
        limit: Number of valid indices (exclusive upper bound)
        kind: "process" or "resource", used in the error message

    Raises:
        ConfigurationError: If index is outside 0..limit-1
    """
    if not 0 <= value < limit:
        raise ConfigurationError(
            f"Invalid {kind} index {value} (expected 0..{limit - 1})"
        )


def check_units(units: int) -> None:
    """Validate a unit count (must be non-negative)."""
    if units < 0:
        raise ConfigurationError(f"Unit count cannot be negative: {units}")


def check_request_units(units: int) -> None:
    """Validate the size of a request (must be at least one unit)."""
    if units <= 0:
        raise ConfigurationError(f"Requests must ask for at least one unit, got {units}")
