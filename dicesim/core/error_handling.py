"""
Centralized error types and input correction helpers.

The simulation must stay runnable for any configuration a user can produce,
so numeric configuration is corrected (and the correction logged) instead of
rejected. Structural problems with the face table are the exception: they
raise, because no simulation can be trusted against a broken table.
"""

from typing import Any, Optional

from dicesim.core.logging import log_warning


class SimulationError(Exception):
    """Raised when a simulation cannot be carried out."""


class FaceTableError(ValueError):
    """Raised when a face table fails validation."""


def ensure_non_negative_int(
    value: Any,
    param_name: str,
    default: int = 0,
    context: Optional[dict[str, Any]] = None,
) -> int:
    """
    Ensures a value is a non-negative integer, correcting if needed.
    Logs a warning for invalid values but continues execution.

    Args:
        value: The value to ensure is a non-negative integer
        param_name: Human-readable parameter name for error messages
        default: Default value if the value cannot be converted
        context: Additional context for logging

    Returns:
        int: The corrected integer value
    """
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        try:
            corrected = max(0, int(value))
        except (TypeError, ValueError):
            corrected = default
        log_warning(
            f"{param_name} must be non-negative integer, got: {value}, "
            f"correcting to {corrected}",
            {**(context or {}), "param_name": param_name, "value": value},
        )
        return corrected
    return value


def ensure_int_in_range(
    value: Any,
    param_name: str,
    min_val: int,
    max_val: Optional[int] = None,
    default: Optional[int] = None,
    context: Optional[dict[str, Any]] = None,
) -> int:
    """
    Ensures a value is an integer within the specified range, correcting if needed.
    Logs a warning for out-of-range values but continues execution.

    Args:
        value: The value to validate
        param_name: Human-readable parameter name for error messages
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive), None for no maximum
        default: Default value if conversion fails, uses min_val if None
        context: Additional context for logging

    Returns:
        int: The corrected integer value
    """
    if default is None:
        default = min_val

    if (
        not isinstance(value, bool)
        and isinstance(value, int)
        and value >= min_val
        and (max_val is None or value <= max_val)
    ):
        return value

    try:
        converted = int(value)
    except (TypeError, ValueError):
        converted = default
    if converted < min_val:
        converted = min_val
    elif max_val is not None and converted > max_val:
        converted = max_val

    range_desc = f">= {min_val}" if max_val is None else f"between {min_val} and {max_val}"
    log_warning(
        f"{param_name} must be integer {range_desc}, got: {value}, correcting to {converted}",
        {
            **(context or {}),
            "param_name": param_name,
            "value": value,
            "min_val": min_val,
            "max_val": max_val,
        },
    )
    return converted


def ensure_optional_cap(
    value: Any,
    param_name: str,
    context: Optional[dict[str, Any]] = None,
) -> Optional[int]:
    """
    Ensures an optional cap is either None (unlimited) or a non-negative integer.

    Args:
        value: The cap to validate
        param_name: Human-readable parameter name for error messages
        context: Additional context for logging

    Returns:
        Optional[int]: None for unlimited, otherwise the corrected cap
    """
    if value is None:
        return None
    return ensure_non_negative_int(value, param_name, 0, context)
