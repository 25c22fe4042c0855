"""Input validation helpers that raise clear ValueError/TypeError exceptions."""


def validate_not_empty(value: str | None, param_name: str) -> None:
    """Validate that a string parameter is not None, empty, or whitespace.

    Raises:
        ValueError: If value is None or blank.
        TypeError: If value is not a string.
    """
    if value is None:
        raise ValueError(f"Parameter '{param_name}' cannot be None")
    if not isinstance(value, str):
        raise TypeError(f"Parameter '{param_name}' must be a string, got {type(value).__name__}")
    if not value.strip():
        raise ValueError(f"Parameter '{param_name}' cannot be empty")


def validate_in_range(
    value: int | float | None,
    param_name: str,
    min_val: int | float | None = None,
    max_val: int | float | None = None,
) -> None:
    """Validate that a numeric parameter lies within an inclusive range.

    Raises:
        ValueError: If value is None or out of range.
        TypeError: If value is not numeric.
    """
    if value is None:
        raise ValueError(f"Parameter '{param_name}' cannot be None")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Parameter '{param_name}' must be numeric, got {type(value).__name__}")
    if min_val is not None and value < min_val:
        raise ValueError(f"Parameter '{param_name}' must be >= {min_val}, got {value}")
    if max_val is not None and value > max_val:
        raise ValueError(f"Parameter '{param_name}' must be <= {max_val}, got {value}")


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    """Cut text to ``limit`` characters, appending ``suffix`` only when something was cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + suffix
