from portfolio_pipeline import SORT_CHOICES, SORT_LATEST


def parse_int_param(value, name: str, default: int, min_value=1, max_value=None) -> int:
    if value is None or value == "":
        return default

    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer")

    if number < min_value:
        raise ValueError(f"{name} must be at least {min_value}")

    if max_value is not None and number > max_value:
        raise ValueError(f"{name} must be at most {max_value}")

    return number


def validate_sort_param(value) -> str:
    if not value:
        return SORT_LATEST

    if value not in SORT_CHOICES:
        raise ValueError(f"sort must be one of: {', '.join(SORT_CHOICES)}")

    return value
