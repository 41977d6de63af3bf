# AGPL-3.0 License

from typing import Optional

REVIEW_COMMAND = "/review"


def parse_review_command(comment: str) -> tuple[bool, Optional[str]]:
    """
    Detect a ``/review [instructions]`` command in a PR comment.

    Returns:
        (is_review, instructions); instructions is None when nothing follows the command
    """
    trimmed = (comment or "").strip()
    if not trimmed.startswith(REVIEW_COMMAND):
        return False, None
    instructions = trimmed[len(REVIEW_COMMAND):].strip()
    return True, instructions or None


def coerce_positive_int(value) -> Optional[int]:
    """Turn an untrusted id or line number into a positive int, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
        return number if number > 0 else None
    return None
