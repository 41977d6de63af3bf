# AGPL-3.0 License

"""
Severity tiers for review findings.

Severities arrive from the language model and are untrusted. Normalization
is total: anything that is not exactly one of the four tier names (after
trimming and lower-casing) becomes ``low``. Malformed input is therefore
masked as low severity instead of being rejected or reported.
"""

import re
from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_RANKS = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}

_BY_NAME = {severity.value: severity for severity in Severity}

SEVERITY_ICONS = {
    Severity.LOW: "📝",
    Severity.MEDIUM: "⚠️",
    Severity.HIGH: "🔴",
    Severity.CRITICAL: "🚨",
}

# First line of a posted finding, e.g. "🔴 **High**"
_HEADER_RE = re.compile(r"^\s*\S+\s+\*\*(low|medium|high|critical)\*\*\s*$", re.IGNORECASE)


def normalize_severity(raw: Any) -> Severity:
    """
    Map an untrusted severity value to a tier, defaulting to ``low``.

    Args:
        raw: Value supplied by the model or a config file

    Returns:
        The matching Severity, or Severity.LOW when nothing matches
    """
    if not isinstance(raw, str):
        return Severity.LOW
    return _BY_NAME.get(raw.strip().lower(), Severity.LOW)


def rank(severity: Severity) -> int:
    """Position of a tier in the total order, low=0 through critical=3."""
    return _RANKS[normalize_severity(severity)]


def severity_label(severity: Severity) -> str:
    return severity.value.capitalize()


def format_finding_body(body: str, severity: Severity) -> str:
    """Prefix a finding body with its severity icon and label."""
    severity = normalize_severity(severity)
    return f"{SEVERITY_ICONS[severity]} **{severity_label(severity)}**\n\n{body}"


def parse_severity_header(body: str) -> Optional[Severity]:
    """
    Recover the severity from a body produced by ``format_finding_body``.

    Returns:
        The severity named in the first line, or None if the body has no header
    """
    if not body:
        return None
    first_line = body.lstrip().split("\n", 1)[0]
    match = _HEADER_RE.match(first_line)
    if not match:
        return None
    return _BY_NAME[match.group(1).lower()]
