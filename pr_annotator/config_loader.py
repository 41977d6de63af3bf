# AGPL-3.0 License

from os.path import abspath, dirname, join

from dynaconf import Dynaconf

from pr_annotator.algo.severity import Severity, normalize_severity
from pr_annotator.log import get_logger

current_dir = dirname(abspath(__file__))
global_settings = Dynaconf(
    envvar_prefix=False,
    merge_enabled=True,
    settings_files=[join(current_dir, f) for f in [
        "settings/configuration.toml",
        "settings/review_prompts.toml",
    ]],
)


def get_settings():
    """
    Return the process-wide settings object.

    Values come from the bundled TOML files and can be overridden with
    environment variables using double underscores for nesting,
    e.g. ``CONFIG__MIN_SEVERITY=high`` or ``GITHUB__USER_TOKEN=...``.
    """
    return global_settings


def get_min_severity() -> Severity:
    """
    Resolve the configured minimum severity threshold.

    Invalid values fall back to ``low`` with a warning, matching how
    untrusted severities are normalized elsewhere.
    """
    raw = get_settings().config.get("min_severity", "low")
    severity = normalize_severity(raw)
    if str(raw).strip().lower() != severity.value:
        get_logger().warning(f"Invalid min_severity value '{raw}', defaulting to '{severity.value}'")
    return severity
