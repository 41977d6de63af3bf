# AGPL-3.0 License

import asyncio
import json
import os
import sys
import uuid
from typing import Optional

from pr_annotator.algo.utils import parse_review_command
from pr_annotator.config_loader import get_settings
from pr_annotator.errors import ConfigurationError
from pr_annotator.log import LoggingFormat, get_logger, setup_logger
from pr_annotator.tools.pr_reply import PRReply
from pr_annotator.tools.pr_reviewer import PRReviewer

# action input name -> settings key
INPUT_SETTINGS = {
    "OPENAI_API_KEY": "openai.key",
    "OPENAI_BASE_URL": "openai.api_base",
    "MODEL": "config.model",
    "MIN_SEVERITY": "config.min_severity",
    "DISABLE_INLINE": "config.disable_inline",
    "MINIMIZE_OUTDATED": "config.minimize_outdated",
    "SUMMARY_CLEANUP": "config.summary_cleanup",
    "BOT_LOGIN": "github.bot_login",
}
BOOLEAN_SETTINGS = {"config.disable_inline", "config.minimize_outdated"}


def get_action_input(name: str) -> Optional[str]:
    value = os.environ.get(f"INPUT_{name}", "").strip()
    return value or None


def apply_action_inputs():
    """Copy the action's ``INPUT_*`` variables into the settings."""
    settings = get_settings()
    for name, key in INPUT_SETTINGS.items():
        value = get_action_input(name)
        if value is None:
            continue
        if key in BOOLEAN_SETTINGS:
            value = value.lower() in ("true", "1", "yes")
        settings.set(key, value)

    token = get_action_input("GITHUB_TOKEN") or os.environ.get("GITHUB_TOKEN")
    if token:
        settings.set("github.user_token", token)

    patterns = get_action_input("IGNORE_PATTERNS")
    if patterns:
        settings.set("config.ignore_patterns", patterns)


def write_outputs(outputs: dict[str, str]):
    """Append outputs to the ``GITHUB_OUTPUT`` file, if the runner provides one."""
    output_path = os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        return
    with open(output_path, "a", encoding="utf-8") as f:
        for name, value in outputs.items():
            if "\n" in value:
                delimiter = f"ghadelimiter_{uuid.uuid4()}"
                f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
            else:
                f.write(f"{name}={value}\n")


async def handle_event(event_name: str, event_payload: dict) -> bool:
    """
    Dispatch one GitHub Actions event.

    Returns:
        True when the event triggered a review or a reply
    """
    logger = get_logger()
    action = event_payload.get("action")

    if event_name == "pull_request":
        if action not in ("opened", "synchronize"):
            logger.info(f"Skipping action: {action}")
            return False
        pr_url = event_payload["pull_request"]["url"]
        logger.info(f"Processing PR #{event_payload['pull_request']['number']} ({action})")
        report = await PRReviewer(pr_url).run()
        write_outputs(report.to_outputs())
        return True

    if event_name == "issue_comment":
        if action != "created":
            return False
        is_review, instructions = parse_review_command(event_payload.get("comment", {}).get("body", ""))
        if not is_review:
            logger.info("Comment is not a /review command. Skipping.")
            return False
        pull_request = event_payload.get("issue", {}).get("pull_request")
        if not pull_request:
            logger.info("Comment is on an issue, not a PR. Skipping.")
            return False
        logger.info(f"Manual review requested for PR #{event_payload['issue']['number']}")
        args = [instructions] if instructions else []
        report = await PRReviewer(pull_request["url"], args=args, triggered_by_command=True).run()
        write_outputs(report.to_outputs())
        return True

    if event_name == "pull_request_review_comment":
        if action != "created":
            return False
        comment = event_payload["comment"]
        author = (comment.get("user") or {}).get("login", "")
        logger.info(f"Processing reply in PR #{event_payload['pull_request']['number']} from @{author}")
        await PRReply(
            event_payload["pull_request"]["url"],
            comment["id"],
            comment_author=author,
            comment_body=comment.get("body", ""),
        ).run()
        return True

    logger.info(f"Unsupported event: {event_name}")
    return False


async def run_action():
    github_event_name = os.environ.get("GITHUB_EVENT_NAME")
    github_event_path = os.environ.get("GITHUB_EVENT_PATH")
    if not github_event_name or not github_event_path:
        raise ConfigurationError("GITHUB_EVENT_NAME and GITHUB_EVENT_PATH must be set")

    apply_action_inputs()
    try:
        with open(github_event_path, "r", encoding="utf-8") as f:
            event_payload = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to parse event payload: {e}") from e

    await handle_event(github_event_name, event_payload)


def main():
    setup_logger(get_settings().config.get("log_level", "INFO"), LoggingFormat.JSON)
    try:
        asyncio.run(run_action())
    except Exception as e:
        get_logger().exception(f"Action failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
