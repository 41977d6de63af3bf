# AGPL-3.0 License

import argparse
import asyncio
import os
import sys

from pr_annotator.config_loader import get_settings
from pr_annotator.errors import PRAnnotatorError
from pr_annotator.log import LoggingFormat, get_logger, setup_logger
from pr_annotator.tools.pr_reply import PRReply
from pr_annotator.tools.pr_reviewer import PRReviewer

commands = ["review", "reply"]


def set_parser():
    parser = argparse.ArgumentParser(description='AI based pull request annotator', usage=
"""\
Usage: pr-annotator --pr_url=<URL on supported git hosting service> <command> [<args>].
For example:
- pr-annotator --pr_url=... review [instructions]
- pr-annotator --pr_url=... reply --comment_id=<id> [instructions]

Supported commands:
- review: Review the PR and reconcile the bot's existing comments.
- reply: Answer a comment in one of the bot's review threads.

Configuration:
Any setting can be overridden with an environment variable, e.g. CONFIG__MIN_SEVERITY=high.
""")
    parser.add_argument('--pr_url', type=str, help='The URL of the PR to review', required=True)
    parser.add_argument('--comment_id', type=int, help='Review comment to reply to (reply command)')
    parser.add_argument('command', type=str, help='The command to run', choices=commands)
    parser.add_argument('rest', nargs=argparse.REMAINDER, default=[])
    return parser


async def handle_request(args) -> bool:
    if args.command == "review":
        report = await PRReviewer(args.pr_url, args=args.rest).run()
        for name, value in report.to_outputs().items():
            get_logger().debug(f"{name}: {value}")
        return True
    if args.command == "reply":
        if not args.comment_id:
            get_logger().error("The reply command requires --comment_id")
            return False
        await PRReply(args.pr_url, args.comment_id, args=args.rest).run()
        return True
    return False


def run(inargs=None):
    parser = set_parser()
    args = parser.parse_args(inargs)
    settings = get_settings()
    log_format = os.environ.get("LOG_FORMAT") or settings.config.get("log_format", "CONSOLE")
    setup_logger(settings.config.get("log_level", "INFO"), LoggingFormat(str(log_format).upper()))

    try:
        result = asyncio.run(handle_request(args))
    except PRAnnotatorError as e:
        get_logger().error(f"{args.command} failed: {e}")
        sys.exit(1)
    if not result:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    run()
