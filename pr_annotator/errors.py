# AGPL-3.0 License

"""
Exception hierarchy for PR-Annotator.

Only conditions that must abort a run are raised. Malformed model output
(bad severities, off-diff anchors) is normalized or filtered instead.
"""

from typing import Optional


class PRAnnotatorError(Exception):
    """Base class for all errors raised by PR-Annotator."""


class ConfigurationError(PRAnnotatorError):
    """Settings are missing or name an unsupported option."""


class MalformedDiffError(PRAnnotatorError):
    """
    The diff text cannot be parsed into file and hunk structure.

    Attributes:
        line_number: 1-based line of the diff text where parsing failed, if known
    """

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"{message} (diff line {line_number})"
        super().__init__(message)
        self.line_number = line_number


class FeedbackUnavailableError(PRAnnotatorError):
    """The feedback source could not be reached or returned nothing usable."""


class GitProviderError(PRAnnotatorError):
    """
    A call to the hosting platform failed.

    Attributes:
        status_code: HTTP status returned by the platform, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
