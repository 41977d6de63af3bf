# AGPL-3.0 License

from pr_annotator.config_loader import get_settings
from pr_annotator.errors import ConfigurationError
from pr_annotator.git_providers.git_provider import (
    GitProvider,
    InlineComment,
    PlatformComment,
    ThreadComment,
)
from pr_annotator.git_providers.github_provider import GithubProvider

_GIT_PROVIDERS = {
    "github": GithubProvider,
}


def get_git_provider():
    """Return the provider class selected by ``config.git_provider``."""
    try:
        provider_id = get_settings().config.git_provider
    except AttributeError as e:
        raise ConfigurationError("git_provider is a required field in the configuration file") from e
    if provider_id not in _GIT_PROVIDERS:
        raise ConfigurationError(f"Unknown git provider: {provider_id}")
    return _GIT_PROVIDERS[provider_id]


__all__ = [
    "GitProvider",
    "GithubProvider",
    "InlineComment",
    "PlatformComment",
    "ThreadComment",
    "get_git_provider",
]
