"""Source collectors. Importing this package registers every platform."""

from .base import BaseSource, CollectionRun, Deadline, SourceRegistry, get_enabled_sources
from .devto import DevToSource
from .github import GitHubSource
from .google import GoogleSearchSource
from .linkedin import LinkedInSource
from .stackoverflow import StackOverflowSource

__all__ = [
    "BaseSource",
    "CollectionRun",
    "Deadline",
    "SourceRegistry",
    "get_enabled_sources",
    "DevToSource",
    "GitHubSource",
    "GoogleSearchSource",
    "LinkedInSource",
    "StackOverflowSource",
]
