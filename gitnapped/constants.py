"""Constants and configuration values for gitnapped."""

from __future__ import annotations

from enum import Enum


# =============================================================================
# Sorting and Grouping
# =============================================================================

class SortKey(str, Enum):
    """Metric used to order repositories, categories and projects."""

    COMMITS = "commits"
    FILES = "files"
    LINES = "lines"


class GroupingMode(str, Enum):
    """Which rollup maps a run populates."""

    NONE = "none"
    CATEGORIES = "categories"
    PROJECTS = "projects"
    BOTH = "both"

    @classmethod
    def from_flags(cls, categories: bool, projects: bool) -> "GroupingMode":
        if categories and projects:
            return cls.BOTH
        if categories:
            return cls.CATEGORIES
        if projects:
            return cls.PROJECTS
        return cls.NONE

    @property
    def includes_categories(self) -> bool:
        return self in (GroupingMode.CATEGORIES, GroupingMode.BOTH)

    @property
    def includes_projects(self) -> bool:
        return self in (GroupingMode.PROJECTS, GroupingMode.BOTH)


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_CONFIG_FILE = "gitnapped.yaml"
DEFAULT_WORKING_TIME = "09:00-17:00"
DEFAULT_SORT_KEY = SortKey.COMMITS

UNCATEGORIZED = "Uncategorized"
UNNAMED_PROJECT = "Unnamed"

# File extension bucket for paths without a suffix
NO_EXTENSION = "none"

MINUTES_PER_DAY = 24 * 60

# Period units accepted by the time window resolver
PERIOD_UNITS = {
    "H": "hours",
    "D": "days",
    "W": "weeks",
    "M": "months",
    "Y": "years",
}

DATE_FORMAT = "%Y-%m-%d"

# =============================================================================
# Parallel Processing
# =============================================================================

PARALLEL_CONFIG = {
    'max_workers_repositories': 8,  # Upper bound on concurrent repositories
    'repository_timeout': 120,  # git timeout per repository in seconds
    'cancel_poll_interval': 0.2,  # Seconds between cancellation checks
}

GIT_CONFIG = {
    'is_repo_timeout': 10,  # rev-parse / submodule status timeout in seconds
    'record_separator': '\x1e',
    'field_separator': '\x1f',
}

# =============================================================================
# Display Limits
# =============================================================================

DISPLAY_LIMITS = {
    'top_repositories': 5,  # Repositories listed when no cap is given
    'top_repositories_per_category': 3,
    'file_types_per_group': 5,
    'file_types_total': 10,
}
