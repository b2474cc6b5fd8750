"""Configuration loading for the gitnapped CLI."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from .constants import DEFAULT_CONFIG_FILE, UNCATEGORIZED, UNNAMED_PROJECT
from .exceptions import ConfigurationError, InvalidWorkingTime
from .models import RepositoryRef, WorkingHours
from .working_time import parse_working_time

logger = logging.getLogger(__name__)

_ANNOTATION = re.compile(r"\[([^\[\]]*)\]")


def parse_repo_string(value: str) -> "RepoEntry":
    """Parse ``"path [Category][Project]"`` into a :class:`RepoEntry`.

    Two annotations name the category and the project, a single annotation
    names only the project. Anything after the annotations is ignored.
    """
    text = value.strip()
    bracket = text.find("[")
    if bracket == -1:
        return RepoEntry(path=text)

    path = text[:bracket].strip()
    labels = [label.strip() for label in _ANNOTATION.findall(text[bracket:])]
    labels = [label for label in labels if label]

    if len(labels) >= 2:
        return RepoEntry(path=path, category=labels[0], project=labels[1])
    if len(labels) == 1:
        return RepoEntry(path=path, project=labels[0])
    return RepoEntry(path=path)


class RepoEntry(BaseModel):
    """One configured repository, from an annotated string or a mapping."""

    path: str
    category: Optional[str] = None
    project: Optional[str] = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate that the path is not blank."""
        v = v.strip()
        if not v:
            raise ValueError("repository path must not be empty")
        return v

    @field_validator("category", "project")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class FileConfig(BaseModel):
    """Schema of ``gitnapped.yaml``."""

    author: Optional[str] = None
    working_time: Optional[str] = None
    repos: Dict[str, List[Union[RepoEntry, str]]] = {}

    @field_validator("author")
    @classmethod
    def validate_author(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("working_time")
    @classmethod
    def validate_working_time(cls, v: Optional[str]) -> Optional[str]:
        """Validate the working-time format up front."""
        if v is None or not v.strip():
            return None
        try:
            parse_working_time(v)
        except InvalidWorkingTime as exc:
            raise ValueError(str(exc)) from exc
        return v.strip()

    @field_validator("repos", mode="before")
    @classmethod
    def validate_repos(cls, v: Any) -> Any:
        """Accept empty groups and a bare list of repositories."""
        if v is None:
            return {}
        if isinstance(v, list):
            return {UNCATEGORIZED: v}
        if isinstance(v, dict):
            return {str(group): members or [] for group, members in v.items()}
        return v


class DirectoryChecker(Protocol):
    def is_git_repository(self, path: str) -> bool:
        ...


@dataclass(slots=True)
class GitnappedConfig:
    """Resolved configuration: default author, working hours and repositories."""

    author: Optional[str] = None
    working_time: Optional[str] = None
    repositories: List[RepositoryRef] = field(default_factory=list)
    path: Optional[str] = None

    @classmethod
    def load(cls, path: Union[str, Path] = DEFAULT_CONFIG_FILE) -> "GitnappedConfig":
        """Load and validate a YAML configuration file.

        Args:
            path: Configuration file path

        Returns:
            GitnappedConfig: The loaded configuration

        Raises:
            ConfigurationError: If the file is missing, is not valid YAML or
                does not match the schema
        """
        config_path = Path(path).expanduser()
        if not config_path.is_file():
            raise ConfigurationError(f"Config file '{path}' not found", path=str(path))

        try:
            with config_path.open("r", encoding="utf-8") as handle:
                raw = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML format in config file '{path}': {exc}", path=str(path)) from exc
        except OSError as exc:
            raise ConfigurationError(f"Error reading config file '{path}': {exc}", path=str(path)) from exc

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config file '{path}' must contain a mapping", path=str(path))

        try:
            parsed = FileConfig(**raw)
            repositories = resolve_repositories(parsed.repos)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in '{path}': {exc}", path=str(path)) from exc

        logger.debug("Loaded %d repositories from %s", len(repositories), config_path)
        return cls(
            author=parsed.author,
            working_time=parsed.working_time,
            repositories=repositories,
            path=str(config_path),
        )

    @classmethod
    def for_directory(cls, directory: str, checker: DirectoryChecker) -> "GitnappedConfig":
        """Build a one-repository configuration for ``--dir`` mode.

        Raises:
            ConfigurationError: If ``directory`` is not inside a git work tree
        """
        path = str(Path(directory).expanduser())
        if not checker.is_git_repository(path):
            raise ConfigurationError(
                f"'{directory}' is not a Git repository. Please provide a valid Git repository path.",
                path=directory,
            )
        repo = RepositoryRef.from_path(path, category=UNCATEGORIZED, project=UNNAMED_PROJECT)
        return cls(repositories=[repo])

    def working_hours(self) -> Optional[WorkingHours]:
        if self.working_time is None:
            return None
        return parse_working_time(self.working_time)


def resolve_repositories(groups: Dict[str, List[Union[RepoEntry, str]]]) -> List[RepositoryRef]:
    """Flatten grouped entries into repository references.

    Entries without a category fall back to their YAML group key. A path
    listed more than once is kept at its first occurrence only.
    """
    repositories: List[RepositoryRef] = []
    seen: Dict[str, RepositoryRef] = {}

    for group, members in groups.items():
        for member in members:
            entry = parse_repo_string(member) if isinstance(member, str) else member
            key = str(Path(entry.path).expanduser())
            if key in seen:
                logger.warning("Repository %s is configured more than once; analyzing it once", entry.path)
                continue
            repo = RepositoryRef.from_path(
                entry.path,
                category=entry.category or group,
                project=entry.project,
            )
            seen[key] = repo
            repositories.append(repo)

    return repositories
