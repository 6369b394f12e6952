"""
Runtime configuration.

Settings are read from the environment once and passed explicitly to the
workflows that need them.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

MPR_URL = "https://mpr.makedeb.org"
GITHUB_URL = "https://github.com"
REPOLOGY_API_URL = "https://repology.org/api/v1/project"
MAKEDEB_INSTALL_URL = "https://shlink.makedeb.org/install"

DEFAULT_CONCURRENCY = 10
DEFAULT_GIT_PULL_TIMEOUT = 10.0
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_EXTRACTION_TIMEOUT = 60.0
# Repology asks API clients for at most about one request per second.
DEFAULT_REPOLOGY_INTERVAL = 1.1


def _default_packages_dir() -> Path:
    cache_home = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(cache_home) / "mpr-packages"


@dataclass
class Settings:
    """Where packages live and how hard to push external services."""

    packages_dir: Path = field(default_factory=_default_packages_dir)
    editor: str = "vim"
    concurrency: int = DEFAULT_CONCURRENCY
    git_pull_timeout: float = DEFAULT_GIT_PULL_TIMEOUT
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    extraction_timeout: float = DEFAULT_EXTRACTION_TIMEOUT
    repology_url: str = REPOLOGY_API_URL
    repology_interval: float = DEFAULT_REPOLOGY_INTERVAL

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """
        Build settings from the environment.

        MPR_DIR overrides the package directory and EDITOR the editor;
        keyword arguments override both.
        """
        values: dict = {}
        if os.environ.get("MPR_DIR"):
            values["packages_dir"] = Path(os.environ["MPR_DIR"])
        if os.environ.get("EDITOR"):
            values["editor"] = os.environ["EDITOR"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def package_dir(self, *segments: str) -> Path:
        """Return a path inside the package directory, creating the directory."""
        self.packages_dir.mkdir(parents=True, exist_ok=True)
        return self.packages_dir.joinpath(*segments)
