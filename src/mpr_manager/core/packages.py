"""
Package discovery.

A package is a sub-directory of the package directory that holds a git
checkout with a PKGBUILD declaring a single `pkgname`.
"""

import logging
import re

from mpr_manager.core.config import GITHUB_URL, MPR_URL, Settings
from mpr_manager.core.errors import MprError
from mpr_manager.parsers.pkgbuild import PKGBUILD, PKGBUILD_FILENAME

logger = logging.getLogger(__name__)

GITHUB_SPEC_RE = re.compile(r"^([^/:]+)/([^/:]+)$")
MPR_SPEC_RE = re.compile(r"^[a-z0-9_-]+$", re.IGNORECASE)


def list_packages(settings: Settings) -> list[str]:
    """Return the sorted names of all managed packages."""
    root = settings.package_dir()
    packages = []
    for entry in root.iterdir():
        if not entry.is_dir():
            continue
        if not (entry / PKGBUILD_FILENAME).is_file() or not (entry / ".git").exists():
            continue

        pkgbuild = PKGBUILD(entry, extraction_timeout=settings.extraction_timeout)
        try:
            packages.append(pkgbuild.get_single_variable("pkgname"))
        except MprError as e:
            logger.debug(f"Skipping {entry.name}: {e}")

    return sorted(packages)


def get_package_url(spec: str) -> str:
    """
    Expand a package spec into a clonable URL.

    'user/repo' -> GitHub, 'some-pkg' -> MPR, anything else is used as-is.
    """
    if GITHUB_SPEC_RE.match(spec):
        return f"{GITHUB_URL}/{spec}"
    if MPR_SPEC_RE.match(spec):
        return f"{MPR_URL}/{spec}"
    return spec


def package_name_from_url(url: str) -> str:
    """'https://mpr.makedeb.org/foo.git' -> 'foo', 'git@host:foo' -> 'foo'."""
    name = url.rstrip("/").rsplit("/", 1)[-1]
    if ":" in name:
        name = name.split(":")[1]
    return name.removesuffix(".git")
