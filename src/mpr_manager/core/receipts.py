"""
Install receipts.

After a successful install the package's git HEAD is recorded in
`.git/makedeb-install-receipt`. A package is behind when its checkout has
moved past the recorded commit.
"""

import logging
import subprocess
from pathlib import Path

from mpr_manager.core.errors import CommandError, MprError

logger = logging.getLogger(__name__)

RECEIPT_NAME = "makedeb-install-receipt"
NOT_A_GIT_REPOSITORY = "NOT_A_GIT_REPOSITORY"


def receipt_path(pkg_dir: Path) -> Path:
    return pkg_dir / ".git" / RECEIPT_NAME


def get_head_commit(pkg_dir: Path) -> str:
    """Return the checkout's HEAD hash, or NOT_A_GIT_REPOSITORY."""
    args = ["git", "rev-parse", "HEAD"]
    try:
        result = subprocess.run(args, cwd=str(pkg_dir), capture_output=True, text=True, check=False)
    except OSError as e:
        raise CommandError(args, 127) from e

    if result.returncode != 0:
        if "not a git repository" in result.stderr:
            return NOT_A_GIT_REPOSITORY
        raise MprError(f"could not get HEAD commit hash for {pkg_dir}: {result.stderr.strip()}")
    return result.stdout.strip()


def read_receipt(pkg_dir: Path) -> str:
    """Return the recorded hash; empty if the package was never installed."""
    try:
        return receipt_path(pkg_dir).read_text().strip()
    except FileNotFoundError:
        return ""
    except OSError as e:
        raise MprError(f"could not read install receipt for {pkg_dir}: {e}") from e


def write_receipt(pkg_dir: Path) -> None:
    """Record the current HEAD as installed."""
    current = get_head_commit(pkg_dir)
    try:
        receipt_path(pkg_dir).write_text(current)
    except OSError as e:
        raise MprError(f"could not write install receipt for {pkg_dir}: {e}") from e
    logger.debug(f"Recorded install receipt {current} for {pkg_dir.name}")


def is_behind(pkg_dir: Path) -> bool:
    return read_receipt(pkg_dir) != get_head_commit(pkg_dir)
