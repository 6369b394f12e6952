"""
External command execution.

Thin wrappers around git, makedeb, apt-get and the user's editor. Loud
commands are echoed before they run and share the terminal with the user.
"""

import asyncio
import logging
import shutil
import subprocess
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from mpr_manager.core.config import MAKEDEB_INSTALL_URL
from mpr_manager.core.errors import CommandError

logger = logging.getLogger(__name__)

console = Console()


def run_command(args: list[str], cwd: Path | None = None, loud: bool = True) -> None:
    """
    Run a command attached to the terminal.

    Raises:
        CommandError: The command exited non-zero or could not be started.
    """
    if loud:
        console.print(f"[bold][#][/bold] {escape(' '.join(args))}")
    logger.debug(f"Running {args} in {cwd}")

    try:
        result = subprocess.run(args, cwd=str(cwd) if cwd else None, check=False)
    except OSError as e:
        raise CommandError(args, 127) from e
    if result.returncode != 0:
        raise CommandError(args, result.returncode)


def capture_command(args: list[str], cwd: Path | None = None) -> str:
    """Run a command quietly and return its stdout."""
    logger.debug(f"Capturing {args} in {cwd}")
    try:
        result = subprocess.run(
            args,
            cwd=str(cwd) if cwd else None,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise CommandError(args, 127) from e
    if result.returncode != 0:
        logger.debug(f"{args[0]} stderr: {result.stderr.strip()}")
        raise CommandError(args, result.returncode)
    return result.stdout


async def run_with_timeout(args: list[str], cwd: Path, timeout: float) -> None:
    """
    Run a command quietly, killing it after `timeout` seconds.

    Raises:
        CommandError: Non-zero exit, or killed for taking too long.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise CommandError(args, 127) from e

    try:
        await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.warning(f"Killed: {' '.join(args)} in {cwd} (took too long)")
        raise CommandError(args, -9)

    if process.returncode != 0:
        raise CommandError(args, process.returncode)


def open_editor(editor: str, path: Path) -> None:
    """Open `path` in the user's editor and wait for it to exit."""
    run_command([editor, str(path)], cwd=path.parent, loud=False)


def install_makedeb() -> None:
    """Install makedeb with its upstream installer unless it is already on PATH."""
    if shutil.which("makedeb"):
        return
    logger.info("makedeb not found, installing it")
    run_command(
        ["bash", "-c", f"wget -qO - '{MAKEDEB_INSTALL_URL}' | MAKEDEB_RELEASE=makedeb bash -"]
    )
