"""
Package Manager: workflows behind the `mpr` commands.

Clones, builds, installs, updates and upgrades makedeb packages kept as git
checkouts in the package directory, and keeps their PKGBUILDs current:
- Staleness checks against Repology, fanned out with bounded concurrency
- pkgver bumps and checksum recomputation patched into PKGBUILDs in place
- Install receipts to tell which checkouts moved since their last install
"""

import asyncio
import logging
import shutil
from pathlib import Path

from rich.console import Console
from rich.prompt import Confirm

from mpr_manager.core import commands
from mpr_manager.core.config import Settings
from mpr_manager.core.errors import MprError, PackageNotInstalledError, ParallelWorkError
from mpr_manager.core.packages import get_package_url, list_packages, package_name_from_url
from mpr_manager.core.receipts import is_behind, write_receipt
from mpr_manager.core.repology import SKIP, RepologyClient
from mpr_manager.core.workers import run_parallel
from mpr_manager.models.package import StalePackage
from mpr_manager.parsers.makedeb import parse_makedeb_g
from mpr_manager.parsers.patcher import get_variable_literal
from mpr_manager.parsers.pkgbuild import PKGBUILD, PKGBUILD_FILENAME

logger = logging.getLogger(__name__)


class PackageManager:
    """Runs package workflows against one package directory."""

    def __init__(self, settings: Settings | None = None, console: Console | None = None):
        self.settings = settings or Settings.from_env()
        self.console = console or Console()

    # ──────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────

    def package_dir(self, pkg: str) -> Path:
        """Directory of `pkg`; '.' means the current directory."""
        if pkg == ".":
            return Path.cwd()
        return self.settings.package_dir(pkg)

    def pkgbuild(self, pkg: str) -> PKGBUILD:
        return PKGBUILD(self.package_dir(pkg), extraction_timeout=self.settings.extraction_timeout)

    def installed_packages(self) -> list[str]:
        return list_packages(self.settings)

    def _require_installed(self, packages: list[str]) -> list[str]:
        """Validate `packages` against installed ones; empty means all of them."""
        installed = self.installed_packages()
        for pkg in packages:
            if pkg not in installed:
                raise PackageNotInstalledError(pkg)
        return packages or installed

    def _repology(self) -> RepologyClient:
        return RepologyClient(
            base_url=self.settings.repology_url,
            timeout=self.settings.http_timeout,
            min_interval=self.settings.repology_interval,
        )

    def _makedeb_install_args(self, confirm: bool) -> list[str]:
        args = ["makedeb", "-si"]
        if not confirm:
            args.append("--no-confirm")
        return args

    # ──────────────────────────────────────────────
    # Local workflows
    # ──────────────────────────────────────────────

    def build(self, pkg: str) -> None:
        self.console.print(f"=> building {pkg}")
        commands.run_command(["makedeb"], cwd=self.package_dir(pkg))

    def clean(self, packages: list[str]) -> None:
        """Run `git clean -fdx` in the given packages (all when empty)."""
        available = self.installed_packages()
        for pkg in packages or available:
            if pkg not in available:
                self.console.print(f"package {pkg} does not exist")
                continue
            self.console.print(f"=> cleaning {pkg}")
            commands.run_command(["git", "clean", "-fdx"], cwd=self.package_dir(pkg))

    def clone(self, spec: str) -> str:
        """Clone a package into the package directory and return its name."""
        url = get_package_url(spec)
        pkg = package_name_from_url(url)
        if pkg in self.installed_packages():
            raise MprError(f"package {pkg} already exists")

        self.console.print(f"=> cloning {pkg}")
        try:
            commands.run_command(["git", "clone", url, pkg], cwd=self.settings.package_dir())
        except MprError:
            # a botched clone leaves a half-populated directory behind
            shutil.rmtree(self.package_dir(pkg), ignore_errors=True)
            raise
        return pkg

    def each(self, args: list[str]) -> None:
        """Run an arbitrary command in every package directory, stopping at the first failure."""
        for pkg in self.installed_packages():
            self.console.print(f"=> {pkg}")
            commands.run_command(args, cwd=self.package_dir(pkg))
            self.console.print()

    def edit(self, pkg: str) -> None:
        commands.open_editor(self.settings.editor, self.package_dir(pkg) / PKGBUILD_FILENAME)

    def info(self, pkg: str) -> dict[str, list[str]]:
        return self.pkgbuild(pkg).get_variables()

    def outdated(self) -> list[str]:
        """Packages whose checkout moved past the last installed commit."""
        return [pkg for pkg in self.installed_packages() if is_behind(self.package_dir(pkg))]

    # ──────────────────────────────────────────────
    # Install / remove
    # ──────────────────────────────────────────────

    def install(self, spec: str, confirm: bool = True) -> None:
        """
        Clone, review, build and install a package.

        With `confirm`, the PKGBUILD is opened for review first and the clone
        is discarded if the user declines to build.
        """
        pkg = self.clone(spec)
        commands.install_makedeb()
        pkg_dir = self.package_dir(pkg)

        if confirm:
            commands.open_editor(self.settings.editor, pkg_dir / PKGBUILD_FILENAME)
            if not Confirm.ask("Do you want to build the package now?", default=False, console=self.console):
                shutil.rmtree(pkg_dir, ignore_errors=True)
                raise MprError(f"installation of {pkg} aborted")

        self.console.print(f"=> installing {pkg}")
        commands.run_command(self._makedeb_install_args(confirm), cwd=pkg_dir)
        write_receipt(pkg_dir)

    def reinstall(self, pkg: str) -> None:
        self.console.print(f"=> reinstalling {pkg}")
        commands.run_command(["makedeb", "-si"], cwd=self.package_dir(pkg))

    def uninstall(self, pkg: str) -> None:
        self._require_installed([pkg])
        self.console.print(f"=> uninstalling {pkg}")
        commands.run_command(["sudo", "apt-get", "remove", pkg])
        shutil.rmtree(self.package_dir(pkg))

    def upgrade(self, packages: list[str], confirm: bool = True) -> list[str]:
        """Rebuild and reinstall every package that is behind; return what was upgraded."""
        upgraded = []
        for pkg in self._require_installed(packages):
            pkg_dir = self.package_dir(pkg)
            if not is_behind(pkg_dir):
                continue
            commands.install_makedeb()

            self.console.print(f"=> upgrading {pkg}")
            commands.run_command(self._makedeb_install_args(confirm), cwd=pkg_dir)
            write_receipt(pkg_dir)
            upgraded.append(pkg)
        return upgraded

    # ──────────────────────────────────────────────
    # PKGBUILD maintenance
    # ──────────────────────────────────────────────

    def recompute_sums(self, pkg: str, edit: bool = False) -> None:
        """Patch freshly computed checksums into the PKGBUILD and regenerate .SRCINFO."""
        pkg_dir = self.package_dir(pkg)
        output = commands.capture_command(["makedeb", "-g"], cwd=pkg_dir)

        pkgbuild = self.pkgbuild(pkg)
        for name, value in parse_makedeb_g(output).items():
            pkgbuild.update_variable(name, value)

        srcinfo = commands.capture_command(["makedeb", "--print-srcinfo"], cwd=pkg_dir)
        try:
            (pkg_dir / ".SRCINFO").write_text(srcinfo)
        except OSError as e:
            raise MprError(f"could not write .SRCINFO for {pkg}: {e}") from e
        logger.info(f"Regenerated .SRCINFO for {pkg}")

        if edit:
            self.edit(pkg)

    def update_version(self, pkg: str, new_version: str, edit: bool = False) -> None:
        """Set pkgver, keeping the assignment's quote style, then recompute sums."""
        pkgbuild = self.pkgbuild(pkg)
        current = get_variable_literal(pkgbuild.get_text(), "pkgver")
        literal = new_version
        if current[:1] in ("'", '"'):
            literal = f"{current[0]}{new_version}{current[0]}"

        pkgbuild.update_variable("pkgver", literal)
        self.recompute_sums(pkg, edit)

    # ──────────────────────────────────────────────
    # Network workflows
    # ──────────────────────────────────────────────

    async def latest_version(self, pkg: str) -> str:
        """Newest version of `pkg` according to Repology."""
        pkgbuild = self.pkgbuild(pkg)
        pkgname = await asyncio.to_thread(pkgbuild.get_repology_pkgname)
        async with self._repology() as repology:
            return await repology.get_latest_version(pkgname)

    async def check_stale(self) -> list[StalePackage]:
        """
        Compare every package's pkgver with Repology's newest version.

        Stale packages found before an error are still printed; the error
        listing every failed package is raised afterwards.
        """
        packages = await asyncio.to_thread(self.installed_packages)
        stale: list[StalePackage] = []

        async with self._repology() as repology:

            async def check_one(pkg: str) -> None:
                pkgbuild = self.pkgbuild(pkg)
                pkgname = await asyncio.to_thread(pkgbuild.get_repology_pkgname)
                newest = await repology.get_latest_version(pkgname)
                if newest == SKIP:
                    return
                try:
                    pkgver = await asyncio.to_thread(pkgbuild.get_single_variable, "pkgver")
                except MprError as e:
                    raise MprError(f"could not read pkgver variable: {e}") from e

                pkgver = pkgver.strip('"').strip("'")
                if newest != pkgver:
                    stale.append(StalePackage(name=pkg, current=pkgver, newest=newest))

            error: ParallelWorkError | None = None
            try:
                await run_parallel(
                    packages,
                    check_one,
                    limit=self.settings.concurrency,
                    description="Checking",
                    console=self.console,
                )
            except ParallelWorkError as e:
                error = e

        stale.sort(key=lambda s: s.name)
        for pkg in stale:
            self.console.print(f"{pkg.name}: current=[red]{pkg.current}[/red], latest=[green]{pkg.newest}[/green]")
        if error is not None:
            raise error
        return stale

    async def pull(self, packages: list[str]) -> None:
        """`git pull` the given packages (all when empty), killing slow pulls."""
        targets = await asyncio.to_thread(self._require_installed, packages)

        async def pull_one(pkg: str) -> None:
            await commands.run_with_timeout(
                ["git", "pull"], cwd=self.package_dir(pkg), timeout=self.settings.git_pull_timeout
            )

        await run_parallel(
            targets,
            pull_one,
            limit=self.settings.concurrency,
            description="Updating",
            console=self.console,
        )
