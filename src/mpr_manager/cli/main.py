"""
mpr CLI: manage makedeb packages kept as git checkouts.

Usage:
    mpr install hello
    mpr update --upgrade
    mpr check-stale
    mpr update-version . 1.2.3 --edit
"""

import asyncio
import logging
from collections.abc import Callable

import click

from mpr_manager.core.errors import MprError
from mpr_manager.core.repology import SKIP


def _run(fn: Callable, *args, **kwargs):
    """Call a workflow, turning MprError into a clean exit 1."""
    try:
        return fn(*args, **kwargs)
    except MprError as e:
        raise click.ClickException(str(e)) from e


def _manager(ctx: click.Context):
    from mpr_manager.core.manager import PackageManager

    ctx.ensure_object(dict)
    if "manager" not in ctx.obj:
        ctx.obj["manager"] = PackageManager()
    return ctx.obj["manager"]


@click.group()
@click.version_option(package_name="mpr-manager")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
@click.pass_context
def cli(ctx, verbose):
    """mpr: makedeb package manager."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.ensure_object(dict)


@cli.command()
@click.argument("pkg")
@click.pass_context
def build(ctx, pkg):
    """Build a package (runs makedeb in its directory)."""
    _run(_manager(ctx).build, pkg)


@cli.command("check-stale")
@click.pass_context
def check_stale(ctx):
    """List packages whose pkgver is behind Repology's newest version."""
    manager = _manager(ctx)
    _run(asyncio.run, manager.check_stale())


@cli.command()
@click.argument("packages", nargs=-1)
@click.pass_context
def clean(ctx, packages):
    """Remove untracked files from packages (all when none given)."""
    _run(_manager(ctx).clean, list(packages))


@cli.command()
@click.argument("package_url")
@click.pass_context
def clone(ctx, package_url):
    """Clone a package (MPR name, USER/REPO on GitHub, or a git URL)."""
    _run(_manager(ctx).clone, package_url)


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def each(ctx, command):
    """Run a command in each package's directory."""
    _run(_manager(ctx).each, list(command))


@cli.command()
@click.argument("pkg")
@click.pass_context
def edit(ctx, pkg):
    """Open a package's PKGBUILD in $EDITOR."""
    _run(_manager(ctx).edit, pkg)


@cli.command()
@click.argument("pkg")
@click.pass_context
def info(ctx, pkg):
    """Show every variable a package's PKGBUILD defines."""
    variables = _run(_manager(ctx).info, pkg)
    for name, values in variables.items():
        for value in values:
            click.echo(f"{name}={value}")


@cli.command()
@click.argument("package_url")
@click.option("--no-confirm", is_flag=True, help="Do not review the PKGBUILD or ask for confirmation.")
@click.pass_context
def install(ctx, package_url, no_confirm):
    """Clone, build and install a package."""
    _run(_manager(ctx).install, package_url, confirm=not no_confirm)


@cli.command("list")
@click.pass_context
def list_(ctx):
    """List all packages."""
    for pkg in _run(_manager(ctx).installed_packages):
        click.echo(pkg)


@cli.command()
@click.pass_context
def outdated(ctx):
    """List packages changed since they were last installed."""
    for pkg in _run(_manager(ctx).outdated):
        click.echo(pkg)


@cli.command("recompute-sums")
@click.argument("pkg")
@click.option("--edit", "edit_after", is_flag=True, help="Open the PKGBUILD afterwards.")
@click.pass_context
def recompute_sums(ctx, pkg, edit_after):
    """Recompute checksums and regenerate .SRCINFO ('.' for the current directory)."""
    _run(_manager(ctx).recompute_sums, pkg, edit_after)


@cli.command()
@click.argument("pkg")
@click.pass_context
def reinstall(ctx, pkg):
    """Rebuild and reinstall a package."""
    _run(_manager(ctx).reinstall, pkg)


@cli.command()
@click.argument("packages", nargs=-1)
@click.option("--upgrade", "-u", "do_upgrade", is_flag=True, help="Upgrade packages after pulling.")
@click.option("--no-confirm", is_flag=True, help="Pass --no-confirm to makedeb.")
@click.pass_context
def update(ctx, packages, do_upgrade, no_confirm):
    """Pull every package (or the given ones), then show or upgrade outdated ones."""
    manager = _manager(ctx)
    _run(asyncio.run, manager.pull(list(packages)))

    if do_upgrade:
        _run(manager.upgrade, list(packages), confirm=not no_confirm)
        return

    click.echo("Checking for outdated packages...")
    for pkg in _run(manager.outdated):
        click.echo(pkg)


@cli.command("update-version")
@click.argument("pkg")
@click.argument("new_version", required=False)
@click.option("--edit", "edit_after", is_flag=True, help="Open the PKGBUILD afterwards.")
@click.pass_context
def update_version(ctx, pkg, new_version, edit_after):
    """Set a package's pkgver (Repology's newest when omitted) and recompute sums."""
    manager = _manager(ctx)
    if not new_version:
        new_version = _run(asyncio.run, manager.latest_version(pkg))
        if new_version == SKIP:
            raise click.ClickException(f"{pkg} opts out of repology checks, give a version explicitly")
    _run(manager.update_version, pkg, new_version, edit_after)


@cli.command()
@click.argument("pkg")
@click.pass_context
def uninstall(ctx, pkg):
    """Remove an installed package and its checkout."""
    _run(_manager(ctx).uninstall, pkg)


@cli.command()
@click.argument("packages", nargs=-1)
@click.option("--no-confirm", is_flag=True, help="Pass --no-confirm to makedeb.")
@click.pass_context
def upgrade(ctx, packages, no_confirm):
    """Build and install packages that changed since their last install."""
    _run(_manager(ctx).upgrade, list(packages), confirm=not no_confirm)


if __name__ == "__main__":
    cli()
