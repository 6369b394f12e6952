"""
mpr-manager - makedeb package manager client.

Clones, builds, installs, updates and upgrades packages described by
PKGBUILD scripts, and reads and patches PKGBUILD variables in place.
"""

__version__ = "1.0.0"


def __getattr__(name: str):
    """Lazy import for heavy dependencies."""
    if name == "PackageManager":
        from mpr_manager.core.manager import PackageManager

        return PackageManager
    if name == "PKGBUILD":
        from mpr_manager.parsers.pkgbuild import PKGBUILD

        return PKGBUILD
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["PackageManager", "PKGBUILD", "__version__"]
