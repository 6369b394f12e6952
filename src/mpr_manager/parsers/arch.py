"""
Architecture-specific variable merging.

makedeb lets a PKGBUILD declare `source_amd64=(...)` next to `source=(...)`.
For the architecture we are building on, the suffixed values are folded into
the base variable so callers only ever look at `source`.
"""

import platform

# platform.machine() -> Debian architecture name
DEBIAN_ARCHITECTURES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "i386": "i386",
    "i486": "i386",
    "i586": "i386",
    "i686": "i386",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armhf",
    "armv6l": "armel",
    "ppc64le": "ppc64el",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


def host_architecture() -> str:
    """Return the Debian name of the machine's architecture."""
    machine = platform.machine().lower()
    return DEBIAN_ARCHITECTURES.get(machine, machine)


def merge_arch_variables(variables: dict[str, list[str]], arch: str) -> dict[str, list[str]]:
    """
    Fold `name_<arch>` variables into `name`.

    Base values come first, then the architecture-specific ones. Variables
    suffixed for any other architecture are passed through untouched, and the
    input mapping is not modified.
    """
    suffix = f"_{arch}"
    merged = {name: list(values) for name, values in variables.items()}
    for name, values in variables.items():
        if not name.endswith(suffix) or name == suffix:
            continue
        base_name = name[: -len(suffix)]
        merged.setdefault(base_name, []).extend(values)
    return merged
