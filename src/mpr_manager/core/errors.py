"""
Error types raised by mpr-manager.

Every failure surfaced to a caller derives from MprError so the CLI can turn
it into a single user-facing message.
"""


class MprError(Exception):
    """Base class for all mpr-manager errors."""


class PkgbuildReadError(MprError):
    """The PKGBUILD file could not be read."""


class PkgbuildWriteError(MprError):
    """The PKGBUILD file could not be written."""


class ExtractionError(MprError):
    """Sourcing a PKGBUILD to recover its variables failed."""


class VariableNotFoundError(MprError):
    def __init__(self, name: str):
        super().__init__(f"variable {name} not found")
        self.name = name


class MultiValuedVariableError(MprError):
    def __init__(self, name: str, count: int):
        super().__init__(f"variable {name} has {count} values")
        self.name = name
        self.count = count


class MissingVariableError(MprError):
    """None of the variables a derivation needs are declared."""


class LengthMismatchError(MprError):
    """Positionally paired variables have different element counts."""


class RepologyError(MprError):
    """A Repology lookup failed or returned no usable version."""


class CommandError(MprError):
    """An external command exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int):
        super().__init__(f"command {' '.join(args)!r} exited with status {returncode}")
        self.args_list = args
        self.returncode = returncode


class PackageNotInstalledError(MprError):
    def __init__(self, name: str):
        super().__init__(f"package not installed: {name}")
        self.name = name


class ParallelWorkError(MprError):
    """One or more items of a parallel run failed."""

    def __init__(self, failures: list[tuple[str, BaseException]]):
        lines = "".join(f"- {item}: {exc}\n" for item, exc in failures)
        super().__init__(f"some packages had errors:\n{lines}")
        self.failures = failures
