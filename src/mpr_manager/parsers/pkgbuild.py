"""
PKGBUILD Document.

Wraps one PKGBUILD, either a file inside a package directory or text held in
memory, and caches both the text and the variables extracted from it. The
cache is an explicit state machine: writing new text marks the variables
stale, and the next read re-extracts them.
"""

import logging
from enum import Enum
from pathlib import Path

from mpr_manager.core.errors import (
    MissingVariableError,
    LengthMismatchError,
    MultiValuedVariableError,
    PkgbuildReadError,
    PkgbuildWriteError,
    VariableNotFoundError,
)
from mpr_manager.models.package import SourceEntry
from mpr_manager.parsers.arch import host_architecture, merge_arch_variables
from mpr_manager.parsers.extractor import ENCODING, ENCODING_ERRORS, extract_variables
from mpr_manager.parsers.patcher import patch_variable

logger = logging.getLogger(__name__)


PKGBUILD_FILENAME = "PKGBUILD"

# Checked in order; the first one declared is used.
HASH_VARIABLES = (
    "cksums",
    "md5sums",
    "sha1sums",
    "sha224sums",
    "sha256sums",
    "sha384sums",
    "sha512sums",
    "b2sums",
)


class TextState(Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"


class VariablesState(Enum):
    STALE = "stale"
    FRESH = "fresh"


class PKGBUILD:
    """
    A PKGBUILD-format script under management.

    Not safe for concurrent mutation; use one instance per package per
    thread of control.
    """

    def __init__(
        self,
        dir_path: Path | str | None,
        arch: str | None = None,
        extraction_timeout: float | None = None,
    ):
        self.dir_path = Path(dir_path) if dir_path is not None else None
        self.arch = arch or host_architecture()
        self.extraction_timeout = extraction_timeout

        self._text = ""
        # An in-memory PKGBUILD has no backing file to load from.
        self._text_state = TextState.UNLOADED if self.dir_path is not None else TextState.LOADED
        self._variables: dict[str, list[str]] = {}
        self._variables_state = VariablesState.STALE

    @classmethod
    def from_contents(cls, contents: str, arch: str | None = None) -> "PKGBUILD":
        """Create an in-memory PKGBUILD that never touches the filesystem."""
        pkgbuild = cls(None, arch=arch)
        pkgbuild._text = contents
        pkgbuild._text_state = TextState.LOADED
        return pkgbuild

    @property
    def path(self) -> Path | None:
        if self.dir_path is None:
            return None
        return self.dir_path / PKGBUILD_FILENAME

    @property
    def text_state(self) -> TextState:
        return self._text_state

    @property
    def variables_state(self) -> VariablesState:
        return self._variables_state

    def __repr__(self) -> str:
        where = str(self.path) if self.path else "<memory>"
        return f"PKGBUILD({where!r}, arch={self.arch!r})"

    # ──────────────────────────────────────────────
    # Text
    # ──────────────────────────────────────────────

    def get_text(self) -> str:
        """Return the PKGBUILD text, reading the file on first use."""
        if self._text_state is TextState.UNLOADED:
            try:
                self._text = self.path.read_text(encoding=ENCODING, errors=ENCODING_ERRORS)
            except OSError as e:
                raise PkgbuildReadError(f"could not read {self.path}: {e}") from e
            self._text_state = TextState.LOADED
        return self._text

    def set_text(self, text: str) -> None:
        """Replace the text, writing through to disk for file-backed PKGBUILDs."""
        if self.path is not None:
            try:
                self.path.write_text(text, encoding=ENCODING, errors=ENCODING_ERRORS)
            except OSError as e:
                raise PkgbuildWriteError(f"could not write {self.path}: {e}") from e
            logger.debug(f"Wrote {self.path}")

        self._text = text
        self._text_state = TextState.LOADED
        self._variables = {}
        self._variables_state = VariablesState.STALE

    # ──────────────────────────────────────────────
    # Variables
    # ──────────────────────────────────────────────

    def get_variables(self) -> dict[str, list[str]]:
        """
        Return every variable the PKGBUILD defines, arch-specific ones merged.

        The result is a copy; mutating it leaves the cache untouched.
        """
        return {name: list(values) for name, values in self._cached_variables().items()}

    def _cached_variables(self) -> dict[str, list[str]]:
        if self._variables_state is VariablesState.STALE:
            raw = extract_variables(self.get_text(), timeout=self.extraction_timeout)
            self._variables = merge_arch_variables(raw, self.arch)
            self._variables_state = VariablesState.FRESH
        return self._variables

    def get_variable(self, name: str) -> list[str]:
        variables = self._cached_variables()
        if name not in variables:
            raise VariableNotFoundError(name)
        return list(variables[name])

    def get_single_variable(self, name: str) -> str:
        values = self.get_variable(name)
        if len(values) != 1:
            raise MultiValuedVariableError(name, len(values))
        return values[0]

    def update_variable(self, name: str, new_value: str) -> None:
        """
        Patch the first `name=` assignment to `new_value` and persist it.

        `new_value` is inserted verbatim. If the variable is missing nothing
        is written and the cached state is left as it was.
        """
        patched = patch_variable(self.get_text(), name, new_value)
        self.set_text(patched)
        logger.info(f"Updated {name} in {self.path or 'in-memory PKGBUILD'}")

    # ──────────────────────────────────────────────
    # Derived data
    # ──────────────────────────────────────────────

    def get_hashes(self) -> list[str]:
        """Return the values of the first checksum variable that is declared."""
        variables = self.get_variables()
        for name in HASH_VARIABLES:
            if name in variables:
                return variables[name]
        raise MissingVariableError(f"none of {', '.join(HASH_VARIABLES)} found")

    def get_sources(self) -> list[SourceEntry]:
        """Pair every `source` element with its checksum."""
        hashes = self.get_hashes()
        variables = self.get_variables()
        if "source" not in variables:
            raise MissingVariableError("variable source not found")
        sources = variables["source"]

        if len(hashes) != len(sources):
            raise LengthMismatchError(
                f"source has {len(sources)} entries but checksums have {len(hashes)}"
            )
        return [SourceEntry.from_spec(spec, hash_value) for spec, hash_value in zip(sources, hashes)]

    def get_repology_pkgname(self) -> str:
        """
        Return the name to look the package up by on Repology.

        `repology_pkgname` wins when declared; otherwise `pkgname` with any
        `-bin` or `-git` suffix removed.
        """
        variables = self.get_variables()
        if variables.get("repology_pkgname"):
            return variables["repology_pkgname"][0]
        if variables.get("pkgname"):
            name = variables["pkgname"][0]
            for suffix in ("-bin", "-git"):
                name = name.removesuffix(suffix)
            return name
        raise MissingVariableError("repology_pkgname or pkgname not found")
