"""
Package data models.

Plain records produced from PKGBUILD variables and by the package workflows.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceEntry:
    """One downloadable artifact declared in a PKGBUILD's `source` array."""

    local_name: str
    remote_url: str
    hash: str

    @classmethod
    def from_spec(cls, spec: str, hash_value: str) -> "SourceEntry":
        """
        Build an entry from a `source` element.

        'a.tar.gz::https://x/y.tar.gz' -> local 'a.tar.gz', url 'https://x/y.tar.gz'
        'https://x/y.tar.gz'           -> local 'y.tar.gz', url unchanged
        """
        if "::" in spec:
            local_name, remote_url = spec.split("::", 1)
            return cls(local_name=local_name, remote_url=remote_url, hash=hash_value)
        return cls(local_name=spec.rstrip("/").rsplit("/", 1)[-1], remote_url=spec, hash=hash_value)


@dataclass
class StalePackage:
    """A package whose pkgver is behind Repology's newest version."""

    name: str
    current: str
    newest: str
