"""
makedeb output parsing.

`makedeb -g` prints freshly computed checksum declarations, one per
variable, each possibly spanning several lines:

    sha256sums=('abc...'
                'def...')
    b2sums=('012...')
"""

import re

DECLARATION_RE = re.compile(r"^[a-zA-Z0-9_]+=", re.MULTILINE)


def parse_makedeb_g(output: str) -> dict[str, str]:
    """
    Split `makedeb -g` output into variable name -> value literal.

    A declaration runs from its `name=` up to the start of the next
    declaration (or the end of output). Values are returned as literals,
    ready to be patched back into a PKGBUILD.
    """
    declarations: dict[str, str] = {}
    matches = list(DECLARATION_RE.finditer(output))
    for idx, match in enumerate(matches):
        end = matches[idx + 1].start() if idx + 1 < len(matches) else len(output)
        declaration = output[match.start() : end].strip()
        name, _, value = declaration.partition("=")
        declarations[name] = value
    return declarations
