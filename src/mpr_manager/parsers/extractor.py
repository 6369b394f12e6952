"""
PKGBUILD Variable Extractor.

Recovers the variables a PKGBUILD defines by sourcing it with a real shell
inside a throwaway directory and diffing the shell's variable table before
and after. No shell grammar is implemented here: bash does the evaluation,
and we only parse its `name=value` dump.
"""

import logging
import subprocess
import tempfile
from pathlib import Path

from mpr_manager.core.errors import ExtractionError

logger = logging.getLogger(__name__)


HARNESS_NAME = "pkgbuild-var-printer.sh"

# PKGBUILDs are byte streams; undecodable bytes survive as lone surrogates.
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogateescape"

# Names the harness itself (or bash) introduces while sourcing.
BOOKKEEPING_NAMES = ("_", "BASH_ARGC", "BASH_ARGV", "BASH_LINENO", "BASH_SOURCE", "PIPESTATUS", "oldvars")

HARNESS_SCRIPT = r"""#!/bin/bash

oldvars=$(set | grep -E '^[a-zA-Z0-9_]+=' | sort)
source ./PKGBUILD 1>&2
newvars=$(set | grep -E '^[a-zA-Z0-9_]+=' | sort)
newvarnames=$(diff <(echo "$oldvars") <(echo "$newvars") | grep -E '^>' | sed -r 's/^> ([a-zA-Z0-9_]+)=.*$/\1/g' | sort -u)

for varName in $newvarnames; do
  case $varName in
    %(skip)s)
      continue
      ;;
  esac

  if [[ $(declare -p "$varName" 2>/dev/null) =~ "declare -a" ]]; then
    eval "temp_array=(\"\${$varName[@]}\")"
    for element in "${temp_array[@]}"; do
      echo "$varName=$element"
    done
  else
    echo "$varName=${!varName}"
  fi
done
""" % {"skip": "|".join(BOOKKEEPING_NAMES)}


def parse_variable_output(output: str) -> dict[str, list[str]]:
    """
    Parse the harness output into a variable mapping.

    Each non-blank line is `name=value`, split on the first `=` only.
    Repeated names are array elements and keep their output order.

    Raises:
        ExtractionError: A line has no `=` in it.
    """
    variables: dict[str, list[str]] = {}
    for line in output.split("\n"):
        if not line.strip():
            continue
        name, sep, value = line.partition("=")
        if not sep:
            raise ExtractionError(f"invalid line in output: {line}")
        variables.setdefault(name, []).append(value)
    return variables


def extract_variables(contents: str, timeout: float | None = None) -> dict[str, list[str]]:
    """
    Source PKGBUILD text in an isolated scratch directory and return its variables.

    Args:
        contents: Raw PKGBUILD text.
        timeout: Seconds before the shell is killed. None waits forever.

    Returns:
        Mapping of variable name to its values (one per array element).
    """
    try:
        scratch = tempfile.TemporaryDirectory(prefix="tmp-pkgbuild")
    except OSError as e:
        raise ExtractionError(f"could not create scratch directory: {e}") from e

    with scratch as tmp_dir:
        workdir = Path(tmp_dir)
        try:
            (workdir / "PKGBUILD").write_text(contents, encoding=ENCODING, errors=ENCODING_ERRORS)
            harness = workdir / HARNESS_NAME
            harness.write_text(HARNESS_SCRIPT)
            harness.chmod(0o755)
        except OSError as e:
            raise ExtractionError(f"could not prepare scratch directory {workdir}: {e}") from e

        logger.debug(f"Sourcing PKGBUILD in {workdir}")
        try:
            process = subprocess.run(
                ["bash", HARNESS_NAME],
                cwd=str(workdir),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ExtractionError(f"sourcing PKGBUILD took longer than {timeout}s") from e
        except OSError as e:
            raise ExtractionError(f"could not run bash: {e}") from e

    if process.returncode != 0:
        stderr = process.stderr.decode(ENCODING, errors="replace").strip()
        raise ExtractionError(
            f"sourcing PKGBUILD failed with exit code {process.returncode}"
            + (f": {stderr}" if stderr else "")
        )

    # Lines end at '\n' only; a '\r' inside a value is kept.
    return parse_variable_output(process.stdout.decode(ENCODING, errors=ENCODING_ERRORS))
