"""
Package name resolution

A distribution's declared name rarely matches the module it installs
(``PyYAML`` installs ``yaml``). The canonical names of all extension
packages are looked up in one batched query run by the host interpreter,
whose output is matched to the input by position.
"""

import subprocess
import sys
from typing import Dict, Iterable, Optional

from ..core.errors import PackageMetadataFailed
from ..utils.logging import get_logger

logger = get_logger(__name__)

NAME_TEMPLATE = "{top_level}"

# Run as ``python -c QUERY_SCRIPT <template> <distribution>...``.
# Prints one formatted line per distribution, exits 1 on an unknown one.
QUERY_SCRIPT = """\
import re
import sys
from importlib import metadata


def top_level(dist, normalized):
    text = dist.read_text("top_level.txt")
    if text:
        candidates = text.split()
    else:
        candidates = []
        for f in dist.files or ():
            parts = f.parts
            if not parts or parts[0] in ("..", "__pycache__"):
                continue
            if parts[0].endswith((".dist-info", ".egg-info", ".data")):
                continue
            if len(parts) > 1:
                candidates.append(parts[0])
            elif parts[0].endswith(".py"):
                candidates.append(parts[0][:-3])
    candidates = list(dict.fromkeys(candidates))
    public = [c for c in candidates if c.isidentifier() and not c.startswith("_")]
    if normalized in public:
        return normalized
    if public:
        return sorted(public)[0]
    if candidates:
        return sorted(candidates)[0]
    return normalized


def main(template, refs):
    for ref in refs:
        try:
            dist = metadata.distribution(ref)
        except metadata.PackageNotFoundError:
            sys.stderr.write("package not found: %s\\n" % ref)
            return 1
        name = dist.metadata["Name"] or ref
        normalized = re.sub(r"[-_.]+", "_", name).lower()
        fields = {
            "name": name,
            "top_level": top_level(dist, normalized),
            "version": dist.version,
        }
        try:
            print(template.format(**fields))
        except (KeyError, IndexError, ValueError) as e:
            sys.stderr.write("bad template %r: %s\\n" % (template, e))
            return 2
    return 0


sys.exit(main(sys.argv[1], sys.argv[2:]))
"""


def resolve_package_names(
    packages: Iterable[str],
    python: Optional[str] = None,
    template: str = NAME_TEMPLATE,
    timeout: Optional[float] = None,
) -> Dict[str, str]:
    """
    Resolve the canonical short name of each package

    Args:
        packages: Distribution names; duplicates are queried once
        python: Interpreter whose environment holds the packages
        template: Format string applied to each distribution's fields
            (``name``, ``top_level``, ``version``)
        timeout: Seconds before the query is abandoned

    Returns:
        Mapping package -> name, the i-th output line belonging to the
        i-th distinct package

    Raises:
        PackageMetadataFailed: The query failed or returned too few names
    """
    refs = list(dict.fromkeys(packages))
    if not refs:
        return {}

    cmd = [python or sys.executable, "-c", QUERY_SCRIPT, template, *refs]
    logger.debug(f"Querying package names: {refs}")
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, check=False, timeout=timeout
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise PackageMetadataFailed(
            f"Error retrieving package names: {e}", {"packages": refs}
        ) from e

    if result.returncode != 0:
        raise PackageMetadataFailed(
            f"Error retrieving package names: {result.stderr.strip()}",
            {"packages": refs, "exit_code": result.returncode},
        )

    # one name per line; a template may put spaces inside a name
    names = [line.strip() for line in result.stdout.splitlines() if line.strip()]
    if len(names) < len(refs):
        raise PackageMetadataFailed(
            "Error retrieving package names.",
            {"packages": refs, "names": names},
        )

    return {ref: names[i] for i, ref in enumerate(refs)}
