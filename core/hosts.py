"""
core/hosts.py -- Host list input.

One host per line; only the first column (comma or whitespace separated)
is the identifier. Blank lines and # comments are ignored. Order and
duplicates are preserved: a host listed twice is probed twice.
"""

import re
from collections.abc import Iterable
from pathlib import Path

from core.errors import HostListError

# Hostname / FQDN labels, IPv4 dotted quads, or a bare IPv6 address.
_HOST_RE = re.compile(
    r"^(?=.{1,253}$)([A-Za-z0-9_]([A-Za-z0-9_-]{0,61}[A-Za-z0-9_])?)(\.[A-Za-z0-9_]([A-Za-z0-9_-]{0,61}[A-Za-z0-9_])?)*\.?$"
    r"|^[0-9A-Fa-f:]+:[0-9A-Fa-f:.]*$"
)
_SPLIT_RE = re.compile(r"[,\s]+")


def _first_column(line: str) -> str:
    return _SPLIT_RE.split(line.strip(), maxsplit=1)[0].strip().strip('"')


def parse_hosts(lines: Iterable[str]) -> list[str]:
    """Parse host identifiers from lines of text.

    Raises HostListError on the first malformed identifier, or if no
    identifiers remain after skipping blanks and comments.
    """
    hosts: list[str] = []
    for lineno, raw in enumerate(lines, 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        host = _first_column(line)
        if not _HOST_RE.match(host):
            raise HostListError(f"'{host}' is not a valid host name or address", line=lineno)
        hosts.append(host)
    if not hosts:
        raise HostListError("host list is empty")
    return hosts


def load_hosts(path: str) -> list[str]:
    """Read the host list file at path.

    Resolves symlinks and verifies the path is a regular file before reading.
    """
    file_path = Path(path).resolve()
    if not file_path.is_file():
        raise HostListError(f"'{path}' is not a readable file")
    try:
        text = file_path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise HostListError(f"could not read '{path}': {e}") from e
    return parse_hosts(text.splitlines())
