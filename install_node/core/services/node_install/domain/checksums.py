"""
L1 Domain — Checksum manifest parsing (pure).

Manifests use the ``sha256sum`` output format::

    5b1e5b5a...  node-v8.9.4-linux-x64.tar.gz
    0f3d2a1c... *node-v8.9.4-win-x64.zip

One or more spaces separate the digest from the file name; a ``*``
before the name marks binary mode and is not part of the name.
"""

from __future__ import annotations

import re

_LINE_RE = re.compile(r"^(?P<digest>[0-9a-fA-F]{32,128})\s+\*?(?P<name>\S.*?)\s*$")


def parse_manifest(text: str) -> dict[str, str]:
    """Map file name → lower-case hex digest.

    Lines that don't look like ``<hex> <name>`` (blank lines, PGP
    armor around a signed manifest) are ignored.  The first entry
    for a name wins.
    """
    entries: dict[str, str] = {}
    for line in text.splitlines():
        m = _LINE_RE.match(line.strip())
        if not m:
            continue
        entries.setdefault(m.group("name"), m.group("digest").lower())
    return entries


def find_manifest_digest(text: str, file_name: str) -> str | None:
    """Digest listed for ``file_name``, or None when the manifest lacks it."""
    return parse_manifest(text).get(file_name)
