"""Caddyfile commit-pin rewriting.

The Caddyfile references immutable asset manifests by commit, e.g.::

    @<40-hex-sha>/10.11/manifest.json
    @<40-hex-sha>/{http.regexp.VER.1}/manifest.json

``update_config`` swaps the sha in every such path for a new one and writes
the file back in place. The write is a plain truncate-and-write: there is no
backup and no atomic rename.
"""

from __future__ import annotations

import os
import re

from caddyhook.logging import get_logger

log = get_logger("caddyhook.patcher")

REVISION_RE = re.compile(r"^[0-9a-fA-F]{40}$")

# Applied in order; a pin can only match one of them.
PIN_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Fixed version number
    re.compile(r"(@)[a-fA-F0-9]{40}(/10\.11/manifest\.json)"),
    # Caddy placeholder version
    re.compile(r"(@)[a-fA-F0-9]{40}(/\{http\.regexp\.VER\.1\}/manifest\.json)"),
)

CONFIG_FILE_MODE = 0o644


class InvalidRevisionError(ValueError):
    """Raised when a revision is not a 40-character hex commit sha."""


class ConfigPatchError(Exception):
    """Raised when the Caddyfile cannot be read or written."""

    def __init__(self, step: str, path: str, detail: str) -> None:
        self.step = step
        self.path = path
        self.detail = detail
        super().__init__(f"{step} {path}: {detail}")


def validate_revision(revision: str) -> None:
    if not REVISION_RE.match(revision):
        raise InvalidRevisionError(f"Invalid revision {revision!r}: expected 40 hex characters")


def rewrite_pins(content: str, new_revision: str) -> tuple[str, int]:
    """Replace the sha of every manifest pin in *content*.

    Returns the rewritten text and the number of pins replaced. The ``@``
    delimiter and the path suffix are kept as they were.
    """
    validate_revision(new_revision)

    total = 0
    for pattern in PIN_PATTERNS:
        content, count = pattern.subn(lambda m: f"{m.group(1)}{new_revision}{m.group(2)}", content)
        total += count
    return content, total


def update_config(path: str, new_revision: str) -> int:
    """Rewrite the manifest pins in the file at *path* to *new_revision*.

    Returns the number of pins replaced. The file is overwritten even when
    nothing matched.

    Raises:
        InvalidRevisionError: *new_revision* is not a 40-hex sha. The file is
            not touched.
        ConfigPatchError: Reading or writing the file failed.
    """
    validate_revision(new_revision)

    try:
        with open(path, encoding="utf-8", newline="") as fh:
            content = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigPatchError("read", path, str(exc)) from exc

    updated, count = rewrite_pins(content, new_revision)

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CONFIG_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(updated)
    except OSError as exc:
        raise ConfigPatchError("write", path, str(exc)) from exc

    log.debug("caddyfile_written", path=path, replacements=count)
    return count
