"""Dotted-key access to a repository's ``config`` file.

Backed by :class:`dulwich.config.ConfigFile`; every ``set`` is written
through to disk.
"""

from __future__ import annotations

import os

from dulwich.config import ConfigFile


def _split_key(key: str) -> tuple[tuple[bytes, ...], bytes]:
    """Split ``section[.subsection].name`` into dulwich's (section, name) form.

    The subsection is everything between the first and last dot, so it
    may itself contain dots (``branch.release.1.remote``).
    """
    first, sep, rest = key.partition(".")
    if not first or not sep or not rest:
        raise ValueError(f"Invalid config key {key!r}: expected section.name")
    subsection, dot, name = rest.rpartition(".")
    if not name or (dot and not subsection):
        raise ValueError(f"Invalid config key {key!r}")
    section: tuple[bytes, ...] = (first.encode(),)
    if subsection:
        section = (first.encode(), subsection.encode())
    return section, name.encode()


class GitConfig:
    """Read and write git config values by dotted key."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = os.fspath(path)

    def __repr__(self) -> str:
        return f"GitConfig({self.path!r})"

    def _load(self) -> ConfigFile:
        if os.path.exists(self.path):
            return ConfigFile.from_path(self.path)
        cfg = ConfigFile()
        cfg.path = self.path
        return cfg

    def get(self, key: str) -> str | None:
        """Return the value for *key*, or ``None`` if unset."""
        section, name = _split_key(key)
        try:
            return self._load().get(section, name).decode()
        except KeyError:
            return None

    def set(self, key: str, value: str | bool | int) -> None:
        section, name = _split_key(key)
        if isinstance(value, bool):
            value = "true" if value else "false"
        cfg = self._load()
        cfg.set(section, name, str(value).encode())
        cfg.write_to_path(self.path)
