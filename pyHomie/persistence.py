"""Retained-value persistence in YAML.

A restarted device that cleared its topics with
:meth:`~pyHomie.device.Device.clear_topics` has lost the values the
broker retained for it.  :class:`ValueStore` keeps them locally instead:
one YAML document per device holding the last payload of every retained
property that has a value::

    device:
      id: thermostat
      nodes:
        heating:
          setpoint: '21.5'

Payloads are stored as strings and cast back with the property's
datatype rules when the property is re-created.

Every :meth:`ValueStore.save` first rotates the current file to
``<file>.bak`` and then replaces it with a freshly written temporary
file, so a crash mid-write leaves either the old or the new document in
place.  :meth:`ValueStore.load` falls back to the backup (and restores
it) when the primary file is missing or unreadable.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

import yaml

logger = logging.getLogger(__name__)

#: Nested mapping written to and read from the store.
ValueTree = Dict[str, Any]


class ValueStore:
    """One YAML document of retained values, with a rotating backup.

    Parameters
    ----------
    path:
        Location of the YAML document.  Missing parent directories are
        created by :meth:`save`.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def backup_path(self) -> Path:
        """``<path>.bak``, holding the document before the last save."""
        return self._path.with_name(self._path.name + ".bak")

    def save(self, tree: ValueTree) -> None:
        """Write *tree*, keeping the previous document as backup.

        Raises
        ------
        OSError
            If the document cannot be written.
        """
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        self._rotate_backup()

        fd, tmp_name = tempfile.mkstemp(
            dir=directory, prefix=self._path.name + ".", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as stream:
                yaml.safe_dump(
                    tree,
                    stream,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                )
            os.replace(tmp_name, self._path)
        except OSError:
            logger.error("Could not write %s", self._path)
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Stored retained values in %s", self._path)

    def load(self) -> Optional[ValueTree]:
        """Return the stored tree, or ``None`` if nothing usable exists."""
        for candidate in self._candidates():
            tree = self._read(candidate)
            if tree is None:
                continue
            if candidate == self.backup_path:
                logger.warning(
                    "Using backup %s because %s is unusable",
                    candidate,
                    self._path,
                )
                self._restore_primary()
            return tree
        return None

    def delete(self) -> None:
        """Remove the document and its backup."""
        for candidate in self._candidates():
            try:
                candidate.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove %s: %s", candidate, exc)

    # ---- internals ---------------------------------------------------

    def _candidates(self) -> Iterator[Path]:
        yield self._path
        yield self.backup_path

    def _rotate_backup(self) -> None:
        if not self._path.is_file():
            return
        try:
            shutil.copy2(self._path, self.backup_path)
        except OSError as exc:
            logger.warning("No backup of %s: %s", self._path, exc)

    def _restore_primary(self) -> None:
        try:
            shutil.copy2(self.backup_path, self._path)
        except OSError as exc:
            logger.warning("Could not restore %s: %s", self._path, exc)

    @staticmethod
    def _read(path: Path) -> Optional[ValueTree]:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cannot read %s: %s", path, exc)
            return None

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            logger.warning("Corrupt YAML in %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("%s does not hold a mapping", path)
            return None
        return data

    def __repr__(self) -> str:
        return f"ValueStore({str(self._path)!r})"
