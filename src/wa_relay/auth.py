"""
Multi-file credential store for the transport session.

One directory holds ``creds.json`` (identity + registration state) and one
JSON file per signal key (``<type>-<id>.json``).
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from wa_relay.models.session import Session

log = logging.getLogger(__name__)

CREDS_FILE = "creds.json"


def _fix_file_name(name: str) -> str:
    return name.replace("/", "__").replace(":", "-")


class CredentialStore:
    def __init__(self, directory: Union[str, Path]):
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def files(self) -> list[Path]:
        if not self._dir.is_dir():
            return []
        return sorted(p for p in self._dir.iterdir() if p.is_file())

    def _read(self, name: str) -> Optional[Any]:
        try:
            return json.loads((self._dir / _fix_file_name(name)).read_text())
        except FileNotFoundError:
            return None
        except json.JSONDecodeError:
            log.warning("Ignoring unreadable credential file %s", name)
            return None

    def _write(self, name: str, data: Any) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._dir / _fix_file_name(name)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(json.dumps(data, indent=2))
        os.replace(tmp, path)

    def _remove(self, name: str) -> None:
        try:
            (self._dir / _fix_file_name(name)).unlink()
        except FileNotFoundError:
            pass

    def load(self) -> Session:
        creds = self._read(CREDS_FILE)
        return Session(creds=creds if isinstance(creds, dict) else {})

    def save(self, session: Session) -> None:
        self._write(CREDS_FILE, session.creds)

    def read_keys(self, key_type: str, ids: Iterable[str]) -> dict[str, Any]:
        """Return ``{id: value}`` for the stored keys; missing ids are omitted."""
        result: dict[str, Any] = {}
        for key_id in ids:
            value = self._read(f"{key_type}-{key_id}.json")
            if value is not None:
                result[key_id] = value
        return result

    def write_keys(self, data: dict[str, dict[str, Any]]) -> None:
        """Persist ``{type: {id: value}}``; a ``None`` value deletes the key."""
        for key_type, entries in data.items():
            for key_id, value in (entries or {}).items():
                name = f"{key_type}-{key_id}.json"
                if value is None:
                    self._remove(name)
                else:
                    self._write(name, value)

    def clear(self) -> list[Path]:
        """Delete every file in the session directory. Returns the removed paths."""
        removed = []
        for path in self.files():
            path.unlink()
            removed.append(path)
        return removed
