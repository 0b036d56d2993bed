"""Credential stores: where the build engine looks up location access.

The OAuth code exchange happens elsewhere; these stores only hold the
resulting credentials, keyed by location id.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from indigoforge.models.credentials import LocationCredentials

logger = logging.getLogger(__name__)


@runtime_checkable
class CredentialStore(Protocol):
    """Anything that can look up and save per-location credentials."""

    def get(self, location_id: str) -> LocationCredentials | None:
        ...

    def save(self, credentials: LocationCredentials) -> None:
        ...


class InMemoryCredentialStore:
    """Volatile store for tests and embedding."""

    def __init__(self, credentials: list[LocationCredentials] | None = None) -> None:
        self._by_location: dict[str, LocationCredentials] = {
            c.location_id: c for c in credentials or []
        }

    def get(self, location_id: str) -> LocationCredentials | None:
        return self._by_location.get(location_id)

    def save(self, credentials: LocationCredentials) -> None:
        self._by_location[credentials.location_id] = credentials

    def locations(self) -> list[str]:
        return list(self._by_location)

    def default_location(self) -> str | None:
        return next(iter(self._by_location), None)


class JsonCredentialStore:
    """Credentials persisted in a single JSON file keyed by location id.

    Parameters
    ----------
    path:
        File location. Parent directories are created on first save.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, dict]:
        if not self._path.exists():
            return {}
        data = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Credential file {self._path} must hold a JSON object")
        return data

    def get(self, location_id: str) -> LocationCredentials | None:
        with self._lock:
            raw = self._read().get(location_id)
        return LocationCredentials.model_validate(raw) if raw else None

    def save(self, credentials: LocationCredentials) -> None:
        with self._lock:
            data = self._read()
            data[credentials.location_id] = credentials.model_dump(
                mode="json", by_alias=True
            )
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(data, indent=2, sort_keys=True), encoding="utf-8"
            )
        logger.info("Stored credentials for location %s", credentials.location_id)

    def locations(self) -> list[str]:
        with self._lock:
            return sorted(self._read())

    def default_location(self) -> str | None:
        """The only stored location, or the first alphabetically."""
        locations = self.locations()
        return locations[0] if locations else None
