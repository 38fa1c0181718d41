"""Client-side queue of clock events awaiting submission.

Backed by a single JSON file so queued events survive an app restart.
Events leave the queue only once the server reports them synced or
duplicate; errored events stay for the next attempt.
"""
from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from ..common.datetime_utils import ensure_utc, now_utc, parse_iso_datetime
from ..common.validators import optional_non_negative, require_coordinates
from ..core.enums import EventKind
from ..geo import GeoPoint, NearestMatch, nearest
from ..worksites.model import Worksite
from .model import OfflineEvent, ReconcileResult

logger = logging.getLogger(__name__)


def _worksite_to_dict(w: Worksite) -> dict:
    return {
        "worksite_id": w.worksite_id,
        "name": w.name,
        "address": w.address,
        "city": w.city,
        "latitude": w.latitude,
        "longitude": w.longitude,
        "radius_meters": w.radius_meters,
    }


def _worksite_from_dict(d: dict) -> Worksite:
    return Worksite(
        worksite_id=int(d["worksite_id"]),
        name=d["name"],
        address=d.get("address", ""),
        city=d.get("city"),
        latitude=float(d["latitude"]),
        longitude=float(d["longitude"]),
        radius_meters=float(d["radius_meters"]),
    )


class OfflineQueue:
    def __init__(self, path, *, clock=None):
        self._path = Path(path)
        self._clock = clock or now_utc
        self._lock = threading.Lock()

    def _load(self) -> dict:
        if not self._path.exists():
            return {"events": [], "worksites": [], "worksites_synced_at": None}
        with self._path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        data.setdefault("events", [])
        data.setdefault("worksites", [])
        data.setdefault("worksites_synced_at", None)
        return data

    def _save(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self._path)

    def enqueue(
        self,
        kind: EventKind,
        position: GeoPoint,
        *,
        accuracy: Optional[float] = None,
        device_info: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> OfflineEvent:
        lat, lng = require_coordinates(position.latitude, position.longitude)
        event = OfflineEvent(
            idempotency_key=str(uuid.uuid4()),
            kind=EventKind(kind),
            timestamp=ensure_utc(timestamp) if timestamp else self._clock(),
            latitude=lat,
            longitude=lng,
            accuracy=optional_non_negative(accuracy, "accuracy"),
            device_info=device_info,
        )
        with self._lock:
            data = self._load()
            data["events"].append(event.to_dict())
            self._save(data)
        return event

    def pending(self) -> List[OfflineEvent]:
        with self._lock:
            data = self._load()
        return [OfflineEvent.from_dict(e) for e in data["events"]]

    def payload(self) -> List[dict]:
        """Request body records for POST /api/sync/clock-records."""
        return [e.to_dict() for e in self.pending()]

    def apply_result(self, result: ReconcileResult) -> int:
        """Drop settled events; returns how many were removed."""
        settled = result.settled_keys()
        with self._lock:
            data = self._load()
            kept = [e for e in data["events"] if e["idempotency_key"] not in settled]
            removed = len(data["events"]) - len(kept)
            data["events"] = kept
            self._save(data)

        if result.errors:
            logger.warning("%d offline events kept for retry", len(result.errors))
        return removed

    def cache_worksites(self, worksites: Sequence[Worksite], *, synced_at=None) -> None:
        if isinstance(synced_at, str):
            synced_at = parse_iso_datetime(synced_at, "synced_at")
        synced_at = ensure_utc(synced_at) if synced_at else self._clock()
        with self._lock:
            data = self._load()
            data["worksites"] = [_worksite_to_dict(w) for w in worksites]
            data["worksites_synced_at"] = synced_at.isoformat()
            self._save(data)

    def cached_worksites(self) -> List[Worksite]:
        with self._lock:
            data = self._load()
        return [_worksite_from_dict(w) for w in data["worksites"]]

    def nearest_cached_worksite(self, position: GeoPoint) -> Optional[NearestMatch[Worksite]]:
        """Best guess while offline; the server re-resolves on sync."""
        return nearest(position, self.cached_worksites())
