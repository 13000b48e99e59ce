import json
import logging
from typing import Any, Dict, Optional

from rescuemind.errors import NotFoundError, StorageUnavailableError, ValidationError
from rescuemind.schemas import ManifestEntry
from rescuemind.store import KeyValueStore, StoreError
from rescuemind.utils import MAX_INCIDENT_UPDATES, clip, now_iso, sanitize_incident

logger = logging.getLogger(__name__)

INCIDENTS_INDEX_KEY = "data/incidents/index.json"


def incident_key(incident_id: str) -> str:
    return f"data/incidents/{incident_id}.json"


class IncidentStore:
    """Incident records plus the manifest that indexes them.

    Record and manifest are two separate writes with no transaction: a manifest
    failure after a successful record write is logged and left for the next
    write of that incident to repair. Concurrent writers to the same id can
    clobber each other's read-modify-write.
    """

    def __init__(self, store: Optional[KeyValueStore]) -> None:
        self.store = store

    def _kv(self) -> KeyValueStore:
        if self.store is None:
            raise StorageUnavailableError("INCIDENTS store")
        return self.store

    def check_configured(self) -> None:
        self._kv()

    def list(self) -> Dict[str, Any]:
        raw = self._kv().get(INCIDENTS_INDEX_KEY)
        return json.loads(raw) if raw else {"incidents": []}

    def get(self, incident_id: str) -> Dict[str, Any]:
        raw = self._kv().get(incident_key(incident_id))
        if not raw:
            raise NotFoundError()
        return json.loads(raw)

    def put(self, incident_id: str, body: Any) -> Dict[str, Any]:
        kv = self._kv()
        if not isinstance(body, dict):
            raise ValidationError("Invalid body")
        if (body.get("id") or incident_id) != incident_id:
            raise ValidationError("ID mismatch")
        if not incident_id or len(incident_id) > 120:
            raise ValidationError("Invalid id")
        incident = sanitize_incident({**body, "id": incident_id})
        if not incident.createdAt:
            incident.createdAt = now_iso()
        file_name = f"{incident.id}.json"
        kv.put(incident_key(incident.id), json.dumps(incident.model_dump(), indent=2, ensure_ascii=False))
        try:
            self._upsert_manifest(kv, incident.id, file_name)
        except (StoreError, ValueError) as exc:
            logger.warning("Incident manifest update failed for %s: %s", incident.id, exc)
        return {"ok": True, "id": incident.id, "file": file_name}

    def _upsert_manifest(self, kv: KeyValueStore, incident_id: str, file_name: str) -> None:
        raw = kv.get(INCIDENTS_INDEX_KEY)
        index = json.loads(raw) if raw else {}
        if not isinstance(index, dict):
            index = {}
        incidents = index.get("incidents") if isinstance(index.get("incidents"), list) else []
        incidents = [x for x in incidents if isinstance(x, dict)]
        entry = ManifestEntry(id=incident_id, file=file_name).model_dump()
        for i, x in enumerate(incidents):
            if x.get("id") == incident_id:
                incidents[i] = entry
                break
        else:
            incidents.append(entry)
        index["incidents"] = incidents
        kv.put(INCIDENTS_INDEX_KEY, json.dumps(index, indent=2, ensure_ascii=False))

    def patch_update(self, incident_id: str, op: Optional[str], payload: Dict[str, Any]) -> Dict[str, Any]:
        """Apply one add/resolve/delete to an incident's update log.

        Updates have no id of their own: resolve and delete address the first
        entry whose (ts, text) pair matches exactly, so duplicates are
        indistinguishable.
        """
        kv = self._kv()
        if not op:
            raise ValidationError("Missing op")
        if op not in ("add", "resolve", "delete"):
            raise ValidationError("Unsupported op")
        incident = self.get(incident_id)
        updates = incident.get("updates") if isinstance(incident.get("updates"), list) else []
        incident["updates"] = updates
        text, ts = payload.get("text"), payload.get("ts")

        if op == "add":
            text = clip(text, 280)
            if not text:
                raise ValidationError("Missing text")
            if len(updates) >= MAX_INCIDENT_UPDATES:
                raise ValidationError("Update log is full")
            updates.append({"text": text, "ts": clip(ts, 60) or now_iso(), "resolved": False})
        else:
            idx = next((i for i, u in enumerate(updates)
                        if isinstance(u, dict) and u.get("ts") == ts and u.get("text") == text), None)
            if idx is None:
                raise NotFoundError("Update not found")
            if op == "resolve":
                updates[idx]["resolved"] = bool(payload.get("resolved"))
            else:
                del updates[idx]

        kv.put(incident_key(incident_id), json.dumps(incident, indent=2, ensure_ascii=False))
        return {"ok": True}
