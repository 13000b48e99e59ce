import hashlib
import json
import logging
from typing import Any, Dict, List, Optional

from rescuemind.errors import StorageUnavailableError
from rescuemind.schemas import PlanManifestEntry
from rescuemind.store import KeyValueStore, StoreError
from rescuemind.utils import now_iso

logger = logging.getLogger(__name__)

PLANS_INDEX_KEY = "data/plans/index.json"


def plan_key(incident_id: str) -> str:
    return f"data/plans/{incident_id}.json"


def update_signature(updates: List[Dict[str, str]]) -> str:
    """SHA-256 over the compact JSON of the open updates, order preserved.

    Reordering the same updates yields a different signature.
    """
    raw = json.dumps(updates, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class PlanCache:
    """Generated plans per incident, each tagged with the update signature it was built from."""

    def __init__(self, store: Optional[KeyValueStore]) -> None:
        self.store = store

    @property
    def enabled(self) -> bool:
        return self.store is not None

    def lookup(self, incident_id: str, sig: str) -> Optional[Dict[str, Any]]:
        if not self.enabled or not incident_id:
            return None
        try:
            raw = self.store.get(plan_key(incident_id))
            entry = json.loads(raw) if raw else None
        except (StoreError, ValueError) as exc:
            logger.warning("Plan cache lookup failed for %s: %s", incident_id, exc)
            return None
        if not isinstance(entry, dict):
            return None
        meta = entry.get("__meta")
        if isinstance(meta, dict) and meta.get("updateSig") == sig and entry.get("plan"):
            return entry["plan"]
        return None

    def save(self, incident_id: str, plan: Dict[str, Any], sig: str, model: str) -> None:
        if not self.enabled or not incident_id:
            return
        wrapped = {"plan": plan, "__meta": {"updateSig": sig, "model": model, "generatedAt": now_iso()}}
        self.store.put(plan_key(incident_id), json.dumps(wrapped, ensure_ascii=False))
        try:
            self._upsert_manifest(incident_id)
        except (StoreError, ValueError) as exc:
            logger.warning("Plans manifest update failed for %s: %s", incident_id, exc)

    def _upsert_manifest(self, incident_id: str) -> None:
        raw = self.store.get(PLANS_INDEX_KEY)
        index = json.loads(raw) if raw else {}
        if not isinstance(index, dict):
            index = {}
        plans = index.get("plans") if isinstance(index.get("plans"), list) else []
        plans = [p for p in plans if isinstance(p, dict)]
        entry = PlanManifestEntry(id=incident_id, file=plan_key(incident_id), updatedAt=now_iso()).model_dump()
        for i, p in enumerate(plans):
            if p.get("id") == incident_id:
                plans[i] = entry
                break
        else:
            plans.append(entry)
        index["plans"] = plans
        self.store.put(PLANS_INDEX_KEY, json.dumps(index, ensure_ascii=False))

    def get(self, incident_id: str) -> Optional[Dict[str, Any]]:
        if not self.enabled:
            raise StorageUnavailableError("PLANS store")
        raw = self.store.get(plan_key(incident_id))
        return json.loads(raw) if raw else None

    def manifest(self) -> Dict[str, Any]:
        if not self.enabled:
            raise StorageUnavailableError("PLANS store")
        raw = self.store.get(PLANS_INDEX_KEY)
        return json.loads(raw) if raw else {"plans": []}
