import json

from rescuemind import app as app_module
from rescuemind.config import SETTINGS
from rescuemind.plans import PLANS_INDEX_KEY, PlanCache
from rescuemind.ratelimit import RateLimiter
from rescuemind.service import PlanService
from rescuemind.store import MemoryStore
from rescuemind.tests.helpers import PLAN_JSON, completion

UPDATES = [
    {"text": "Bridge A closed", "ts": "2025-09-11T10:00:00Z"},
    {"text": "Shelter at gym full", "ts": "2025-09-11T10:20:00Z"},
]


def _payload(updates=UPDATES, **extra):
    body = {
        "scenario": {"type": "Flood", "location": "Riverside Town", "population": 500, "details": "River rising."},
        "updates": updates,
        "options": {},
        "incidentId": "riverside-flood",
    }
    body.update(extra)
    return body


def test_generate_returns_plan(client, upstream):
    r = client.post("/plan", json=_payload(), headers={"Origin": "https://rescuemind.example"})
    assert r.status_code == 200
    body = r.json()
    assert body["summary"] == PLAN_JSON["summary"]
    assert body["priorities"] == PLAN_JSON["priorities"]
    assert r.headers["access-control-allow-origin"] == "*"
    assert r.headers["cache-control"] == "no-store"
    assert upstream.call_count == 1


def test_same_updates_are_served_from_cache(client, upstream):
    first = client.post("/plan", json=_payload())
    second = client.post("/plan", json=_payload())
    assert upstream.call_count == 1
    assert second.content == first.content


def test_changed_updates_force_regeneration(client, upstream):
    client.post("/plan", json=_payload())
    edited = [dict(UPDATES[0], text="Bridge A reopened"), UPDATES[1]]
    retimed = [dict(UPDATES[0], ts="2025-09-11T11:00:00Z"), UPDATES[1]]
    client.post("/plan", json=_payload(edited))
    client.post("/plan", json=_payload(retimed))
    client.post("/plan", json=_payload(UPDATES[:1]))
    client.post("/plan", json=_payload(list(reversed(UPDATES))))
    assert upstream.call_count == 5


def test_resolved_updates_do_not_affect_the_fingerprint(client, upstream):
    client.post("/plan", json=_payload())
    closed = UPDATES + [{"text": "Power restored", "ts": "2025-09-11T12:00:00Z", "resolved": True}]
    client.post("/plan", json=_payload(closed))
    assert upstream.call_count == 1


def test_scenario_changes_do_not_invalidate_cache(client, upstream):
    client.post("/plan", json=_payload())
    client.post("/plan", json=_payload(scenario={"type": "Flood", "population": 900}))
    assert upstream.call_count == 1


def test_plan_is_stored_with_manifest(client, upstream):
    client.post("/plan", json=_payload())
    stored = client.get("/plans/riverside-flood").json()
    assert stored["plan"]["summary"] == PLAN_JSON["summary"]
    assert stored["__meta"]["model"] == SETTINGS.light_model
    assert len(stored["__meta"]["updateSig"]) == 64
    manifest = client.get("/plans").json()
    assert [p["id"] for p in manifest["plans"]] == ["riverside-flood"]
    client.post("/plan", json=_payload(UPDATES[:1]))
    manifest = client.get("/plans").json()
    assert len(manifest["plans"]) == 1
    assert manifest["plans"][0]["file"] == "data/plans/riverside-flood.json"
    text = client.get("/plans/riverside-flood/text")
    assert text.status_code == 200
    assert "- Evacuate low-lying neighborhoods" in text.text


def test_without_incident_id_nothing_is_cached(client, upstream):
    client.post("/plan", json=_payload(incidentId=""))
    client.post("/plan", json=_payload(incidentId=""))
    assert upstream.call_count == 2
    assert client.get("/plans").json() == {"plans": []}


def test_unknown_plan_is_404(client):
    assert client.get("/plans/nope").status_code == 404


def test_prompt_is_redacted(client, upstream):
    scenario = {
        "type": "Flood",
        "details": "contact me at a@b.com or 555-123-4567",
        "resources": "medics, call 555-987-6543 or ops@relief.org",
        "constraints": "see https://x.example/y",
    }
    client.post("/plan", json=_payload(scenario=scenario))
    sent = json.dumps(upstream.call_args.kwargs["json"])
    for secret in ("a@b.com", "555-123-4567", "555-987-6543", "ops@relief.org", "https://x.example/y"):
        assert secret not in sent
    assert "[REDACTED]" in sent
    assert "[LINK]" in sent


def test_rate_limit_returns_429(client, upstream, monkeypatch):
    monkeypatch.setattr(app_module, "rate_limiter", RateLimiter(MemoryStore(), limit=2, window_s=60))
    headers = {"CF-Connecting-IP": "203.0.113.9"}
    assert client.post("/plan", json=_payload(incidentId=""), headers=headers).status_code == 200
    assert client.post("/plan", json=_payload(incidentId=""), headers=headers).status_code == 200
    r = client.post("/plan", json=_payload(incidentId=""), headers=headers)
    assert r.status_code == 429
    assert r.json() == {"error": "Rate limit exceeded"}
    other = client.post("/plan", json=_payload(incidentId=""), headers={"CF-Connecting-IP": "203.0.113.10"})
    assert other.status_code == 200


def test_upstream_failure_is_502(client, upstream):
    upstream.return_value = completion("", status=500, text="model overloaded")
    r = client.post("/plan", json=_payload())
    assert r.status_code == 502
    body = r.json()
    assert body["error"] == "Upstream error"
    assert body["tried"][0] == SETTINGS.light_model
    assert body["upstream"] == "model overloaded"


def test_unparseable_model_output_is_500(client, upstream):
    upstream.return_value = completion("I'm sorry, I can't produce a plan right now.")
    r = client.post("/plan", json=_payload())
    assert r.status_code == 500
    assert r.json() == {"error": "Invalid model response", "raw": "I'm sorry, I can't produce a plan right now."}
    assert client.get("/plans/riverside-flood").status_code == 404


def test_fenced_model_output_is_accepted(client, upstream):
    upstream.return_value = completion("Here you go:\n```json\n" + json.dumps(PLAN_JSON) + "\n```")
    r = client.post("/plan", json=_payload())
    assert r.status_code == 200
    assert r.json()["risks"] == PLAN_JSON["risks"]


def test_malformed_body_is_400(client, upstream):
    r = client.post("/plan", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 400
    assert client.post("/plan", json=[1, 2]).status_code == 400
    assert upstream.call_count == 0


def test_template_provider_needs_no_network(client, upstream, monkeypatch):
    monkeypatch.setattr(SETTINGS, "provider", "template")
    body = _payload()
    body["scenario"]["resources"] = "medics, volunteers"
    body["scenario"]["constraints"] = "Bridge A closed"
    r = client.post("/plan", json=body)
    assert r.status_code == 200
    plan = r.json()
    assert upstream.call_count == 0
    assert plan["inputs"]["resources"] == ["medics", "volunteers"]
    assert "Reroute evacuations and logistics; update detours and communicate alternate routes." in plan["actions"]
    assert "Open additional shelters or expand capacity; ensure intake, sanitation, and supplies." in plan["actions"]
    assert plan["risks"] == ["Limited road access may delay evacuations"]
    assert client.get("/plans/riverside-flood").json()["__meta"]["model"] == "template-v1"


def test_plan_reads_need_a_store(client, monkeypatch):
    monkeypatch.setattr(app_module, "plan_service", PlanService(PlanCache(None), settings=SETTINGS))
    assert client.get("/plans").status_code == 501
    assert client.get("/plans/x").status_code == 501


def test_health(client):
    assert client.get("/health").json() == {"ok": True, "provider": "openai_compat"}


def test_non_list_input_updates_from_model_fall_back(client, upstream):
    upstream.return_value = completion(json.dumps(dict(PLAN_JSON, inputs={"updates": 3})))
    r = client.post("/plan", json=_payload())
    assert r.status_code == 200
    assert r.json()["inputs"]["updates"] == UPDATES


def test_fingerprint_uses_unredacted_updates(client, upstream):
    client.post("/plan", json=_payload([{"text": "Call 555-123-4567", "ts": "t1"}]))
    client.post("/plan", json=_payload([{"text": "Call 555-987-6543", "ts": "t1"}]))
    assert upstream.call_count == 2


def test_corrupt_plans_manifest_does_not_fail_generation(client, upstream, monkeypatch):
    store = MemoryStore()
    store.put(PLANS_INDEX_KEY, json.dumps({"plans": 7}))
    monkeypatch.setattr(app_module, "plan_service", PlanService(PlanCache(store), settings=SETTINGS))
    r = client.post("/plan", json=_payload())
    assert r.status_code == 200
    assert [p["id"] for p in client.get("/plans").json()["plans"]] == ["riverside-flood"]
