import copy, json, math, re
from datetime import datetime, timezone
from typing import Any, Dict, List

from rescuemind.schemas import Incident, Plan, PlanRequest

MAX_POPULATION = 10_000_000
MAX_PLAN_UPDATES = 25
MAX_INCIDENT_UPDATES = 500

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

# --- Sanitizing ---
def clip(value: Any, max_len: int) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_len]

def num(value: Any, default: float = 0) -> float:
    """Best-effort numeric parse; booleans and anything unparsable or non-finite become `default`."""
    if isinstance(value, bool):
        return default
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    return v if math.isfinite(v) else default

def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))

def _obj(value: Any) -> Dict:
    return value if isinstance(value, dict) else {}

def _population(value: Any) -> int:
    return int(clamp(num(value or 0), 0, MAX_POPULATION))

def sanitize_plan_request(payload: Any) -> PlanRequest:
    """Bound every caller-supplied field of a plan request. Never raises."""
    body = _obj(payload)
    scenario = _obj(body.get("scenario"))
    options = _obj(body.get("options"))
    updates = body.get("updates")
    temperature = options.get("temperature")
    if isinstance(temperature, (int, float)) and not isinstance(temperature, bool) and math.isfinite(temperature):
        temperature = clamp(float(temperature), 0.0, 1.0)
    else:
        temperature = 0.2
    return PlanRequest.model_validate({
        "scenario": {
            "type": clip(scenario.get("type"), 60),
            "location": clip(scenario.get("location"), 120),
            "population": _population(scenario.get("population")),
            "details": clip(scenario.get("details"), 1200),
            "resources": clip(scenario.get("resources"), 1200),
            "constraints": clip(scenario.get("constraints"), 1200),
        },
        "updates": [
            {"text": clip(u.get("text"), 280), "ts": clip(u.get("ts"), 40), "resolved": bool(u.get("resolved"))}
            for u in map(_obj, updates[:MAX_PLAN_UPDATES] if isinstance(updates, list) else [])
        ],
        "options": {
            "model": clip(options.get("model"), 64),
            "temperature": temperature,
            "max_tokens": int(clamp(num(options.get("max_tokens") or 800, 800), 200, 1600)),
        },
        "incidentId": clip(body.get("incidentId"), 80),
    })

def sanitize_incident(payload: Any) -> Incident:
    body = _obj(payload)
    updates = body.get("updates")
    return Incident.model_validate({
        "id": clip(body.get("id"), 120),
        "name": clip(body.get("name"), 120),
        "type": clip(body.get("type") or "Other", 40),
        "status": clip(body.get("status") or "ongoing", 40),
        "population": _population(body.get("population")),
        "resources": clip(body.get("resources"), 1200),
        "constraints": clip(body.get("constraints"), 1200),
        "details": clip(body.get("details"), 2400),
        "lat": num(body.get("lat") or 0),
        "lng": num(body.get("lng") or 0),
        "createdAt": clip(body.get("createdAt"), 60),
        "updates": [
            {"text": clip(u.get("text"), 280), "ts": clip(u.get("ts"), 60), "resolved": bool(u.get("resolved"))}
            for u in map(_obj, updates[:MAX_INCIDENT_UPDATES] if isinstance(updates, list) else [])
        ],
    })

def split_list(text: str) -> List[str]:
    return [p.strip() for p in re.split(r"[,;\n]", text or "") if p.strip()]

# --- PII redaction ---
EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.I)
PHONE_RE = re.compile(r"\+?\d?[\s.-]?\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4}")
URL_RE = re.compile(r"https?://\S+", re.I)

def redact_text(s: str) -> str:
    s = EMAIL_RE.sub("[REDACTED]", s)
    s = PHONE_RE.sub("[REDACTED]", s)
    return URL_RE.sub("[LINK]", s)

def redact_pii(req: PlanRequest) -> Dict[str, Any]:
    """Model-facing copy of the request with emails, phones and links masked.

    Only unresolved updates are carried over; the caller's object is untouched.
    """
    out = copy.deepcopy(req.model_dump(exclude={"updates"}))
    for field in ("details", "location", "resources", "constraints"):
        out["scenario"][field] = redact_text(out["scenario"][field])
    out["updates"] = [{"text": redact_text(u["text"]), "ts": u["ts"]} for u in req.open_updates()]
    return out

# --- Plan normalization ---
PLAN_LISTS = ("priorities", "actions", "resourcesPlan", "risks")

def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v if isinstance(v, str) else json.dumps(v, ensure_ascii=False) for v in value if v is not None]

def normalize_plan(obj: Dict, req: PlanRequest) -> Dict:
    """Fill whatever the model left out so the result always validates as a Plan."""
    if not isinstance(obj.get("generatedAt"), str):
        obj["generatedAt"] = now_iso()
    if not isinstance(obj.get("scenario"), dict):
        obj["scenario"] = req.scenario.model_dump(include={"type", "location", "population", "details"})
    inputs = obj.get("inputs") if isinstance(obj.get("inputs"), dict) else {}
    updates = inputs.get("updates") if isinstance(inputs.get("updates"), list) else []
    obj["inputs"] = {
        "resources": _str_list(inputs.get("resources")) or split_list(req.scenario.resources),
        "constraints": _str_list(inputs.get("constraints")) or split_list(req.scenario.constraints),
        "updates": [u for u in updates if isinstance(u, dict)] or req.open_updates(),
    }
    if not isinstance(obj.get("summary"), str):
        obj["summary"] = ""
    for key in PLAN_LISTS:
        obj[key] = _str_list(obj.get(key))
    return Plan.model_validate(obj).model_dump()

# --- Safety lint ---
FORBIDDEN_PATTERNS = [r"\bdose\b", r"\bmg\b", r"\btablet\b", r"\bml\b", r"\biv\b", r"\bantibiotic"]
def safety_lint(plan_dict: Dict) -> List[str]:
    text = json.dumps(plan_dict, ensure_ascii=False).lower()
    return ["Contains possible medical dosing/clinical language. Escalate to clinician."] \
           if any(re.search(p, text) for p in FORBIDDEN_PATTERNS) else []

def plan_to_text(plan: Dict) -> str:
    scenario = plan.get("scenario") or {}
    lines = [f"RescueMind Plan - {plan.get('generatedAt', '')}",
             f"Scenario: {scenario.get('type', '')} - {scenario.get('location', '')}"]
    if scenario.get("population"):
        lines.append(f"Population affected: {scenario['population']}")
    lines += ["", "Summary:", plan.get("summary", "")]
    for title, key in (("Priorities", "priorities"), ("Actions", "actions"),
                       ("Resource Allocation", "resourcesPlan"), ("Risks", "risks")):
        lines += ["", f"{title}:"] + [f"- {item}" for item in plan.get(key) or []]
    return "\n".join(lines).strip() + "\n"
