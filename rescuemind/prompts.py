# Prompts for the RescueMind planner
import json
from typing import Any, Dict, List

PROMPT_VERSION = "plan-2025-09-11"

PLAN_SYSTEM = """You are RescueMind Planner, a cautious and pragmatic emergency planning assistant.
Return ONLY strict JSON conforming to the schema below - no markdown, no commentary, no code fences.
Schema:
{
  "generatedAt": ISO8601,
  "scenario": {"type": string, "location": string, "population": number, "details": string},
  "inputs": {"resources": string[], "constraints": string[], "updates": {"text": string, "ts": string}[]},
  "summary": string,
  "priorities": string[],
  "actions": string[],
  "resourcesPlan": string[],
  "risks": string[]
}
Rules:
- Be pragmatic and safety-conscious.
- Reflect constraints and crowd updates.
- Translate updates into concrete actions; DO NOT echo them verbatim or use phrases like "Incorporate update".
- Deduplicate/merge overlapping updates; quantify when possible.
- Avoid private data: if inputs include PII (emails, phone numbers, addresses) or sensitive info, REDACT in output.
- Ensure equitable resource allocation (no bias by wealth, race, or status).
- Keep items concise, imperative and actionable; prefer 4-7 items per list.
- If information is missing, make conservative assumptions and call them out in summary.
- Return only valid JSON. No markdown, no extra text."""

# Few-shot pairs anchor the output schema and the "act on updates, don't echo them" behaviour.
FEW_SHOTS: List[Dict[str, Any]] = [
    {
        "user": {
            "scenario": {"type": "Flood", "location": "Riverside Town", "population": 500, "details": "Rising river, low-lying areas inundated."},
            "updates": [{"text": "Bridge A closed", "ts": "2025-09-11T10:00:00Z"}],
            "options": {},
        },
        "assistant": {
            "generatedAt": "2025-09-11T10:05:00Z",
            "scenario": {"type": "Flood", "location": "Riverside Town", "population": 500, "details": "Rising river, low-lying areas inundated."},
            "inputs": {"resources": [], "constraints": ["Bridge A closed"], "updates": [{"text": "Bridge A closed", "ts": "2025-09-11T10:00:00Z"}]},
            "summary": "Flood in Riverside Town. 500 people affected. Bridge A is closed; evacuate low-lying areas and route via open roads.",
            "priorities": ["Evacuate low-lying neighborhoods", "Open and staff shelters with intake", "Set up triage near affected zones", "Secure clean water and sanitation"],
            "actions": ["Close unsafe roads and mark detours", "Coordinate door-to-door checks by teams", "Deliver bottled water and basic supplies", "Plan reassessment in 2-4 hours"],
            "resourcesPlan": ["Assign volunteers to welfare checks and supply runs", "Deploy medics to triage points near shelters"],
            "risks": ["Limited road access may delay evacuations", "Secondary flooding if rainfall continues"],
        },
    },
    {
        "user": {
            "scenario": {"type": "Wildfire", "location": "Foothills", "population": 1200, "details": "Winds shifting; smoke affecting suburbs."},
            "updates": [{"text": "One-lane access road", "ts": "2025-09-10T18:30:00Z"}],
            "options": {},
        },
        "assistant": {
            "generatedAt": "2025-09-10T18:35:00Z",
            "scenario": {"type": "Wildfire", "location": "Foothills", "population": 1200, "details": "Winds shifting; smoke affecting suburbs."},
            "inputs": {"resources": [], "constraints": ["One-lane access road"], "updates": [{"text": "One-lane access road", "ts": "2025-09-10T18:30:00Z"}]},
            "summary": "Wildfire near Foothills. 1200 affected by smoke and potential spread; access is limited to one lane.",
            "priorities": ["Protect life at the fire line and evacuate at-risk homes", "Establish clean-air shelters and distribute masks", "Stage resources for rapid containment"],
            "actions": ["Set traffic control for the one-lane road", "Distribute N95 masks at community centers", "Alert clinics for respiratory cases", "Reassess perimeter and winds every 2 hours"],
            "resourcesPlan": ["Assign engines and water tenders to protect structures", "Volunteers handle mask distribution and welfare checks"],
            "risks": ["Road bottlenecks may slow evacuations", "Shifting winds can accelerate fire spread"],
        },
    },
    {
        "user": {
            "scenario": {"type": "Hurricane", "location": "Coastal City", "population": 3200, "details": "Storm surge risk; shelters being prepared."},
            "updates": [{"text": "10 people are in critical condition and need immediate medical help", "ts": "2025-09-11T09:30:00Z"}],
            "options": {},
        },
        "assistant": {
            "generatedAt": "2025-09-11T09:35:00Z",
            "scenario": {"type": "Hurricane", "location": "Coastal City", "population": 3200, "details": "Storm surge risk; shelters being prepared."},
            "inputs": {"resources": [], "constraints": [], "updates": [{"text": "10 people are in critical condition and need immediate medical help", "ts": "2025-09-11T09:30:00Z"}]},
            "summary": "Coastal City preparing for storm surge; immediate medical support required for critical patients.",
            "priorities": ["Stabilize critical patients", "Open and staff shelters", "Pre-position supplies and medical support"],
            "actions": ["Dispatch medical teams and ambulances to treat ~10 critical patients; establish triage", "Coordinate transport to nearest hospitals", "Reassess in 2-4 hours"],
            "resourcesPlan": ["Assign medics to triage stations near shelters", "Ensure ambulance availability and routes"],
            "risks": ["Hospital capacity constraints", "Power loss impacting medical equipment"],
        },
    },
]

def dump(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))

def build_messages(redacted_request: Dict[str, Any]) -> List[Dict[str, str]]:
    """System rules, the three worked examples, then the (already redacted) request."""
    messages = [{"role": "system", "content": PLAN_SYSTEM}]
    for shot in FEW_SHOTS:
        messages.append({"role": "user", "content": dump(shot["user"])})
        messages.append({"role": "assistant", "content": dump(shot["assistant"])})
    messages.append({"role": "user", "content": dump(redacted_request)})
    return messages
