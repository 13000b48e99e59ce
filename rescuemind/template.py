"""Rule-based planner used when LLM_PROVIDER=template. No network, same Plan shape."""
import re
from typing import Dict, List

from rescuemind.schemas import PlanRequest
from rescuemind.utils import now_iso, split_list

TEMPLATE_MODEL = "template-v1"

def update_to_action(text: str) -> str:
    t = (text or "").strip()
    if not t:
        return ""
    L = t.lower()
    if re.search(r"\b(critical|injur\w*|wound\w*|medic\w*|ambulance|triage)\b", L):
        m = re.search(r"(\d+)", t)
        n = f" to treat ~{m.group(1)} critical patients" if m else ""
        return f"Dispatch medical teams{n}; establish triage and transport to nearest care."
    if re.search(r"(bridge|road|highway|access|route).*(closed|blocked|down)", L):
        return "Reroute evacuations and logistics; update detours and communicate alternate routes."
    if re.search(r"(power|electric|grid).*out(age)?", L):
        return "Deploy generators and lighting to critical facilities; prioritize vulnerable areas."
    if re.search(r"(shelter|center|gym).*\b(open|capacity|full)\b", L):
        return "Open additional shelters or expand capacity; ensure intake, sanitation, and supplies."
    if re.search(r"water.*\b(boil|unsafe|contaminat)", L):
        return "Issue boil-water advisory; distribute bottled water and purification kits."
    return f"Act on update: {t}"

def _priorities(kind: str, details: str, population: int) -> List[str]:
    out = []
    if re.search("flood", kind, re.I) or re.search("flood", details, re.I):
        out.append("Evacuate low-lying areas and establish safe shelter routes")
    if re.search("fire|wildfire", kind, re.I) or re.search("smoke", details, re.I):
        out.append("Protect life near fire line and secure clean air zones")
    if re.search("earthquake", kind, re.I):
        out.append("Assess structural damage and cordon unsafe buildings")
    if re.search("hurricane|storm", kind, re.I):
        out.append("Secure shelters, pre-position supplies, and prepare for power loss")
    if population > 0:
        out.append(f"Triage and support approximately {population} affected individuals")
    return out or ["Stabilize immediate threats to life and secure essential services"]

def generate_template_plan(req: PlanRequest) -> Dict:
    s = req.scenario
    updates = req.open_updates()
    resources = split_list(s.resources)
    constraints = split_list(s.constraints)

    actions = []
    if resources:
        actions.append("Allocate available resources: " + "; ".join(resources))
    if constraints:
        actions.append("Mitigate constraints: " + "; ".join(constraints))
    actions += [a for a in (update_to_action(u["text"]) for u in updates[:5]) if a]
    actions.append("Establish a 2-4 hour reassessment cycle and update plan")

    resources_plan = []
    if any(re.search(r"medic|emt|ambulance", r, re.I) for r in resources):
        resources_plan.append("Deploy medical teams to triage points near affected zones")
    if any(re.search(r"volunteer|team|staff", r, re.I) for r in resources):
        resources_plan.append("Assign volunteers to door-to-door checks and supply lines")
    if any(re.search(r"shelter|center|hall", r, re.I) for r in resources):
        resources_plan.append("Stand up shelters with intake, supplies, and sanitation")
    resources_plan = resources_plan or ["Request additional resources via mutual aid and NGO partners"]

    risks = []
    if any(re.search(r"bridge|road|access", c, re.I) for c in constraints):
        risks.append("Limited road access may delay evacuations")
    if any(re.search(r"power|electric", c, re.I) for c in constraints):
        risks.append("Power outages could impact medical and communications capacity")
    risks = risks or ["Monitor evolving conditions and secondary hazards"]

    affected = f"{s.population} people affected. " if s.population else ""
    return {
        "generatedAt": now_iso(),
        "scenario": {"type": s.type, "location": s.location, "population": s.population, "details": s.details},
        "inputs": {"resources": resources, "constraints": constraints, "updates": updates},
        "summary": f"{s.type} in {s.location or 'the affected area'}. {affected}{s.details}".strip(),
        "priorities": _priorities(s.type, s.details, s.population),
        "actions": actions,
        "resourcesPlan": resources_plan,
        "risks": risks,
    }
