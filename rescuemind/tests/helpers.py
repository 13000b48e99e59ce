import json
from unittest.mock import Mock

AUTH = {"Authorization": "Bearer s3cret"}

PLAN_JSON = {
    "generatedAt": "2025-09-11T10:05:00Z",
    "scenario": {"type": "Flood", "location": "Riverside Town", "population": 500, "details": "River rising."},
    "inputs": {"resources": [], "constraints": [], "updates": []},
    "summary": "Flood in Riverside Town.",
    "priorities": ["Evacuate low-lying neighborhoods"],
    "actions": ["Mark detours"],
    "resourcesPlan": ["Assign volunteers to welfare checks"],
    "risks": ["Secondary flooding"],
}


def completion(content, status=200, text=None):
    """Stand-in for a requests.Response from the chat-completions endpoint."""
    resp = Mock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.text = text if text is not None else json.dumps({"status": status})
    resp.json.return_value = {"choices": [{"message": {"content": content}}]}
    return resp
