from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List

class UpdateEntry(BaseModel):
    text: str = ""
    ts: str = ""
    resolved: bool = False

class ScenarioInput(BaseModel):
    type: str = ""
    location: str = ""
    population: int = 0
    details: str = ""
    resources: str = ""
    constraints: str = ""

class PlanOptions(BaseModel):
    model: str = ""
    temperature: float = 0.2
    max_tokens: int = 800

class PlanRequest(BaseModel):
    scenario: ScenarioInput = Field(default_factory=ScenarioInput)
    updates: List[UpdateEntry] = []
    options: PlanOptions = Field(default_factory=PlanOptions)
    incidentId: str = ""

    def open_updates(self) -> List[Dict[str, str]]:
        """Unresolved updates, in request order, as the {text, ts} pairs that feed generation."""
        return [{"text": u.text, "ts": u.ts} for u in self.updates if not u.resolved]

class PlanInputs(BaseModel):
    resources: List[str] = []
    constraints: List[str] = []
    updates: List[Dict[str, Any]] = []

class Plan(BaseModel):
    model_config = ConfigDict(extra="allow")

    generatedAt: str
    scenario: Dict[str, Any]
    inputs: PlanInputs
    summary: str = ""
    priorities: List[str] = []
    actions: List[str] = []
    resourcesPlan: List[str] = []
    risks: List[str] = []

class Incident(BaseModel):
    id: str
    name: str = ""
    type: str = "Other"
    status: str = "ongoing"
    population: int = 0
    resources: str = ""
    constraints: str = ""
    details: str = ""
    lat: float = 0.0
    lng: float = 0.0
    createdAt: str = ""
    updates: List[UpdateEntry] = []

class ManifestEntry(BaseModel):
    id: str
    file: str

class PlanManifestEntry(ManifestEntry):
    updatedAt: str
