import json
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from rescuemind import app as app_module
from rescuemind.config import SETTINGS
from rescuemind.incidents import IncidentStore
from rescuemind.plans import PlanCache
from rescuemind.ratelimit import RateLimiter
from rescuemind.service import PlanService
from rescuemind.store import MemoryStore
from rescuemind.tests.helpers import PLAN_JSON, completion


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(SETTINGS, "provider", "openai_compat")
    monkeypatch.setattr(SETTINGS, "api_key", "test-key")
    monkeypatch.setattr(SETTINGS, "auth_token", "s3cret")
    monkeypatch.setattr(app_module, "rate_limiter", RateLimiter(MemoryStore(), 30, 60))
    monkeypatch.setattr(app_module, "incidents", IncidentStore(MemoryStore()))
    monkeypatch.setattr(app_module, "plan_service", PlanService(PlanCache(MemoryStore()), settings=SETTINGS))
    return TestClient(app_module.app)


@pytest.fixture
def upstream(monkeypatch):
    """Patched requests.post; answers with PLAN_JSON unless a test says otherwise."""
    post = Mock(return_value=completion(json.dumps(PLAN_JSON)))
    monkeypatch.setattr("rescuemind.llm.requests.post", post)
    return post
