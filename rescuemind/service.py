import logging
from typing import Any, Dict, Optional

from rescuemind.config import SETTINGS, Settings
from rescuemind.errors import ExtractionError
from rescuemind.extract import extract_json
from rescuemind.llm import LLMClient, resolve_model
from rescuemind.plans import PlanCache, update_signature
from rescuemind.prompts import build_messages
from rescuemind.schemas import PlanRequest
from rescuemind.store import StoreError
from rescuemind.template import TEMPLATE_MODEL, generate_template_plan
from rescuemind.utils import normalize_plan, redact_pii, safety_lint

logger = logging.getLogger(__name__)


class PlanService:
    """Cache check, redaction, prompting, upstream call and extraction for one plan request."""

    def __init__(self, cache: PlanCache, client: Optional[LLMClient] = None, settings: Settings = SETTINGS):
        self.cache = cache
        self.settings = settings
        self.client = client or LLMClient(settings)

    def generate(self, req: PlanRequest) -> Dict[str, Any]:
        sig = update_signature(req.open_updates())
        cached = self.cache.lookup(req.incidentId, sig)
        if cached is not None:
            logger.info("Plan cache hit for %s", req.incidentId)
            return cached

        redacted = redact_pii(req)
        if self.settings.provider == "template":
            model = TEMPLATE_MODEL
            obj = generate_template_plan(PlanRequest.model_validate(redacted))
        else:
            model = resolve_model(req, self.settings)
            content, model = self.client.chat(
                build_messages(redacted), model,
                temperature=req.options.temperature, max_tokens=req.options.max_tokens,
            )
            obj = extract_json(content)
            if not isinstance(obj, dict):
                logger.error("Model returned non-object JSON: %s", content[:500])
                raise ExtractionError(content)

        plan = normalize_plan(obj, req)
        warn = safety_lint(plan)
        if warn:
            plan["_warnings"] = warn

        try:
            self.cache.save(req.incidentId, plan, sig, model)
        except StoreError as exc:
            logger.warning("Plan cache store failed for %s: %s", req.incidentId, exc)
        return plan
