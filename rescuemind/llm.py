import logging
from typing import Dict, List, Optional, Tuple

import requests

from rescuemind.config import SETTINGS, Settings
from rescuemind.errors import ConfigurationError, UpstreamError
from rescuemind.schemas import PlanRequest

logger = logging.getLogger(__name__)

MODEL_ALIASES = {"gpt-oss-20b": "openai/gpt-oss-20b", "gpt-oss-120b": "openai/gpt-oss-120b"}
# Some deployments only expose the gpt-oss family under suffixed names.
VARIANT_FAMILY = "gpt-oss-"
VARIANT_SUFFIXES = ("-latest", "-preview")

def resolve_model(req: PlanRequest, settings: Settings = SETTINGS) -> str:
    explicit = req.options.model
    if explicit:
        if explicit.lower().startswith("openai/"):
            return explicit
        return MODEL_ALIASES.get(explicit.lower(), explicit)
    details_len = len(req.scenario.details)
    population = req.scenario.population
    score = details_len / 600 + population / 1500 + len(req.open_updates()) / 6
    heavy = population >= 1500 or details_len >= 800 or score >= 3
    return settings.heavy_model if heavy else settings.light_model

def model_variants(model: str) -> List[str]:
    if VARIANT_FAMILY not in model:
        return []
    return [model + suffix for suffix in VARIANT_SUFFIXES]

class LLMClient:
    """OpenAI-compatible chat-completions client (Groq by default)."""

    def __init__(self, settings: Settings = SETTINGS):
        self.settings = settings

    def _post(self, payload: dict) -> requests.Response:
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.settings.api_key}"}
        url = f"{self.settings.base_url}/chat/completions"
        return requests.post(url, json=payload, headers=headers, timeout=self.settings.timeout_s)

    def _attempt(self, model: str, messages, temperature: float, max_tokens: int) -> Tuple[Optional[requests.Response], str]:
        try:
            resp = self._post({"model": model, "messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        except requests.RequestException as e:
            return None, f"{type(e).__name__}: {e}"
        return resp, ""

    def chat(self, messages: List[Dict[str, str]], model: str, temperature: float = 0.2,
             max_tokens: int = 800) -> Tuple[str, str]:
        """Returns (content, model that answered). One pass over the primary model and its variants."""
        if not self.settings.api_key:
            raise ConfigurationError()
        tried: List[str] = []
        resp, err = None, ""
        for name in [model] + model_variants(model):
            tried.append(name)
            resp, err = self._attempt(name, messages, temperature, max_tokens)
            if resp is not None and resp.ok:
                break
        if resp is None or not resp.ok:
            status = resp.status_code if resp is not None else None
            body = resp.text if resp is not None else err
            logger.error("LLM upstream error status=%s tried=%s body=%s", status, tried, (body or "")[:500])
            raise UpstreamError(status, tried, body)
        try:
            data = resp.json()
        except ValueError:
            data = {}
        # OpenAI-style {"choices":[{"message":{"content":...}}]}
        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices and isinstance(choices[0], dict) else {}
        message = first.get("message") if isinstance(first.get("message"), dict) else {}
        content = message.get("content") or ""
        return str(content), tried[-1]
