import hmac
import json
import logging
from logging.config import dictConfig
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from rescuemind.config import SETTINGS
from rescuemind.errors import AuthorizationError, GatewayError, NotFoundError, RateLimitError, ValidationError
from rescuemind.incidents import IncidentStore
from rescuemind.plans import PlanCache
from rescuemind.ratelimit import RateLimiter
from rescuemind.service import PlanService
from rescuemind.store import open_store
from rescuemind.utils import plan_to_text, sanitize_plan_request

dictConfig({
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {"default": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"}},
    "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "default"}},
    "root": {"level": SETTINGS.log_level, "handlers": ["console"]},
})
logger = logging.getLogger(__name__)

app = FastAPI(title="RescueMind Plan Gateway")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
    allow_headers=["content-type", "authorization"],
)

# Module-level so tests can swap in in-memory stores.
rate_limiter = RateLimiter(open_store(SETTINGS.rate_store_url), SETTINGS.rate_limit, SETTINGS.rate_window_s)
incidents = IncidentStore(open_store(SETTINGS.incidents_store_url))
plan_service = PlanService(PlanCache(open_store(SETTINGS.plans_store_url)))


@app.middleware("http")
async def base_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["Cache-Control"] = "no-store"
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


@app.exception_handler(GatewayError)
async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.payload())
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.exception_handler(RequestValidationError)
async def handle_bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Bad Request"})


@app.exception_handler(Exception)
async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def caller_key(request: Request) -> str:
    forwarded = (request.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    peer = request.client.host if request.client else ""
    return request.headers.get("cf-connecting-ip") or forwarded or peer or "anon"


def require_token(authorization: Optional[str]) -> None:
    authz = authorization or ""
    token = authz[7:] if authz.lower().startswith("bearer ") else ""
    if not token or not SETTINGS.auth_token or not hmac.compare_digest(token.encode(), SETTINGS.auth_token.encode()):
        raise AuthorizationError()


def incident_writer(authorization: Optional[str] = Header(default=None)) -> None:
    # Must precede json_body in the signature: 501/401 before 400.
    incidents.check_configured()
    require_token(authorization)


async def json_body(request: Request) -> Any:
    try:
        return json.loads(await request.body())
    except ValueError as exc:
        raise ValidationError("Bad Request") from exc


@app.get("/health")
def health():
    return {"ok": True, "provider": SETTINGS.provider}


@app.post("/plan")
def generate_plan(request: Request, payload: Dict[str, Any] = Body(...)):
    req = sanitize_plan_request(payload)
    if not rate_limiter.allow(caller_key(request)):
        raise RateLimitError()
    return plan_service.generate(req)


@app.get("/incidents")
def list_incidents():
    return incidents.list()


@app.get("/incidents/{incident_id}")
def get_incident(incident_id: str):
    return incidents.get(incident_id)


@app.put("/incidents/{incident_id}")
def put_incident(incident_id: str, _: None = Depends(incident_writer), payload: Any = Depends(json_body)):
    return incidents.put(incident_id, payload)


@app.patch("/incidents/{incident_id}/updates")
def patch_incident_updates(incident_id: str, _: None = Depends(incident_writer),
                           payload: Any = Depends(json_body)):
    if not isinstance(payload, dict):
        raise ValidationError("Invalid body")
    return incidents.patch_update(incident_id, payload.get("op"), payload)


@app.get("/plans")
def list_plans():
    return plan_service.cache.manifest()


@app.get("/plans/{incident_id}")
def get_plan(incident_id: str):
    entry = plan_service.cache.get(incident_id)
    if entry is None:
        raise NotFoundError()
    return entry


@app.get("/plans/{incident_id}/text", response_class=PlainTextResponse)
def get_plan_text(incident_id: str):
    entry = plan_service.cache.get(incident_id)
    if not entry or not isinstance(entry.get("plan"), dict):
        raise NotFoundError()
    return plan_to_text(entry["plan"])
