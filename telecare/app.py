# --- imports (top of telecare/app.py) ---
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

# Resolve paths early so env vars are available before importing the app modules
BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from slowapi.errors import RateLimitExceeded  # noqa: E402
from sqlalchemy.exc import SQLAlchemyError  # noqa: E402

from telecare import __version__  # noqa: E402
from telecare.db.session import SessionLocal  # noqa: E402
from telecare.middleware.tracing import TRACE_ID_CTX_VAR, TracingMiddleware  # noqa: E402
from telecare.models import init_db  # noqa: E402
from telecare.routers.patients import router as patients_router  # noqa: E402
from telecare.routes import auth_routes, health_routes  # noqa: E402
from telecare.services.demo_seed import seed_demo  # noqa: E402
from telecare.utils.config import settings  # noqa: E402
from telecare.utils.exceptions import register_exception_handlers  # noqa: E402
from telecare.utils.rate_limit import limiter, rate_limit_handler  # noqa: E402


# --- logging setup ---
class JsonFormatter(logging.Formatter):
    """One JSON object per line. Dict messages are merged into the payload."""

    def format(self, record):  # type: ignore[override]
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "function": record.funcName,
        }
        if isinstance(record.msg, dict):
            payload.update(record.msg)
        else:
            payload["message"] = record.getMessage()
        trace_id = TRACE_ID_CTX_VAR.get()
        if trace_id:
            payload["trace_id"] = trace_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> logging.Logger:
    logger = logging.getLogger("telecare")
    logger.setLevel(logging.INFO)
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    return logger


logger = configure_logging()

# --- app & router setup ---
app = FastAPI(title="Telecare Health Assessment", version=__version__)

app.add_middleware(TracingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-trace-id"],
)

# ---- Rate limiting (slowapi) ----
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
register_exception_handlers(app)

app.include_router(auth_routes.router)
app.include_router(patients_router)
app.include_router(health_routes.router)


def _maybe_seed_demo() -> None:
    try:
        with SessionLocal() as db:
            seed_demo(db)
    except SQLAlchemyError:
        # Seeding is best-effort; never block startup
        logger.warning({"function": "seed_demo", "status": "failed"}, exc_info=True)


@app.on_event("startup")
def _init_db():
    init_db()
    _maybe_seed_demo()
    logger.info({
        "function": "startup",
        "analysis_mode": "demo" if settings.demo_mode else "model",
        "model": None if settings.demo_mode else settings.openai_model,
    })


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__, "analysisMode": "demo" if settings.demo_mode else "model"}
