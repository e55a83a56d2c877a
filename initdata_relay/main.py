"""
FastAPI back-end for the Telegram Mini-App sign-in hand-off
────────────────────────────────────────────────────────────
• Verifies Telegram Web-App initData against the bot token
• Re-signs it with the client secret (client_id appended) for the
  identity service
• Exposes one endpoint:
      POST /verify – {"initData": "..."} → {"success", "initData"?, "message"?}
• Loads secrets from a .env file in development
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .config import RelayConfig, load_config
from .validate import RelayError, SignatureRelay, UnexpectedError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────
# 1.  Pydantic models  (request / response)
# ──────────────────────────────────────────────────────────
class InitPayload(BaseModel):
    initData: str = Field("", description="Raw query string from WebApp")

    @field_validator("initData", mode="before")
    @classmethod
    def as_query_string(cls, value):
        # null counts as an empty query; other scalars are read as text
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


class RelayOut(BaseModel):
    success: bool
    initData: Optional[str] = Field(None, description="Re-signed query string")
    message: Optional[str] = None


def failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
    )


# ──────────────────────────────────────────────────────────
# 2.  FastAPI app + CORS + rate limit
# ──────────────────────────────────────────────────────────
def create_app(config: Optional[RelayConfig] = None) -> FastAPI:
    config = config or load_config()

    app = FastAPI(title="initData Relay", version="1.0")
    app.state.relay = SignatureRelay(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.allowed_origin],
        allow_methods=["POST"],
        allow_headers=["*"],
    )

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[config.rate_limit],
        headers_enabled=True,
    )
    app.state.limiter = limiter

    def ratelimit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit hit by %s", get_remote_address(request))
        resp = failure(429, "Too many requests – slow down")
        resp.headers["Access-Control-Allow-Origin"] = config.allowed_origin
        return resp

    app.add_exception_handler(RateLimitExceeded, ratelimit_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(RequestValidationError)
    async def log_validation_error(request: Request, exc: RequestValidationError):
        logger.warning("Validation error. Raw body: %r", await request.body())
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Malformed request body",
                "detail": jsonable_errors(exc),
            },
        )

    # ──────────────────────────────────────────────────────
    # 3.  API routes
    # ──────────────────────────────────────────────────────
    @app.post("/verify", response_model=RelayOut, response_model_exclude_none=True)
    async def verify_init_data(payload: InitPayload, request: Request):
        try:
            relayed = request.app.state.relay.relay(payload.initData)
        except RelayError as exc:
            if exc.status_code >= 500:
                logger.error("Relay failed: %s", exc.message)
            return failure(exc.status_code, exc.message)
        except Exception as exc:
            logger.exception("Unexpected error while relaying initData")
            err = UnexpectedError(str(exc) or None)
            return failure(err.status_code, err.message)

        return RelayOut(success=True, initData=relayed)

    return app


def jsonable_errors(exc: RequestValidationError):
    # pydantic v2 may put exception objects under "ctx"
    return [
        {k: v for k, v in err.items() if k in ("type", "loc", "msg")}
        for err in exc.errors()
    ]


app = create_app()


# ──────────────────────────────────────────────────────────
# 4.  Local dev entry point
# ──────────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "initdata_relay.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,  # auto-reload on code change
        log_level="info",
    )
