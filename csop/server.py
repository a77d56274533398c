from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from csop.core.config import LOG_LEVEL
from csop.core.dispatcher import Dispatcher
from csop.core.envelope import ResponseEnvelope
from csop.core.errors import NotInitializedError
from csop.core.observability import get_logger, setup_logging

logger = get_logger("server")

# =========================
# API models
# =========================

class DispatchOptions(BaseModel):
    timeout_ms: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("timeout_ms", "timeoutMillis"))
    max_retries: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("max_retries", "maxRetries"))


class DispatchRequest(BaseModel):
    action: str
    payload: Dict[str, Any] = {}
    options: Optional[DispatchOptions] = None


class InfoResponse(BaseModel):
    version: str
    initialized: bool
    capabilities: list[str]

# =========================
# FastAPI app
# =========================

def create_app(
    dispatcher: Optional[Dispatcher] = None,
    config: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    """
    Build the HTTP surface around a dispatcher.
    The dispatcher is initialized in the app lifespan if it is not already.
    """
    dispatcher = dispatcher or Dispatcher()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not dispatcher.initialized:
            await dispatcher.init(config)
        yield

    app = FastAPI(title="CSOP Dispatch Router", lifespan=lifespan)
    app.state.dispatcher = dispatcher

    @app.post("/api/dispatch", response_model=ResponseEnvelope, response_model_exclude_unset=True)
    async def dispatch_endpoint(req: DispatchRequest, request: Request):
        """
        Dispatch one action. Error envelopes are returned with HTTP 200;
        the envelope status carries the outcome.
        """
        options = req.options.model_dump(exclude_none=True) if req.options else None
        return await request.app.state.dispatcher.dispatch(req.action, req.payload, options)

    @app.get("/api/info", response_model=InfoResponse)
    async def info_endpoint(request: Request):
        return request.app.state.dispatcher.info()

    @app.exception_handler(NotInitializedError)
    async def not_initialized_handler(request: Request, exc: NotInitializedError):
        return JSONResponse(status_code=503, content={"detail": str(exc), "code": exc.code})

    return app


def main() -> None:
    import uvicorn

    setup_logging(LOG_LEVEL)
    uvicorn.run(create_app(), host="127.0.0.1", port=8000, log_level="info")


if __name__ == "__main__":
    main()
