"""
HTTP façade for the counting service.

`GET /` increments the shared counter and reports it; `GET /health` always
answers 200. Store failures never become HTTP errors: the response is
still a 200 with `count=-1` and a `message`, so the dashboard can always
parse it.
"""

from __future__ import annotations

import logging
import socket
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from app.core.settings import Settings
from errors import classify_store_exception
from observability import build_log_context, log_event
from observability.tracing import add_span_attribute, setup_fastapi_tracing
from stores import CounterStore, get_store_backend

logger = logging.getLogger(__name__)

router = APIRouter()


class CountResponse(BaseModel):
    count: int
    hostname: str
    db_node: Optional[str] = None
    message: Optional[str] = None


def build_count_response(store: CounterStore) -> CountResponse:
    """
    Increment through `store` and build the response envelope.

    Increment failures degrade to count=-1 with a message; descriptor
    failures only drop `db_node`.
    """
    hostname = socket.gethostname()

    try:
        new_count = store.incr()
    except Exception as e:
        err = classify_store_exception(e, store.backend_name)
        log_event(
            "count_degraded",
            ctx=build_log_context(tool="count"),
            data={"backend": store.backend_name, "error": err.to_dict()},
        )
        return CountResponse(count=-1, hostname=hostname, message=f"DB Error: {err.message}")

    add_span_attribute("counter.value", new_count)
    response = CountResponse(count=new_count, hostname=hostname)

    try:
        response.db_node = store.get_info() or None
    except Exception as e:
        logger.debug(f"get_info failed on {store.backend_name}: {e}")

    return response


@router.get("/", response_model=CountResponse, response_model_exclude_none=True)
def count(request: Request) -> CountResponse:
    return build_count_response(request.app.state.store)


@router.get("/health", response_class=PlainTextResponse)
def health(request: Request) -> str:
    return f"Hello, you've hit {request.url.path}\n"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    app.state.store.close()


def create_app(store: Optional[CounterStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI app around an owned store.

    When `store` is omitted it is built from settings; configuration errors
    propagate so the process fails at startup rather than on first request.
    """
    settings = settings or Settings()
    if store is None:
        store = get_store_backend(settings)

    app = FastAPI(title="Counting Service", version=settings.VERSION, lifespan=lifespan)
    app.state.store = store
    app.state.settings = settings
    app.include_router(router)
    setup_fastapi_tracing(app)
    return app


if __name__ == "__main__":
    from app.main import main

    main()
