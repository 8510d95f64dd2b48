import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response

from .config import get_settings
from .database import create_schema, dispose_engine
from .routers import categories, courts, requests, tournaments, trainings, tuitions, users
from .utils.request_id import REQUEST_ID_HEADER, accept_request_id, set_request_id

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if get_settings().create_schema:
        await create_schema()
    yield
    logger.info("shutting down, disposing database engine")
    await dispose_engine()


app = FastAPI(title="Sports Club API", lifespan=lifespan)


async def request_id_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    request_id = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        set_request_id(None)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


app.middleware("http")(request_id_middleware)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(users.router)
app.include_router(categories.router)
app.include_router(courts.router)
app.include_router(trainings.router)
app.include_router(tournaments.router)
app.include_router(tuitions.router)
app.include_router(requests.router)
