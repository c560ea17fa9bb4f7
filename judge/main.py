import logging

from judge.config import get_settings

logging.basicConfig(
    level=get_settings().log.level.upper(),
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from judge.controllers.health import router as health_router
from judge.controllers.languages import router as languages_router
from judge.controllers.submissions import router as submissions_router
from judge.errors import register_exception_handlers
from judge.lifespan import cleanup_resources, setup_resources

if get_settings().log.sandbox_debug:
    logging.getLogger("judge.sandbox").setLevel(logging.DEBUG)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    resources = await setup_resources()
    try:
        yield
    finally:
        await cleanup_resources(resources)


app = FastAPI(title="Judge API", version="1.0.0", lifespan=lifespan)
register_exception_handlers(app)

app.include_router(health_router)
app.include_router(languages_router)
app.include_router(submissions_router)
