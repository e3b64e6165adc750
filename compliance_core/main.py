from contextlib import asynccontextmanager
from fastapi import FastAPI
from compliance_core import __version__
from compliance_core.database import init_db
from compliance_core.logging_utils import setup_logger
from compliance_core.routes import router
from compliance_core.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logger("compliance_core", settings.log_level)
    init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Normalizes city agency records and computes building and portfolio compliance rollups.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(router)
