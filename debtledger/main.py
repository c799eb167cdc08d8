import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from debtledger.api.deps import close_receipt_extractor
from debtledger.api.errors import register_exception_handlers
from debtledger.api.v1.api import api_router
from debtledger.core.config import settings
from debtledger.core.logging import configure_logging
from debtledger.db.session import close_store, open_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting %s (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    await open_store(settings)
    yield
    close_receipt_extractor()
    await close_store()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.DESCRIPTION,
    version=settings.PROJECT_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.get("/")
async def root():
    return {"message": "Welcome to Debt Ledger API"}


app.include_router(api_router, prefix=settings.API_V1_STR)
