from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI

from ..auth.firebase import FirebaseTokenVerifier, TokenVerifier
from ..cache.base import AsyncCacheBackend
from ..cache.memory import InMemoryAsyncCache
from ..config import GatewaySettings, settings as default_settings
from ..db.base import BaseDBManager
from ..db.memory import InMemoryDBManager
from ..db.mongo import MongoDBManager
from ..llm.client import GeminiModel, GenerativeModel
from ..logging.ledger_logger import LedgerLogger
from ..pipelines.dialogue import DialoguePipeline
from ..pipelines.dispatcher import PipelineDispatcher
from ..pipelines.image import ImagePipeline
from ..pipelines.text import TextPipeline
from ..services.brand_service import BrandService
from ..services.credit_service import CreditService
from ..services.gateway import ContentGateway
from .middleware import CorsMiddleware
from .router import router


logger = logging.getLogger(__name__)


def _create_db_manager(settings: GatewaySettings) -> BaseDBManager:
    if settings.mongo_uri:
        return MongoDBManager.from_client_uri(settings.mongo_uri, settings.mongo_db)
    logger.warning("GATEWAY_MONGO_URI is not set; using the in-memory account store")
    return InMemoryDBManager()


def build_gateway(
    settings: GatewaySettings,
    *,
    db: Optional[BaseDBManager] = None,
    model: Optional[GenerativeModel] = None,
    verifier: Optional[TokenVerifier] = None,
    cache: Optional[AsyncCacheBackend] = None,
) -> ContentGateway:
    """Wire the process-lifetime singletons. Anything passed in is used as is."""
    db = db or _create_db_manager(settings)
    cache = cache or InMemoryAsyncCache()
    model = model or GeminiModel(
        api_key=settings.google_api_key,
        text_model=settings.text_model,
        image_model=settings.image_model,
    )
    verifier = verifier or FirebaseTokenVerifier(settings.firebase_credentials)

    ledger = LedgerLogger(db=db, file_path=settings.ledger_log_path)
    dispatcher = PipelineDispatcher(
        text=TextPipeline(model),
        images=ImagePipeline(model),
        dialogue=DialoguePipeline(model),
    )
    return ContentGateway(
        verifier=verifier,
        credits=CreditService(db=db, ledger=ledger),
        brands=BrandService(db=db, cache=cache, ttl_seconds=settings.brand_cache_ttl_seconds),
        dispatcher=dispatcher,
        refund_on_failure=settings.refund_on_failure,
    )


def create_app(
    settings: Optional[GatewaySettings] = None,
    *,
    db: Optional[BaseDBManager] = None,
    model: Optional[GenerativeModel] = None,
    verifier: Optional[TokenVerifier] = None,
    cache: Optional[AsyncCacheBackend] = None,
) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.gateway = build_gateway(
            settings, db=db, model=model, verifier=verifier, cache=cache
        )
        logger.info("Content gateway ready (text=%s, image=%s)", settings.text_model, settings.image_model)
        yield

    app = FastAPI(title="Content Gateway", lifespan=lifespan)
    app.add_middleware(CorsMiddleware)
    app.include_router(router)
    return app


def main() -> None:
    logging.basicConfig(
        level=default_settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        create_app(),
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
