"""FastAPI application entry point."""

import logging
import random
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.core.booking import BookingStore, FlightBookingService, seed_demo_data
from src.pipelines.inference.conversation.store import ConversationStore
from src.pipelines.inference.pipeline import ConversationOrchestrator
from src.pipelines.retrieval import (
    KnowledgeIngestor,
    KnowledgeRetriever,
    build_vector_store,
    load_retrieval_settings,
)
from src.utils.logging import setup_logging

from .config import APISettings, settings as default_settings
from .routes import bookings_router, chat_router, sessions_router, health_router

logger = logging.getLogger(__name__)


def build_retriever(config_path: str) -> Optional[KnowledgeRetriever]:
    """Ingest the knowledge base and return a retriever over it.

    Returns None when ingestion fails; the assistant then answers without
    grounding.
    """
    try:
        retrieval_settings = load_retrieval_settings(config_path)
        vector_store = build_vector_store(retrieval_settings)
        ingestor = KnowledgeIngestor(vector_store, retrieval_settings)
        ingestor.ingest()
        return KnowledgeRetriever.from_settings(vector_store, retrieval_settings)
    except Exception as e:
        logger.error(f"Failed to initialize knowledge retrieval: {e}")
        logger.warning("Assistant will answer without policy grounding")
        return None


def create_app(api_settings: Optional[APISettings] = None) -> FastAPI:
    """Create the FastAPI application.

    The lifespan handler seeds the demo bookings and starts the assistant.
    Handlers read their components from ``app.state``.
    """
    api_settings = api_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        # Startup
        setup_logging(level="DEBUG" if api_settings.debug else None)
        logger.info("Starting Flight Booking Assistant API...")

        store = BookingStore()
        rng = random.Random(api_settings.demo_seed)
        seed_demo_data(store, rng=rng)
        booking_service = FlightBookingService(store)
        logger.info(f"Seeded {len(store)} demo bookings")

        app.state.booking_service = booking_service
        app.state.conversation_store = ConversationStore()
        app.state.orchestrator = None

        retriever = None
        if api_settings.enable_retrieval:
            logger.info("Initializing knowledge retrieval...")
            retriever = build_retriever(api_settings.config_path)

        try:
            logger.info("Initializing assistant...")
            orchestrator = ConversationOrchestrator.from_config_file(
                booking_service,
                retriever=retriever,
                config_path=api_settings.config_path
            )
            orchestrator.initialize()
            app.state.orchestrator = orchestrator
            app.state.conversation_store = orchestrator.conversation_store
            logger.info("Assistant initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize assistant: {e}")
            logger.warning("API will start without inference capability")

        yield

        # Shutdown
        logger.info("Shutting down Flight Booking Assistant API...")
        if app.state.orchestrator is not None:
            app.state.orchestrator.shutdown()

    app = FastAPI(
        title="Flight Booking Assistant API",
        description="Customer support assistant for flight bookings with streaming replies",
        version="1.0.0",
        debug=api_settings.debug,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix="/api")
    app.include_router(bookings_router, prefix="/api")
    app.include_router(sessions_router, prefix="/api")
    app.include_router(chat_router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Flight Booking Assistant API",
            "version": "1.0.0",
            "docs": "/docs"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=default_settings.host, port=default_settings.port)
