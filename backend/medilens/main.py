"""
MediLens - FastAPI Backend

Wires the configured adapters into the analysis pipeline and exposes
the admission controller over HTTP.

Run with:
    uvicorn medilens.main:app --port 8000
"""

from pathlib import Path
from typing import Optional
import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Load .env from the backend directory before reading configuration
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from . import __version__
from .api import router as scan_router
from .api.schemas import AdmissionStateResponse, HealthResponse
from .application import AdmissionController, PipelineBuilder
from .config.settings import AppConfig
from .cross_cutting.logging import setup_logging
from .domain.services.scoring import AuthenticityScorer
from .infrastructure import (
    LLMFactory,
    RetrieverFactory,
    VisionFactory,
    create_cooldown_store,
)


logger = logging.getLogger(__name__)


def build_controller(config: AppConfig) -> AdmissionController:
    """Build adapters, pipeline and admission controller from configuration."""
    vision = VisionFactory.create_from_config(config.vision)
    retriever = RetrieverFactory.create_from_config(config.retrieval)
    interpreter = LLMFactory.create_from_config(config.interpretation)
    synthesizer = LLMFactory.create_synthesizer_from_config(config.interpretation, config.scoring)

    orchestrator = (
        PipelineBuilder()
        .with_vision(vision)
        .with_retriever(
            retriever,
            include_domains=config.retrieval.include_domains,
            num_results=config.retrieval.num_results,
        )
        .with_interpreter(interpreter)
        .with_synthesizer(synthesizer)
        .with_scorer(AuthenticityScorer(config.scoring.weights(), config.scoring.thresholds()))
        .with_config(config.pipeline)
        .build()
    )

    store = create_cooldown_store(config.admission)
    return AdmissionController(orchestrator, store, config=config.admission)


def create_app(
    config: Optional[AppConfig] = None,
    controller: Optional[AdmissionController] = None
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Application configuration (default: from environment)
        controller: Pre-built controller, mainly for tests

    Raises:
        ConfigurationFailure: If the configuration is inconsistent
    """
    config = (config or AppConfig.from_env()).validate()
    setup_logging(config.logging.level, config.logging.log_file, config.logging.format)

    if controller is None:
        controller = build_controller(config)

    missing = config.missing_credentials()
    if missing:
        logger.warning(f"Missing credentials: {', '.join(missing)}; every scan will fail until set")

    app = FastAPI(
        title="MediLens Authenticity API",
        description="Medicine authenticity verification from a photograph",
        version=__version__
    )
    app.state.config = config
    app.state.controller = controller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scan_router)

    @app.get("/")
    async def root():
        return {
            "message": "MediLens Authenticity API",
            "version": __version__,
            "endpoints": {
                "scan": "/scan/*",
                "health": "/health",
            },
        }

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        app_config: AppConfig = request.app.state.config
        missing_credentials = app_config.missing_credentials()
        snapshot = request.app.state.controller.current_state()
        return HealthResponse(
            status="degraded" if missing_credentials else "healthy",
            version=__version__,
            missing_credentials=missing_credentials,
            scoring_mode=app_config.scoring.mode,
            admission=AdmissionStateResponse(**snapshot.to_dict()),
        )

    logger.info(f"MediLens API ready ({_config_summary(config)})")
    return app


def _config_summary(config: AppConfig) -> str:
    return (
        f"vision={config.vision.type}, retrieval={config.retrieval.type}, "
        f"interpretation={config.interpretation.type}, scoring={config.scoring.mode}"
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
