import logging
from typing import Optional
from fastapi import FastAPI
from multisport_scoring import __version__
from multisport_scoring.api.middleware import LoggingMiddleware
from multisport_scoring.api.scores.routes import router as scores_router
from multisport_scoring.config import config, EngineConfig
from multisport_scoring.db import Database, get_database, init_database, validate_database_startup
from multisport_scoring.engine import ScoreOrchestrator
from multisport_scoring.scoring import ScoringMethodRegistry, registry as default_registry, register_builtin_methods

logger = logging.getLogger(__name__)


def create_app(database: Optional[Database] = None, registry: Optional[ScoringMethodRegistry] = None,
               engine_config: Optional[EngineConfig] = None) -> FastAPI:
    """
    Build the HTTP application.

    Without a database the configured one is resolved and validated on
    startup; a supplied database is used as is.
    """
    engine_config = engine_config or EngineConfig.from_env()
    registry = registry if registry is not None else default_registry
    register_builtin_methods(registry)
    if engine_config.freeze_registry and not registry.frozen:
        registry.freeze()

    app = FastAPI(
        title="Multi-Sport Scoring API",
        description="Scoring and aggregation engine for multi-stage sporting events",
        version=__version__,
        docs_url="/api/docs" if not config.is_production else None,
        redoc_url="/api/redoc" if not config.is_production else None,
        openapi_url="/openapi.json" if not config.is_production else None
    )

    app.add_middleware(LoggingMiddleware)

    app.include_router(scores_router, prefix="/api/v1", tags=["Scores"])

    app.state.registry = registry
    app.state.engine_config = engine_config
    app.state.database = database
    app.state.orchestrator = ScoreOrchestrator(database, registry, engine_config) if database else None

    @app.on_event("startup")
    async def startup_event():
        """Create missing tables and validate the database connection on startup."""
        if app.state.database is not None:
            return

        await init_database()
        is_valid = await validate_database_startup()
        if not is_valid:
            raise RuntimeError("Database validation failed on startup")

        app.state.database = await get_database()
        app.state.orchestrator = ScoreOrchestrator(app.state.database, registry, engine_config)
        logger.info("Database validation passed on startup")

    @app.get("/")
    async def root():
        return {"message": "Multi-Sport Scoring API", "version": __version__}

    @app.get("/health")
    async def health_check():
        health = {"status": "healthy", "service": "multisport-scoring-api"}
        if app.state.database is not None:
            database_health = await app.state.database.health_check()
            health["database"] = database_health["status"]
            if database_health["status"] != "healthy":
                health["status"] = "degraded"
        return health

    return app


def main():
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
