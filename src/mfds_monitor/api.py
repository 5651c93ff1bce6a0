"""
REST API for MFDS Regulatory Monitor
"""

import logging
import os
import platform
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from .config import Config, ensure_valid_config, get_config
from .errors import BackendNotConfiguredError, RetrievalError
from .logging_config import setup_logging
from .models import UpdateCategory, UpdateRecord
from .service import UpdateService, create_update_service

logger = logging.getLogger(__name__)


def _error_response(error: RetrievalError, debug: bool) -> JSONResponse:
    body = {"error": error.public_message, "type": error.error_type}
    if debug:
        body["detail"] = error.detail or error.message
    return JSONResponse(status_code=500, content=body)


def create_app(config: Optional[Config] = None, service: Optional[UpdateService] = None) -> FastAPI:
    """Create and configure FastAPI application"""
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting %s API...", config.app_name)
        if app.state.update_service is None:
            try:
                app.state.update_service = create_update_service(config)
                logger.info("Update service ready (provider=%s)", config.ai.provider)
            except BackendNotConfiguredError as e:
                logger.warning("Update service unavailable: %s", e.message)
        yield
        logger.info("%s API stopped", config.app_name)

    app = FastAPI(
        title=f"{config.app_name} API",
        description="Recent food regulation announcements from the Korean Ministry of Food and Drug Safety",
        version=config.app_version,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.update_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    debug = config.debug or config.api.debug

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok"}

    @app.get("/api/mfds", response_model=List[UpdateRecord])
    async def get_mfds_updates(
        request: Request,
        category: Optional[UpdateCategory] = Query(default=None, description="Only return this category"),
    ):
        """Recent MFDS announcements, newest first"""
        update_service: Optional[UpdateService] = request.app.state.update_service
        if update_service is None:
            return _error_response(
                BackendNotConfiguredError(f"No API key configured for provider '{config.ai.provider}'"),
                debug,
            )
        try:
            return await update_service.get_updates(category=category)
        except RetrievalError as e:
            logger.error("Error fetching MFDS updates (%s): %s | %s", e.error_type, e.message, e.detail or "")
            return _error_response(e, debug)

    @app.get("/api/debug")
    async def debug_info(request: Request):
        """Backend diagnostics"""
        update_service: Optional[UpdateService] = request.app.state.update_service
        info = {
            "hasApiKey": bool(config.resolve_api_key()),
            "environment": config.environment,
            "pythonVersion": platform.python_version(),
            "provider": config.ai.provider,
            "model": update_service.backend.model if update_service else config.ai.model,
        }
        if update_service is None:
            info["modelsError"] = "Update service is not configured"
            return info
        try:
            info["availableModels"] = await update_service.backend.list_models()
        except Exception as e:
            # Diagnostics report failures instead of raising them.
            info["modelsError"] = str(e)
        return info

    static_dir = Path(config.api.static_dir).resolve() if config.api.static_dir else None
    if static_dir and static_dir.is_dir():
        index_file = static_dir / "index.html"

        @app.get("/{full_path:path}", include_in_schema=False)
        async def serve_client(full_path: str):
            """Serve the built browser client with SPA fallback"""
            if full_path.startswith("api/"):
                raise HTTPException(status_code=404, detail="Not found")
            candidate = (static_dir / full_path).resolve()
            if full_path and candidate.is_file() and static_dir in candidate.parents:
                return FileResponse(candidate)
            if index_file.is_file():
                return FileResponse(index_file)
            raise HTTPException(status_code=404, detail="Not found")

        logger.info("Serving browser client from %s", static_dir)

    return app


def run_api_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the API server with configuration validation"""
    try:
        config = ensure_valid_config()
        setup_logging(config.logging, debug=config.debug)

        host = host or config.api.host
        port = port or int(os.getenv("PORT") or config.api.port)
        logger.info("Starting %s server on http://%s:%s (environment=%s)",
                    config.app_name, host, port, config.environment)

        uvicorn.run(
            create_app(config),
            host=host,
            port=port,
            log_level="debug" if config.debug else "info",
        )

    except ValueError as e:
        print(f"Configuration validation failed: {e}")
        print("Please fix configuration issues before starting the server.")
        return 1
    return 0


if __name__ == "__main__":
    run_api_server()
