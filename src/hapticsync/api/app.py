import logging
import os
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..core.config import SystemConfig
from ..core.control import SessionController
from ..devices.base import DeviceClient
from ..devices.mock import MockDeviceClient
from . import control, websocket

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HAPTICSYNC_CONFIG"

ControllerFactory = Callable[[SystemConfig], SessionController]


def _default_controller(config: SystemConfig) -> SessionController:
    # Without a real device client the server runs against a disconnected mock
    client: DeviceClient = MockDeviceClient(connected=False)
    return SessionController(config, client)


def load_config() -> SystemConfig:
    path = os.environ.get(CONFIG_ENV_VAR)
    if path:
        return SystemConfig.from_yaml(path)
    return SystemConfig.create_default()


def init_app(
    config: Optional[SystemConfig] = None,
    controller_factory: Optional[ControllerFactory] = None,
) -> FastAPI:
    """Create and configure the FastAPI application"""
    config = config or load_config()
    controller_factory = controller_factory or _default_controller

    app = FastAPI(
        title="HapticSync Control API",
        description="Chat-driven and media-synchronized haptic control",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.network.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.controller = None
    app.state.startup_complete = False

    app.include_router(control.router)
    app.include_router(websocket.router)

    @app.on_event("startup")
    async def startup_event():
        """Initialize the session on startup"""
        try:
            logger.info("Starting HapticSync Control API")
            app.state.controller = controller_factory(config)
            await app.state.controller.start()
            app.state.startup_complete = True
            logger.info("Session controller started successfully")
        except Exception as e:
            logger.error(f"Failed to initialize system: {e}")
            if app.state.controller:
                try:
                    await app.state.controller.stop()
                except Exception as cleanup_error:
                    logger.error(f"Error during cleanup: {cleanup_error}")
                finally:
                    app.state.controller = None
            app.state.startup_complete = False
            raise

    @app.on_event("shutdown")
    async def shutdown_event():
        """Clean up resources on shutdown"""
        if app.state.controller:
            logger.info("Shutting down HapticSync Control API")
            try:
                await app.state.controller.stop()
                logger.info("Session controller stopped")
            except Exception as e:
                logger.error(f"Error during shutdown: {e}")
            finally:
                app.state.controller = None
                app.state.startup_complete = False

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        controller = app.state.controller
        return {
            "status": "healthy" if app.state.startup_complete else "starting",
            "controller": controller is not None,
            "connected": controller.session.connected if controller else False,
            "media_active": controller.session.media_active if controller else False,
        }

    return app


def main() -> None:
    """Run the API server with uvicorn"""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = init_app()
    network = app.state.config.network
    uvicorn.run(app, host=network.host, port=network.port)


__all__ = ["init_app", "load_config", "main"]
