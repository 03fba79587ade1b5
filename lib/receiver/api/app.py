"""FastAPI application setup."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lib.receiver import __version__
from lib.receiver.api.routes import commands, device, health
from lib.receiver.config import ReceiverConfig, load_config
from lib.receiver.logging import level_from_name, setup_logging
from lib.receiver.service import ReceiverService


def create_app(
    config: ReceiverConfig | None = None,
    service: ReceiverService | None = None,
) -> FastAPI:
    """Create FastAPI application.

    Parameters
    ----------
    config : ReceiverConfig | None, optional
        Configuration, by default None (loads from environment)
    service : ReceiverService | None, optional
        Service to serve, by default None (built from ``config``)

    Returns
    -------
    FastAPI
        Configured FastAPI app
    """
    config = config or (service.config if service else load_config())
    setup_logging(
        level=level_from_name(config.log_level),
        json_output=config.log_json,
        log_file=config.log_file,
    )

    app = FastAPI(
        title="Receiver Control API",
        description="REST API for audio receivers speaking the telnet control protocol",
        version=__version__,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(commands.router)
    app.include_router(device.router)
    app.include_router(health.router)

    # Create and set service instance
    service = service or ReceiverService(config=config)
    commands.set_service(service)
    device.set_service(service)
    health.set_service(service)
    app.state.service = service

    @app.on_event("startup")
    async def startup() -> None:
        """Startup event handler."""
        await service.start()

    @app.on_event("shutdown")
    async def shutdown() -> None:
        """Shutdown event handler."""
        await service.stop()

    return app


def main() -> None:
    """Main entry point for running the API server."""
    import uvicorn

    config = load_config()
    app = create_app(config)
    uvicorn.run(app, host=config.service.api_host, port=config.service.api_port)


if __name__ == "__main__":
    main()
