import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bulksms.core.config import Settings, get_settings
from bulksms.core.logging import configure_logging
from bulksms.gateway import Gateway
from bulksms.routers import get_api_router


def create_app(settings: Settings | None = None, *, gateway: Gateway | None = None) -> FastAPI:
    settings = settings or (gateway.settings if gateway else get_settings())
    configure_logging(settings)

    logger = logging.getLogger("bulksms.validation")

    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.gateway = gateway or Gateway(settings)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.error(
            "Validation error on %s %s detail=%s",
            request.method,
            request.url.path,
            exc.errors(),
        )
        return JSONResponse(
            status_code=status.HTTP_406_NOT_ACCEPTABLE,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    app.include_router(get_api_router(), prefix=settings.API_PREFIX)

    @app.on_event("startup")
    def startup_event():
        app.state.gateway.start()

    @app.on_event("shutdown")
    def shutdown_event():
        app.state.gateway.shutdown()

    return app


app = create_app()
