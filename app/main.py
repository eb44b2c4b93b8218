from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import BaseCustomException, ValidationError, create_error_response
from app.api.v1.api import api_router
from app.domain.ipd_billing.repository import InvoiceDraftRepository, RedisInvoiceDraftRepository
from app.infrastructure.backend_api import HospitalBackendClient
from app.infrastructure.redis import CacheService, close_redis_services, init_redis_services, redis_manager
from app.middleware.tenant_middleware import TenantMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.backend_client = HospitalBackendClient.from_settings()
    if settings.DRAFT_STORE == "redis":
        await init_redis_services(settings.REDIS_URL)
        app.state.draft_repository = RedisInvoiceDraftRepository(
            CacheService(redis_manager.client), ttl=settings.DRAFT_TTL_SECONDS
        )
    else:
        app.state.draft_repository = InvoiceDraftRepository()
    logger.info(f"{settings.PROJECT_NAME} started (drafts: {settings.DRAFT_STORE})")

    yield

    await app.state.backend_client.aclose()
    if settings.DRAFT_STORE == "redis":
        await close_redis_services()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(TenantMiddleware)


@app.exception_handler(BaseCustomException)
async def custom_exception_handler(request: Request, exc: BaseCustomException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc, request_id=request.headers.get("X-Request-ID")),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(
        "Request validation failed",
        details={"errors": [
            {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
            for e in jsonable_encoder(exc.errors())
        ]},
    )
    return await custom_exception_handler(request, error)


app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/health")
def health_check():
    return {"status": "ok"}
