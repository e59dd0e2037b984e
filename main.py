import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import APIRouter
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from database import dispose_db, is_connected
from errors import AvatarServiceError
from schemas import HealthResponse
from routers.avatar_router import router as avatar_router
from routers.metadata_router import router as metadata_router

load_dotenv()

API_VERSION = "1.0.0"

FRONTEND_URL = os.getenv("FRONTEND_URL")

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The database engine is created lazily by the first request that needs it
    try:
        yield
    finally:
        if is_connected():
            dispose_db()
            logger.info("Database connections closed")


app = FastAPI(
    title="Portal Avatar API",
    description="API for setting and serving custom NFT avatar images, authorized by wallet signatures",
    version=API_VERSION,
    lifespan=lifespan
)


# Registered before CORS so that CORS headers are added to these 500 responses too
@app.middleware("http")
async def unhandled_error_middleware(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            content={"error": str(exc) or "Internal Server Error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin for origin in ["http://localhost:3000", "http://127.0.0.1:3000", FRONTEND_URL] if origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AvatarServiceError)
async def avatar_service_error_handler(request: Request, exc: AvatarServiceError):
    return JSONResponse(content={"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(content={"error": "Invalid request body"}, status_code=status.HTTP_400_BAD_REQUEST)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(content={"error": str(exc.detail)}, status_code=exc.status_code, headers=exc.headers)


api_router = APIRouter(prefix="/api")

api_router.include_router(avatar_router, prefix="/avatar", tags=["Avatar"])
api_router.include_router(metadata_router, prefix="/metadata", tags=["Metadata"])

app.include_router(api_router)


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": API_VERSION}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
