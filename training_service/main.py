# training_service/main.py

import os
import sys
import logging
import time
from dotenv import load_dotenv

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load .env into os.environ
load_dotenv()

# --- Configure logging FIRST ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

handlers = [logging.StreamHandler(sys.stdout)]
if os.getenv("LOG_FILE"):
    handlers.append(logging.FileHandler(os.getenv("LOG_FILE"), mode="a"))

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(name)s:%(levelname)s] %(message)s",
    handlers=handlers,
)

logger = logging.getLogger("training_service")
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

for name in ("uvicorn.error", "uvicorn.access", "fastapi"):
    logging.getLogger(name).setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

logger.info(f"Logging configured at {LOG_LEVEL} level")

from training_service.core.exceptions import ServiceError
from training_service.services.sync_service import SyncQueue
from training_service.services.user_service_client import HttpUserServiceClient, USER_SERVICE_URL

# --- Routers ---
from training_service.api.tests        import router as tests_router
from training_service.api.test_results import router as test_results_router

# --- Create FastAPI app ---
app = FastAPI(
    title       = "Training Service API",
    version     = "1.0.0",
    description = "Athlete test results, trends and team statistics"
)

# One queue and one user-service client per process
app.state.sync_queue = SyncQueue()
app.state.user_service = HttpUserServiceClient()


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    logger.info(f"📥 Incoming request: {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(f"✅ Request completed in {process_time:.3f}s with status {response.status_code}")
    return response


def _error_body(message: str, details=None) -> dict:
    body = {"status": "error", "message": message}
    if details is not None:
        body["details"] = details
    return body


# --- Error handlers: every failure leaves as an error envelope ---
@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(level, f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.details))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = "The resource could not be found"
    return JSONResponse(status_code=exc.status_code, content=_error_body(message), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]) or None, "message": err.get("msg")}
        for err in exc.errors()
    ]
    logger.warning(f"❗️ Validation error for {request.url.path}: {details!r}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Validation error", details),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("An internal server error occurred"),
    )


# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins     = ["*"],
    allow_credentials = True,
    allow_methods     = ["*"],
    allow_headers     = ["*"],
)

# --- Include all routers ---
app.include_router(tests_router,        tags=["Tests"])
app.include_router(test_results_router, tags=["Test Results"])


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Starting Training Service API")

    env_ok = {
        "DATABASE_URL":     bool(os.getenv("DATABASE_URL")),
        "JWT_SECRET_KEY":   bool(os.getenv("JWT_SECRET_KEY")),
        "USER_SERVICE_URL": bool(os.getenv("USER_SERVICE_URL")),
    }
    logger.info(f"📋 Env configuration: {env_ok}")
    logger.info(f"🔗 User service at {USER_SERVICE_URL}")


@app.on_event("shutdown")
async def shutdown_event():
    queue = app.state.sync_queue
    if queue.is_draining:
        logger.info(f"⏳ Waiting for {queue.pending} pending sync job(s)")
        await queue.join()
    await app.state.user_service.aclose()
    logger.info("👋 Training Service API stopped")


# --- Health endpoint ---
@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "success", "message": "Training service is running"}
