from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging import configure_logging
from app.api.v1.api import api_router

configure_logging()

app = FastAPI(title=settings.APP_NAME)

# CORS: use CORS_ORIGINS from env in production; the mobile app needs every origin in dev
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] if settings.CORS_ORIGINS else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are client faults: 400, not FastAPI's default 422."""
    errors = exc.errors()
    missing = any(e.get("type") == "missing" for e in errors)
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Missing required fields" if missing else "Invalid request body",
            "errors": jsonable_encoder(errors),
        },
    )


app.include_router(api_router)
