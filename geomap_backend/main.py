import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from geomap_backend import __version__, exc
from geomap_backend.config import settings
from geomap_backend.routes import auth, notes, upload

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# FastAPI app config
app = FastAPI(
    title="GeoMap Notes API",
    description="Backend API for per-country map notes, image uploads and user sessions.",
    version=__version__,
    openapi_tags=[
        {"name": "Authentication", "description": "User registration, login, logout and session checks"},
        {"name": "Notes", "description": "Read and replace the note kept on each country"},
        {"name": "Images", "description": "Upload and remove images attached to country notes"},
    ]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(auth.router)
app.include_router(notes.router)
app.include_router(upload.router)


# Root Health Check
@app.get("/", summary="Health Check", tags=["General"])
def health_check():
    """Simple health check endpoint."""
    return {"message": "Healthy"}

@app.get("/ping", response_class=PlainTextResponse, tags=["General"])
def ping():
    """Keep-alive probe."""
    return "OK"


# Error handlers
@app.exception_handler(exc.GeomapError)
def geomap_error_handler(request, error: exc.GeomapError):
    if error.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, error)
    response = JSONResponse(status_code=error.status_code, content={"error": error.message})
    if isinstance(error, exc.Unauthorized):
        auth.clear_auth_cookie(response)
    return response

@app.exception_handler(RequestValidationError)
def request_validation_handler(request, error: RequestValidationError):
    errors = error.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})

@app.exception_handler(StarletteHTTPException)
def custom_http_exception_handler(request, error):
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.detail},
    )
