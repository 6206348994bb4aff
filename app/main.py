import logging

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.errors import AnalyzeError, InputValidationError
from .routers import analyze
from .services import ai_service

logger = logging.getLogger("cv_matcher")

# 1. SETUP
load_dotenv()
app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup_event():
    logger.info(">>> SERVER STARTING UP <<<")
    ai_service.load_prompts()
    logger.info("Server is ready to accept requests.")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info(">>> SERVER SHUTTING DOWN <<<")

@app.exception_handler(AnalyzeError)
async def analyze_error_handler(request: Request, exc: AnalyzeError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # e.g. cvFile sent as a text field instead of a file part
    fields = ", ".join(str(err.get("loc", ["?"])[-1]) for err in exc.errors())
    logger.warning(f"{request.method} {request.url.path} -> 400 invalid fields: {fields}")
    return JSONResponse(
        status_code=InputValidationError.status_code,
        content={"detail": f"Invalid request fields: {fields}", "kind": InputValidationError.kind},
    )

app.include_router(analyze.router)

@app.get("/")
async def root():
    return {
        "message": "CV Matcher API is running!",
        "docs": "/docs",
        "status": "OK"
    }
