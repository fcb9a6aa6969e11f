"""
BioMap API - FastAPI backend for the research workspace
"""

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from biomap import __version__
from biomap.domain.errors import BioMapError
from biomap.utils.logging_config import LogFiles, Logger, configure_logging

from .routes import chat, notes, projects, research

# Load local .env automatically so provider keys are available in API mode.
load_dotenv(find_dotenv(usecwd=True), override=False)
configure_logging()

app = FastAPI(
    title="BioMap API",
    description="API for project intake, research maps, grounded chat and notes",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BioMapError)
async def _biomap_error_handler(request: Request, exc: BioMapError):
    if exc.status_code >= 500:
        Logger.error(f"{request.method} {request.url.path} failed: {exc.message}", file=LogFiles.ERROR)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception):
    Logger.error(f"{request.method} {request.url.path} unhandled: {exc!r}", file=LogFiles.ERROR)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "version": __version__}


app.include_router(projects.router, prefix="/api", tags=["Projects"])
app.include_router(research.router, prefix="/api", tags=["Research"])
app.include_router(chat.router, prefix="/api", tags=["Chat"])
app.include_router(notes.router, prefix="/api", tags=["Notes"])


def run() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
