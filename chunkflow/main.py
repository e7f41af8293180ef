import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from chunkflow.configs import settings
from chunkflow.const import ENDPOINTS
from chunkflow.middleware import RequestSizeLimitMiddleware
from chunkflow.routes import media_router
from chunkflow.utils.workspace import Workspace

logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

workspace = Workspace.from_settings()
workspace.ensure()

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestSizeLimitMiddleware)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as 400 with the service's error shape."""
    errors = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}" for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"success": False, "error": errors or "Invalid request body"})


@app.get("/")
async def index():
    return {"status": "online", "endpoints": ENDPOINTS}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


app.include_router(media_router, tags=["media"])

app.mount("/chunks", StaticFiles(directory=str(workspace.chunks_dir)), name="chunks")
app.mount("/output", StaticFiles(directory=str(workspace.output_dir)), name="output")


def run():
    import uvicorn

    logger.info(f"FFmpeg API running on port {settings.port}")
    uvicorn.run(
        "chunkflow.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        workers=settings.workers,
    )


if __name__ == "__main__":
    run()
