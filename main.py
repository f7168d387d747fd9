import time
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from app.errors import ContentServerError
from app.models.file_record import Envelope
from app.routes.file_routes import router
from app.services.file_store import FileStore
from app.services.persistence import FilePersistence
from app.services.write_monitor import WriteMonitor
from logger_config import setup_logger

# Logger setup
logger = setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Directory creation failure aborts startup
    persistence = FilePersistence(Path(config.STORE_DIR), Path(config.TEMP_DIR))
    await persistence.initialize_directory()

    monitor = WriteMonitor(config.WRITE_FAILURE_THRESHOLD, config.WRITE_FAILURE_WINDOW_SECONDS)
    app.state.file_store = FileStore(persistence, monitor)
    await app.state.file_store.initialize()
    yield


app = FastAPI(title="Content Server", lifespan=lifespan)
app.include_router(router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.error(f"{request.method} {request.url.path} -> 500 ({elapsed_ms:.1f} ms): {type(e).__name__}")
        raise
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
    return response


@app.exception_handler(ContentServerError)
async def content_server_error_handler(request: Request, exc: ContentServerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.msg}")
    return JSONResponse(status_code=exc.status_code, content=Envelope(msg=exc.msg).to_body())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # Unknown routes and unsupported methods both answer 404
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content=Envelope(msg="Not Found").to_body())
    return JSONResponse(status_code=exc.status_code, content=Envelope(msg=str(exc.detail)).to_body())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=Envelope(msg="Internal server error").to_body())


if __name__ == "__main__":
    logger.info("Starting content server...")
    logger.info(f"Store directory: {config.STORE_DIR}")
    logger.info(f"Temporary directory: {config.TEMP_DIR}")
    uvicorn.run(app, host=config.HOST, port=config.PORT)
