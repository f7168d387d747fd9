from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from app.errors import ClientError, NotFoundError, PersistenceError
from app.models.file_record import Envelope
from app.services.file_store import FileStore
from app.services.persistence import sanitize_name
from logger_config import setup_logger

logger = setup_logger()

router = APIRouter()


def get_store(request: Request) -> FileStore:
    return request.app.state.file_store


@router.get("/files")
async def list_files(request: Request):
    files = await get_store(request).list_all()
    logger.info(f"Listing {len(files)} files")
    if not files:
        return JSONResponse(status_code=200, content=Envelope(msg="Got no files").to_body())
    envelope = Envelope(msg=f"Got {len(files)} files", files=files)
    return JSONResponse(status_code=200, content=envelope.to_body())


@router.post("/file")
async def upload_file(request: Request):
    """Store the ``name`` and ``content`` fields of a URL-encoded form.

    An empty ``content`` is valid and stores an empty file.
    """
    form = await request.form()
    raw_name = form.get("name")
    content = form.get("content")
    # An empty name counts as missing, an empty content does not
    if not isinstance(raw_name, str) or not raw_name or not isinstance(content, str):
        raise ClientError("Missing name or content in request body")

    logger.info(f"Receiving upload request for {raw_name!r}")
    name = sanitize_name(raw_name)
    if name is None:
        raise ClientError(f"Invalid file name '{raw_name}'")

    await get_store(request).put(name, content)
    return JSONResponse(status_code=201, content=Envelope(msg=f"Stored file '{name}'").to_body())


@router.get("/file")
async def download_without_name():
    raise ClientError("No file path given")


@router.get("/file/{name:path}")
async def download_file(name: str, request: Request):
    if not name:
        raise ClientError("No file path given")

    # Never let the client address anything outside the store directory
    safe_name = sanitize_name(name)
    if safe_name is None:
        raise ClientError("No file path given")
    logger.info(f"Receiving download request for {safe_name}")

    record = await get_store(request).get(safe_name)
    if record is None:
        raise NotFoundError(f"File '{safe_name}' not found in store")
    if record.content is None:
        raise PersistenceError(f"File '{safe_name}' could not be read")

    return PlainTextResponse(record.content, status_code=200)
