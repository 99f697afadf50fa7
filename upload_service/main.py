import mimetypes
from contextlib import asynccontextmanager
from typing import Optional, Tuple

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException

import config
from config import UploadSettings
from logger_config import setup_logger
from app.errors import (
    AssetNotFoundError,
    ClientInputError,
    InternalError,
    UploadServiceError,
)
from app.models.upload import DeleteIn, DeleteOut, UploadOut
from app.services.namer import generate_filename
from app.services.storage_manager import InvalidFilenameError, StorageManager
from app.services.validator import (
    UNSUPPORTED_TYPE_MESSAGE,
    Rejected,
    classify,
    format_file_size,
    validate_upload,
)

# Field names accepted for the uploaded file, in order of preference
UPLOAD_FIELDS = ("file", "image")

# Logger setup
logger = setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Build settings once and create the upload directory
    settings = UploadSettings.from_env()
    app.state.settings = settings
    app.state.storage_manager = StorageManager(settings.upload_dir, settings.chunk_size)
    await app.state.storage_manager.initialize()
    yield


# Create FastAPI app with lifespan
app = FastAPI(title="Upload Service", lifespan=lifespan)


def get_settings(request: Request) -> UploadSettings:
    return request.app.state.settings


def get_storage_manager(request: Request) -> StorageManager:
    return request.app.state.storage_manager


@app.exception_handler(UploadServiceError)
async def upload_service_error_handler(request: Request, exc: UploadServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Something broke!"},
    )


def select_upload(form: FormData) -> Optional[Tuple[str, UploadFile]]:
    """Return (field name, file) for the first accepted field that carries a file.

    Plain text values under an accepted field name are skipped.
    """
    for name in UPLOAD_FIELDS:
        for value in form.getlist(name):
            if isinstance(value, UploadFile):
                return name, value
    return None


def public_url(request: Request, filename: str) -> str:
    host = request.headers.get("host", request.url.netloc)
    return f"{request.url.scheme}://{host}/uploads/{filename}"


async def store_upload(
    storage_manager: StorageManager,
    settings: UploadSettings,
    field: str,
    upload: UploadFile,
) -> Tuple[str, int]:
    """Write the upload under a freshly generated name, retrying on a name collision."""
    for _ in range(settings.max_name_attempts):
        filename = generate_filename(field, upload.filename)
        try:
            size = await storage_manager.write_stream(filename, upload)
            return filename, size
        except FileExistsError:
            logger.warning(f"Generated name {filename} already exists, generating another")
    raise RuntimeError(f"Could not find a free name after {settings.max_name_attempts} attempts")


@app.post("/upload", status_code=201, response_model=UploadOut)
async def upload_file(
    request: Request,
    settings: UploadSettings = Depends(get_settings),
    storage_manager: StorageManager = Depends(get_storage_manager),
):
    """Store one uploaded file sent as the "file" or "image" form field."""
    try:
        form = await request.form()
    except HTTPException as e:
        # Starlette reports malformed multipart bodies this way
        logger.warning(f"Could not parse upload body: {e.detail}")
        raise ClientInputError(f"Upload error: {e.detail}")

    try:
        return await save_upload(request, form, settings, storage_manager)
    finally:
        await form.close()


async def save_upload(
    request: Request,
    form: FormData,
    settings: UploadSettings,
    storage_manager: StorageManager,
) -> UploadOut:
    selected = select_upload(form)
    if selected is None:
        logger.info("Upload request without a file")
        raise ClientInputError("No file uploaded")

    field, upload = selected
    logger.info(f"Receiving upload: field={field}, name={upload.filename}, type={upload.content_type}")

    # Unsupported types are refused before anything is written
    if classify(upload.content_type, upload.filename) is None:
        logger.warning(f"Rejected {upload.filename}: unsupported type {upload.content_type}")
        raise ClientInputError(UNSUPPORTED_TYPE_MESSAGE)

    filename = None
    try:
        # Size is measured from the written stream, not from any header
        filename, size = await store_upload(storage_manager, settings, field, upload)

        outcome = validate_upload(upload.content_type, upload.filename, size, settings)
        if isinstance(outcome, Rejected):
            await storage_manager.delete(filename)
            logger.warning(f"Rejected {upload.filename}: {outcome.message}")
            raise ClientInputError(outcome.message, **outcome.details())

    except UploadServiceError:
        raise
    except Exception as e:
        logger.error(f"Error uploading {upload.filename}: {str(e)}", exc_info=True)
        if filename is not None:
            try:
                await storage_manager.delete(filename)
            except OSError:
                logger.error(f"Could not remove failed upload {filename}", exc_info=True)
        raise InternalError("Error uploading file")

    category = outcome.category
    logger.info(f"Stored {upload.filename} as {filename} ({size} bytes, {category.value})")
    return UploadOut(
        message=f"{category.label} uploaded successfully",
        filename=filename,
        path=public_url(request, filename),
        size=size,
        formattedSize=format_file_size(size),
        mimetype=upload.content_type,
        type=category.value,
        field=field,
    )


@app.get("/uploads/{filename}")
async def get_file(filename: str, storage_manager: StorageManager = Depends(get_storage_manager)):
    """Stream a stored file back to the client."""
    logger.info(f"Receiving download request for: {filename}")

    try:
        if not await storage_manager.exists(filename):
            raise AssetNotFoundError()
        chunks = await storage_manager.open_stream(filename)
    except InvalidFilenameError:
        logger.warning(f"Rejected download of invalid name: {filename!r}")
        raise ClientInputError("Invalid filename")
    except FileNotFoundError:
        raise AssetNotFoundError()
    except UploadServiceError:
        raise
    except Exception as e:
        logger.error(f"Error retrieving {filename}: {str(e)}", exc_info=True)
        raise InternalError("Error retrieving file")

    content_type, _ = mimetypes.guess_type(filename)
    return StreamingResponse(chunks, media_type=content_type or "application/octet-stream")


@app.post("/delete", response_model=DeleteOut)
async def delete_file(request: Request, storage_manager: StorageManager = Depends(get_storage_manager)):
    """Delete a stored file named in the JSON body."""
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    filename = None
    if isinstance(payload, dict):
        try:
            filename = DeleteIn.model_validate(payload).filename
        except ValidationError:
            filename = None

    if not filename:
        raise ClientInputError("Filename is required in request body")

    logger.info(f"Receiving delete request for: {filename}")

    try:
        deleted = await storage_manager.delete(filename)
    except InvalidFilenameError:
        logger.warning(f"Rejected delete of invalid name: {filename!r}")
        raise ClientInputError("Invalid filename")
    except Exception as e:
        logger.error(f"Error deleting {filename}: {str(e)}", exc_info=True)
        raise InternalError("Error deleting file")

    if not deleted:
        raise AssetNotFoundError()

    logger.info(f"Successfully deleted: {filename}")
    return DeleteOut(message="File deleted successfully", filename=filename)


if __name__ == "__main__":
    logger.info("Starting Upload Service...")
    logger.info(f"Upload directory: {UploadSettings.from_env().upload_dir}")
    logger.info(f"Maximum image size: {format_file_size(config.MAX_IMAGE_SIZE)}")
    logger.info(f"Maximum video/PDF size: {format_file_size(config.MAX_OTHER_SIZE)}")
    uvicorn.run(app, host=config.HOST, port=config.PORT)
