"""
Media router - upload, inspect and delete media through the media manager

The manager picks the provider (primary, then fallback); this router only
records the result in media_assets and maps errors to HTTP statuses.
"""

from fastapi import APIRouter, Depends, FastAPI, File, Form, HTTPException, UploadFile, status
from fastapi.staticfiles import StaticFiles
from pathlib import Path
from typing import Annotated, List, Optional
from urllib.parse import urlparse
import logging

from ..core.exceptions import MediaValidationError, NotFoundError, UpstreamError
from ..dependencies import get_media_assets, get_media_manager
from ..models.media import MediaType, UploadMediaParams
from ..schemas.media import (
    MediaAssetResponse,
    MediaDeleteResponse,
    MediaUrlResponse,
    StorageInfoResponse,
)
from ..schemas.storage import LocalStorageConfig
from ..services.media.manager import MediaManager
from ..services.media.validation import detect_media_type
from ..services.media_assets import MediaAssetRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def mount_local_files(app: FastAPI, configs: List[LocalStorageConfig]) -> List[str]:
    """
    Serve local storage directories at the path of their base_url

    Must be called before the media router is included so the mounts win
    over /media/{media_id}. A base_url without a path is skipped (its files
    are served by something else), and a path is mounted once.

    Returns:
        Mounted paths
    """
    mounted = []
    for config in configs:
        path = urlparse(config.base_url).path.rstrip("/")
        if not path or path in mounted:
            continue
        Path(config.upload_dir).mkdir(parents=True, exist_ok=True)
        app.mount(path, StaticFiles(directory=config.upload_dir), name=f"local-media:{path}")
        logger.info(f"Serving local media from {config.upload_dir} at {path}")
        mounted.append(path)
    return mounted


def _http_error(e: Exception, operation: str, media_id: str = None) -> HTTPException:
    if isinstance(e, MediaValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": e.message, "errors": e.details.get("errors", [])},
        )
    if isinstance(e, NotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Media not found: {media_id}",
        )
    logger.error(f"Media {operation} failed{f' for {media_id}' if media_id else ''}: {e}")
    detail = e.message if isinstance(e, UpstreamError) else "Storage backend error"
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


@router.get("/storage", response_model=StorageInfoResponse)
async def get_storage_info(
    manager: Annotated[MediaManager, Depends(get_media_manager)],
):
    """Configured primary and fallback providers"""
    return StorageInfoResponse(**manager.get_storage_info())


@router.post("", response_model=MediaAssetResponse, status_code=status.HTTP_201_CREATED)
async def upload_media(
    manager: Annotated[MediaManager, Depends(get_media_manager)],
    assets: Annotated[MediaAssetRepository, Depends(get_media_assets)],
    file: UploadFile = File(...),
    media_type: Optional[MediaType] = Form(None),
):
    """
    Upload a file

    media_type defaults to the one implied by the file's content type.
    """
    data = await file.read()
    mime_type = file.content_type or "application/octet-stream"
    params = UploadMediaParams(
        type=media_type or detect_media_type(mime_type),
        file_name=file.filename or "",
        mime_type=mime_type,
        data=data,
    )

    try:
        info = await manager.upload(params)
    except Exception as e:
        raise _http_error(e, "upload")

    try:
        info = await assets.record(info, params.type)
    except Exception as e:
        # Stored but not recorded; the caller still gets the provider id
        logger.error(f"Failed to record media asset {info.storage_provider}:{info.id}: {e}")

    return MediaAssetResponse.from_info(info)


@router.get("/{media_id}", response_model=MediaAssetResponse)
async def get_media(
    media_id: str,
    manager: Annotated[MediaManager, Depends(get_media_manager)],
    assets: Annotated[MediaAssetRepository, Depends(get_media_assets)],
):
    """Current metadata of a stored asset"""
    try:
        info = await manager.get(media_id)
    except Exception as e:
        raise _http_error(e, "get", media_id)

    try:
        await assets.update(info)
    except Exception as e:
        logger.warning(f"Failed to refresh media asset record {media_id}: {e}")

    return MediaAssetResponse.from_info(info)


@router.get("/{media_id}/url", response_model=MediaUrlResponse)
async def get_media_url(
    media_id: str,
    manager: Annotated[MediaManager, Depends(get_media_manager)],
):
    """URL the asset can be fetched from"""
    try:
        url = await manager.get_url(media_id)
    except Exception as e:
        raise _http_error(e, "get_url", media_id)
    return MediaUrlResponse(id=media_id, url=url)


@router.delete("/{media_id}", response_model=MediaDeleteResponse)
async def delete_media(
    media_id: str,
    manager: Annotated[MediaManager, Depends(get_media_manager)],
    assets: Annotated[MediaAssetRepository, Depends(get_media_assets)],
):
    """Delete an asset from storage and drop its record"""
    try:
        success = await manager.delete(media_id)
    except Exception as e:
        raise _http_error(e, "delete", media_id)

    if success:
        try:
            await assets.delete(media_id)
        except Exception as e:
            logger.warning(f"Failed to delete media asset record {media_id}: {e}")

    return MediaDeleteResponse(id=media_id, success=success)
