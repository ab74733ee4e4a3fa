import logging
import re
import time

from supabase._async.client import AsyncClient as AsyncSupabaseClient

from reztek_service.errors import StoreError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/tiff",
    "image/svg+xml",
}

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.]")


def request_image_path(request_id: str, filename: str, now_ms: int | None = None) -> str:
    """Object path for a request image: <request id>/<ms>_<sanitised name>."""
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    safe_name = _UNSAFE_NAME_CHARS.sub("_", filename or "image")
    return f"{request_id}/{now_ms}_{safe_name}"


async def upload_request_image(
    store: AsyncSupabaseClient,
    bucket: str,
    request_id: str,
    filename: str,
    content: bytes,
    content_type: str,
) -> str:
    """Uploads an image and returns its download URL."""
    path = request_image_path(request_id, filename)
    try:
        bucket_api = store.storage.from_(bucket)
        await bucket_api.upload(path, content, {"content-type": content_type})
        url = await bucket_api.get_public_url(path)
    except Exception as e:
        logger.error(f"Storage error uploading {path} to {bucket}: {e}", exc_info=True)
        raise StoreError(f"Image upload failed for request {request_id}") from e
    logger.info(f"Stored image for request {request_id} at {bucket}/{path}")
    return url
