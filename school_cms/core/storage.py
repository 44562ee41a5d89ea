import cloudinary
import cloudinary.uploader
from fastapi import Request
from fastapi.concurrency import run_in_threadpool

from .config import Settings
from .errors import StorageError
import logging

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}


class CloudinaryImageStorage:
    """Uploads lesson images to Cloudinary and returns their public URL."""

    def __init__(self, settings: Settings):
        self.settings = settings
        if settings.cloudinary_configured:
            cloudinary.config(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                secure=True,
            )
            logger.info("Cloudinary configured")
        else:
            logger.warning("Cloudinary credentials not configured - image uploads will fail")

    async def upload(self, data: bytes, filename: str) -> str:
        if not self.settings.cloudinary_configured:
            logger.error("Cloudinary credentials not configured")
            raise StorageError("خطأ في إعدادات الخادم", "CONFIG_ERROR")

        try:
            # The SDK is blocking, keep it off the event loop
            result = await run_in_threadpool(
                cloudinary.uploader.upload,
                data,
                folder=self.settings.cloudinary_folder,
                resource_type="image",
            )
        except Exception as e:
            logger.error(f"Cloudinary upload failed for {filename}: {e}", exc_info=True)
            raise StorageError("فشل تحميل الصورة", "UPLOAD_ERROR")

        image_url = result.get("secure_url") if result else None
        if not image_url:
            logger.error(f"Cloudinary upload returned no URL for {filename}: {result}")
            raise StorageError("فشل تحميل الصورة", "UPLOAD_ERROR")

        logger.info(f"Image uploaded to Cloudinary: {image_url}")
        return image_url


def get_storage(request: Request) -> CloudinaryImageStorage:
    return request.app.state.storage
