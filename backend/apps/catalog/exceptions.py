from rest_framework import status

from apps.api.exceptions import ApplicationError


class ImageError(ApplicationError):
    def __init__(self, message=None, **kwargs):
        super().__init__(None, message, **kwargs)


class InvalidImage(ImageError):
    default_code = "INVALID_IMAGE"
    default_message = "File must be an image"
    default_status = status.HTTP_400_BAD_REQUEST


class ImageNotFound(ImageError):
    default_code = "IMAGE_NOT_FOUND"
    default_message = "Image not found"
    default_status = status.HTTP_404_NOT_FOUND


class ImageStorageError(ImageError):
    default_code = "IMAGE_STORAGE_ERROR"
    default_message = "An error occurred while accessing image storage"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
