"""Active-record style models and repositories over a REST API."""

from .api import Api, ApiConfig, ApiDriver, ApiError, ApiResponse, UploadProgress
from .records import Factory, Model, Repository

__version__ = "0.1.0"

__all__ = [
    "Api",
    "ApiConfig",
    "ApiDriver",
    "ApiError",
    "ApiResponse",
    "Factory",
    "Model",
    "Repository",
    "UploadProgress",
]
