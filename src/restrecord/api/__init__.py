"""API layer: transport drivers and the normalized response envelope.

Rules:

1. Drivers never raise on transport failure - they return ApiResponse.server_error()
2. Each driver owns its configuration and handlers (no module-level state)
3. Response envelopes are immutable once built
"""

from .driver import Api, ApiDriver
from .models import ApiConfig, ApiError, ApiResponse, UploadProgress

__all__ = ["Api", "ApiConfig", "ApiDriver", "ApiError", "ApiResponse", "UploadProgress"]
