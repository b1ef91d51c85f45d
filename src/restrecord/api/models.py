"""Pydantic models for the API layer: configuration, envelope and progress."""

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..utils.casing import snake_to_camel

SERVER_ERROR_CODE = "E-SERVER-ERROR"
SERVER_ERROR_TEXT = "Server error"


class ApiConfig(BaseModel):
    """Connection settings owned by a single driver instance."""

    base_endpoint: str = Field(default="", description="Scheme and host, e.g. https://api.example.com")
    version: str = Field(default="", description="API version path segment, e.g. 1.0")
    token: Optional[str] = Field(default=None, description="Value sent in the Token header")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request timeout")

    @property
    def endpoint_root(self) -> str:
        return "/".join([self.base_endpoint, self.version])

    def endpoint_url(self, endpoint: str) -> str:
        return "/".join([self.endpoint_root, endpoint])


class ApiError(BaseModel):
    """Top-level error of a response. Extra keys sent by the server are kept."""

    model_config = ConfigDict(extra="allow", frozen=True)

    Code: Any = ""
    Text: Any = ""


class ApiResponse(BaseModel):
    """
    Immutable snapshot of one HTTP round-trip.

    Built from the server envelope::

        {"success": bool, "data": {...}, "error": {"code": ..., "text": ...},
         "field-errors": {...}}

    Keys of ``error`` and ``field-errors`` are converted from snake_case to
    CamelCase on ingestion.
    """

    model_config = ConfigDict(frozen=True)

    success: bool = False
    data: Dict[str, Any] = Field(default_factory=dict)
    error: ApiError = Field(default_factory=ApiError)
    field_errors: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "ApiResponse":
        """
        Normalize a decoded JSON payload into a response.

        Args:
            payload: Decoded response body. Anything but a mapping yields an
                unsuccessful, empty response.

        Returns:
            ApiResponse
        """
        if not isinstance(payload, Mapping):
            return cls()

        data = payload.get("data")
        error = payload.get("error")
        field_errors = payload.get("field-errors")

        return cls(
            success=bool(payload.get("success") or False),
            data=dict(data) if isinstance(data, Mapping) else {},
            error=ApiError(**_camel_keys(error)) if isinstance(error, Mapping) else ApiError(),
            field_errors=_camel_keys(field_errors) if isinstance(field_errors, Mapping) else {},
        )

    @classmethod
    def server_error(cls) -> "ApiResponse":
        """Synthetic response used when the transport itself failed."""
        return cls.from_payload(
            {"success": False, "error": {"code": SERVER_ERROR_CODE, "text": SERVER_ERROR_TEXT}}
        )

    def is_successful(self) -> bool:
        """True if the server reported success."""
        return self.success

    def has_data(self, name: str) -> bool:
        """True if the server returned data under ``name``."""
        return name in self.data

    def get_data(self, name: str) -> Any:
        """
        Return the data sent under ``name``.

        Missing keys and falsy values both return None.
        """
        return self.data.get(name) or None

    def get_field_errors(self) -> Dict[str, Any]:
        """Copy of the per-field errors (the response itself stays unchanged)."""
        return dict(self.field_errors)

    def to_envelope(self) -> Dict[str, Any]:
        """Render back to a JSON-friendly envelope (error keys stay CamelCase)."""
        return {
            "success": self.success,
            "data": self.data,
            "error": self.error.model_dump(),
            "field-errors": self.field_errors,
        }


class UploadProgress(BaseModel):
    """Progress of a multipart upload, reported to the upload handler."""

    loaded: int
    total: int

    @computed_field
    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return round(self.loaded * 100.0 / self.total, 2)


def _camel_keys(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {snake_to_camel(str(key)): value for key, value in values.items()}
