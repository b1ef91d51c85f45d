"""HTTP drivers that turn REST calls into normalized ApiResponse objects."""

import io
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterator, Optional, Tuple, Union

import requests

from ..utils.logging import get_logger
from .models import ApiConfig, ApiResponse, UploadProgress

logger = get_logger(__name__)

ErrorHandler = Callable[[ApiResponse], None]
UploadHandler = Callable[[UploadProgress], None]
UploadFile = Union[str, Path, bytes, BinaryIO, Tuple[Any, ...]]

TOKEN_HEADER = "Token"


class ApiDriver(ABC):
    """
    Transport capability used by models and repositories.

    Every call returns an ApiResponse; transport failures are reported as an
    unsuccessful response, never raised.
    """

    def __init__(self) -> None:
        self._on_error: Optional[ErrorHandler] = None
        self._on_upload: Optional[UploadHandler] = None

    @abstractmethod
    def set_token(self, token: Optional[str]) -> "ApiDriver":
        pass

    @abstractmethod
    def set_base_endpoint(self, endpoint: str) -> "ApiDriver":
        pass

    @abstractmethod
    def set_version(self, version: str) -> "ApiDriver":
        pass

    @abstractmethod
    def get(self, endpoint: str, query: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """Execute a GET request with ``query`` as URL parameters."""
        pass

    @abstractmethod
    def post(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """Execute a POST request with a JSON body."""
        pass

    @abstractmethod
    def patch(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """Execute a PATCH request with a JSON body."""
        pass

    @abstractmethod
    def delete(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """Execute a DELETE request with an optional JSON body."""
        pass

    @abstractmethod
    def upload(
        self,
        endpoint: str,
        file: UploadFile,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        """Upload ``file`` as multipart form data (part name ``file``)."""
        pass

    # Error handler
    def get_error_handler(self) -> Optional[ErrorHandler]:
        return self._on_error

    def set_error_handler(self, handler: ErrorHandler) -> "ApiDriver":
        self._on_error = handler
        return self

    def remove_error_handler(self) -> "ApiDriver":
        self._on_error = None
        return self

    # Upload progress handler
    def get_upload_handler(self) -> Optional[UploadHandler]:
        return self._on_upload

    def set_upload_handler(self, handler: UploadHandler) -> "ApiDriver":
        self._on_upload = handler
        return self

    def remove_upload_handler(self) -> "ApiDriver":
        self._on_upload = None
        return self

    def _finish(self, response: ApiResponse) -> ApiResponse:
        """Run the error handler for unsuccessful responses, then hand the response back."""
        if not response.is_successful() and self._on_error is not None:
            self._on_error(response)
        return response


class Api(ApiDriver):
    """ApiDriver backed by a ``requests.Session``."""

    def __init__(
        self,
        base_endpoint: str = "",
        version: str = "",
        *,
        token: Optional[str] = None,
        timeout_seconds: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the driver.

        Args:
            base_endpoint: Scheme and host of the API
            version: Version segment placed between the base endpoint and resources
            token: Optional credential sent as the Token header
            timeout_seconds: Per-request timeout
            session: Optional pre-built session (tests, connection pooling)
        """
        super().__init__()
        self.config = ApiConfig(
            base_endpoint=base_endpoint,
            version=version,
            token=token,
            timeout_seconds=timeout_seconds,
        )
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: ApiConfig, session: Optional[requests.Session] = None) -> "Api":
        return cls(
            config.base_endpoint,
            config.version,
            token=config.token,
            timeout_seconds=config.timeout_seconds,
            session=session,
        )

    def set_token(self, token: Optional[str]) -> "Api":
        self.config = self.config.model_copy(update={"token": token})
        return self

    def set_base_endpoint(self, endpoint: str) -> "Api":
        self.config = self.config.model_copy(update={"base_endpoint": endpoint})
        return self

    def set_version(self, version: str) -> "Api":
        self.config = self.config.model_copy(update={"version": version})
        return self

    def get_endpoint_url(self, endpoint: str) -> str:
        return self.config.endpoint_url(endpoint)

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for requests."""
        headers: Dict[str, str] = {"Accept": "application/json"}
        if self.config.token is not None:
            headers[TOKEN_HEADER] = self.config.token
        return headers

    def _send(self, method: str, endpoint: str, **kwargs: Any) -> ApiResponse:
        """
        Issue one request and normalize the outcome.

        Args:
            method: HTTP verb
            endpoint: Resource endpoint relative to base/version
            **kwargs: Passed through to ``requests.Session.request``

        Returns:
            ApiResponse (server_error() on any transport failure)
        """
        url = self.get_endpoint_url(endpoint)
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method,
                url,
                headers=self._get_headers(),
                timeout=self.config.timeout_seconds,
                **kwargs,
            )
            result = self._parse(method, url, response)
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            result = ApiResponse.server_error()
        return self._finish(result)

    def _parse(self, method: str, url: str, response: requests.Response) -> ApiResponse:
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"{method} {url} returned a non-JSON body: {e}")
            return ApiResponse.server_error()
        return ApiResponse.from_payload(payload)

    def get(self, endpoint: str, query: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self._send("GET", endpoint, params=query)

    def post(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self._send("POST", endpoint, json=body)

    def patch(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self._send("PATCH", endpoint, json=body)

    def delete(self, endpoint: str, body: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return self._send("DELETE", endpoint, json=body)

    def upload(
        self,
        endpoint: str,
        file: UploadFile,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        url = self.get_endpoint_url(endpoint)
        logger.debug(f"POST {url} (upload)")
        data = {key: _form_value(value) for key, value in (extra_fields or {}).items()}
        try:
            with _open_upload(file) as file_part:
                request = requests.Request(
                    "POST",
                    url,
                    headers=self._get_headers(),
                    files={"file": file_part},
                    data=data,
                )
                prepared = self.session.prepare_request(request)

            handler = self.get_upload_handler()
            if handler is not None and prepared.body is not None:
                prepared.body = _ProgressReader(prepared.body, handler)

            # send() alone skips proxy and CA bundle settings from the environment
            settings = self.session.merge_environment_settings(prepared.url, {}, None, None, None)
            response = self.session.send(prepared, timeout=self.config.timeout_seconds, **settings)
            result = self._parse("POST", url, response)
        except requests.RequestException as e:
            logger.error(f"Upload to {url} failed: {e}")
            result = ApiResponse.server_error()
        except OSError as e:
            logger.error(f"Upload to {url} could not read the file: {e}")
            result = ApiResponse.server_error()
        return self._finish(result)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "Api":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class _ProgressReader:
    """File-like wrapper over an encoded body that reports bytes read."""

    def __init__(self, body: Union[bytes, str], handler: UploadHandler):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._buffer = io.BytesIO(body)
        self._total = len(body)
        self._handler = handler

    def __len__(self) -> int:
        return self._total

    def read(self, size: int = -1) -> bytes:
        chunk = self._buffer.read(size)
        if chunk:
            self._handler(UploadProgress(loaded=self._buffer.tell(), total=self._total))
        return chunk


@contextmanager
def _open_upload(file: UploadFile) -> Iterator[Any]:
    """Resolve the accepted file inputs to a requests file part."""
    if isinstance(file, (str, Path)):
        path = Path(file)
        with path.open("rb") as handle:
            yield (path.name, handle)
    elif isinstance(file, bytes):
        yield ("file", file)
    else:
        yield file


def _form_value(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return value
