"""Tests for the requests-backed Api driver."""

import json

import pytest
import requests

from restrecord.api.driver import Api
from restrecord.api.models import ApiConfig, UploadProgress


class RecordingSession(requests.Session):
    """Real session (so requests builds every request) that never touches the network."""

    def __init__(self, payload=None, status_code=200, body=None, error=None):
        super().__init__()
        self.payload = {"success": True} if payload is None else payload
        self.status_code = status_code
        self.body = body
        self.error = error
        self.sent = []
        self.sent_bodies = []
        self.send_kwargs = []

    def send(self, request, **kwargs):
        self.sent.append(request)
        self.send_kwargs.append(kwargs)
        body = request.body
        if hasattr(body, "read"):
            body = b"".join(iter(lambda: body.read(1024), b""))
        self.sent_bodies.append(body)
        if self.error is not None:
            raise self.error

        response = requests.Response()
        response.status_code = self.status_code
        response.reason = "OK" if self.status_code < 400 else "Error"
        response.url = request.url
        response.request = request
        response.encoding = "utf-8"
        if self.body is not None:
            response._content = self.body
        else:
            response._content = json.dumps(self.payload).encode("utf-8")
        return response


def make_api(session, token=None):
    return Api("https://api.test", "1.0", token=token, session=session)


def test_get_builds_url_and_query():
    session = RecordingSession({"success": True, "data": {"users": []}})
    api = make_api(session)
    
    response = api.get("users", {"status": "active", "id-IN": "1,2,3"})
    
    assert response.is_successful() is True
    request = session.sent[0]
    assert request.method == "GET"
    assert request.url == "https://api.test/1.0/users?status=active&id-IN=1%2C2%2C3"


def test_token_header_only_when_set():
    session = RecordingSession()
    api = make_api(session)
    
    api.get("users")
    assert "Token" not in session.sent[0].headers
    
    api.set_token("secret").get("users")
    assert session.sent[1].headers["Token"] == "secret"


def test_base_endpoint_and_version_are_settable():
    session = RecordingSession()
    api = make_api(session).set_base_endpoint("https://other.test").set_version("2.0")
    
    api.get("items")
    
    assert session.sent[0].url == "https://other.test/2.0/items"
    assert api.config.endpoint_root == "https://other.test/2.0"


def test_post_patch_delete_send_json_bodies():
    session = RecordingSession()
    api = make_api(session)
    
    api.post("users", {"name": "Ann"})
    api.patch("users/7", {"email": "ann@example.com"})
    api.delete("users/7", {"reason": "duplicate"})
    
    assert [r.method for r in session.sent] == ["POST", "PATCH", "DELETE"]
    assert json.loads(session.sent_bodies[0]) == {"name": "Ann"}
    assert json.loads(session.sent_bodies[1]) == {"email": "ann@example.com"}
    assert json.loads(session.sent_bodies[2]) == {"reason": "duplicate"}
    assert session.sent[0].headers["Content-Type"] == "application/json"


def test_timeout_comes_from_config():
    session = RecordingSession()
    api = Api("https://api.test", "1.0", timeout_seconds=4.5, session=session)
    
    api.get("users")
    
    assert session.send_kwargs[0]["timeout"] == 4.5


def test_from_config():
    session = RecordingSession()
    api = Api.from_config(ApiConfig(base_endpoint="https://api.test", version="3", token="t"), session=session)
    
    api.get("ping")
    
    assert session.sent[0].url == "https://api.test/3/ping"
    assert session.sent[0].headers["Token"] == "t"


def test_unsuccessful_payload_calls_error_handler():
    session = RecordingSession({"success": False, "error": {"code": "E-DENIED", "text": "No"}})
    seen = []
    api = make_api(session).set_error_handler(seen.append)
    
    response = api.get("users")
    
    assert response.is_successful() is False
    assert response.error.Code == "E-DENIED"
    assert seen == [response]


def test_successful_payload_skips_error_handler():
    seen = []
    api = make_api(RecordingSession()).set_error_handler(seen.append)
    
    api.post("users", {"name": "Ann"})
    
    assert seen == []


@pytest.mark.parametrize(
    "session",
    [
        RecordingSession(status_code=500),
        RecordingSession(status_code=422, payload={"success": False, "field-errors": {"name": "x"}}),
        RecordingSession(error=requests.ConnectionError("refused")),
        RecordingSession(error=requests.Timeout("slow")),
        RecordingSession(body=b"<html>gateway</html>"),
    ],
)
def test_transport_failures_become_server_error(session):
    seen = []
    api = make_api(session).set_error_handler(seen.append)
    
    response = api.get("users")
    
    assert response.is_successful() is False
    assert response.error.Code == "E-SERVER-ERROR"
    assert response.error.Text == "Server error"
    assert seen == [response]


def test_error_handler_fires_for_every_call_type(tmp_path):
    session = RecordingSession(error=requests.ConnectionError("down"))
    seen = []
    api = make_api(session).set_error_handler(seen.append)
    
    api.get("a")
    api.post("a")
    api.patch("a")
    api.delete("a")
    api.upload("a", b"bytes")
    
    assert len(seen) == 5


def test_remove_error_handler():
    seen = []
    api = make_api(RecordingSession(status_code=500)).set_error_handler(seen.append)
    api.remove_error_handler()
    
    api.get("users")
    
    assert api.get_error_handler() is None
    assert seen == []


def test_upload_sends_multipart_with_extra_fields(tmp_path):
    path = tmp_path / "avatar.png"
    path.write_bytes(b"\x89PNG-data")
    session = RecordingSession({"success": True, "data": {"file": {"id": 3}}})
    api = make_api(session, token="secret")
    
    response = api.upload("files", path, {"field": "avatar", "public": True})
    
    assert response.get_data("file") == {"id": 3}
    request = session.sent[0]
    body = session.sent_bodies[0]
    assert request.method == "POST"
    assert request.url == "https://api.test/1.0/files"
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert request.headers["Token"] == "secret"
    assert b'name="file"; filename="avatar.png"' in body
    assert b"\x89PNG-data" in body
    assert b'name="field"' in body and b"avatar" in body
    assert b'name="public"' in body and b"true" in body


def test_upload_reports_progress():
    session = RecordingSession()
    progress = []
    api = make_api(session).set_upload_handler(progress.append)
    
    api.upload("files", b"x" * 5000)
    
    assert progress
    assert all(isinstance(p, UploadProgress) for p in progress)
    assert progress[-1].loaded == progress[-1].total == int(session.sent[0].headers["Content-Length"])
    assert [p.loaded for p in progress] == sorted(p.loaded for p in progress)


def test_upload_uses_environment_proxy_like_other_calls(monkeypatch):
    proxy = "http://proxy.corp:3128"
    for name in ("HTTPS_PROXY", "https_proxy"):
        monkeypatch.setenv(name, proxy)
    for name in ("NO_PROXY", "no_proxy"):
        monkeypatch.delenv(name, raising=False)
    session = RecordingSession()
    api = make_api(session)
    
    api.get("users")
    api.upload("files", b"data")
    
    get_kwargs, upload_kwargs = session.send_kwargs
    assert get_kwargs["proxies"]["https"] == proxy
    assert upload_kwargs["proxies"]["https"] == proxy
    assert upload_kwargs["verify"] == get_kwargs["verify"]
    assert upload_kwargs["timeout"] == 30.0


def test_progress_handler_not_used_for_other_calls():
    progress = []
    api = make_api(RecordingSession()).set_upload_handler(progress.append)
    
    api.post("users", {"name": "x" * 5000})
    
    assert progress == []


def test_upload_handler_set_get_remove():
    api = make_api(RecordingSession())
    handler = lambda progress: None
    
    assert api.get_upload_handler() is None
    assert api.set_upload_handler(handler) is api
    assert api.get_upload_handler() is handler
    assert api.remove_upload_handler() is api
    assert api.get_upload_handler() is None


def test_upload_missing_file_is_server_error(tmp_path):
    seen = []
    api = make_api(RecordingSession()).set_error_handler(seen.append)
    
    response = api.upload("files", tmp_path / "nope.bin")
    
    assert response.error.Code == "E-SERVER-ERROR"
    assert len(seen) == 1


def test_context_manager_closes_session():
    session = RecordingSession()
    closed = []
    session.close = lambda: closed.append(True)
    
    with make_api(session) as api:
        api.get("users")
    
    assert closed == [True]
