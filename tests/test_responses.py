import pytest

from waypost.responses import (
    Response,
    coerce_response,
    default_error_response,
    from_exception,
    method_not_allowed,
    paginated,
    server_error,
    status_for_exception,
    success,
    validation_error,
)


def test_coerce_response_by_return_type() -> None:
    existing = Response(status=201, body="made")

    assert coerce_response(existing) is existing
    assert coerce_response(None).body == ""
    assert coerce_response({"a": 1}).json_body() == {"a": 1}
    assert coerce_response([1, 2]).media_type.startswith("application/json")
    assert coerce_response("hi").media_type.startswith("text/plain")
    assert coerce_response(None, status=404).status == 404
    with pytest.raises(TypeError):
        coerce_response(3.5)


def test_json_keeps_unicode_unescaped() -> None:
    assert coerce_response({"name": "Zoë"}).body == '{"name": "Zoë"}'


def test_default_error_response() -> None:
    assert default_error_response(404).json_body() == {"code": 404, "message": "404 Not Found"}
    assert default_error_response(503).json_body() == {"code": 503, "message": "HTTP 503"}


def test_envelope_helpers() -> None:
    assert success({"id": 1}).json_body() == {"success": True, "message": "OK", "data": {"id": 1}}
    assert success().json_body() == {"success": True, "message": "OK"}

    page = paginated([1, 2], {"page": 1, "total": 2}).json_body()
    assert page["pagination"] == {"page": 1, "total": 2}
    assert page["data"] == [1, 2]

    invalid = validation_error(errors={"email": "required"})
    assert invalid.status == 422
    assert invalid.json_body()["data"] == {"email": "required"}


def test_method_not_allowed_sets_allow_header() -> None:
    response = method_not_allowed("GET, POST")

    assert response.status == 405
    assert response.headers == {"Allow": "GET, POST"}
    assert response.json_body()["message"] == "Method not allowed. Allowed methods: GET, POST"
    assert method_not_allowed().headers == {}


def test_server_error_hides_data_unless_debug() -> None:
    assert "data" not in server_error("db down", {"host": "db1"}).json_body()
    assert server_error("db down", {"host": "db1"}, debug=True).json_body()["data"] == {"host": "db1"}


def test_status_for_exception() -> None:
    assert status_for_exception(ValueError("x")) == 400
    assert status_for_exception(PermissionError("x")) == 401
    assert status_for_exception(KeyError("x")) == 404
    assert status_for_exception(RuntimeError("x")) == 500


def test_from_exception_includes_location_only_in_debug() -> None:
    try:
        raise LookupError("no such user")
    except LookupError as exc:
        quiet = from_exception(exc)
        loud = from_exception(exc, debug=True)

    assert quiet.status == 404
    assert quiet.json_body() == {"success": False, "message": "no such user"}
    data = loud.json_body()["data"]
    assert data["file"].endswith("test_responses.py")
    assert data["line"] > 0
    assert "LookupError: no such user" in data["trace"]


def test_default_headers_do_not_override_response_headers() -> None:
    response = Response(headers={"X-A": "mine"}).with_default_headers({"X-A": "default", "X-B": "b"})

    assert response.headers == {"X-A": "mine", "X-B": "b"}
