"""Тесты Request builder: разрешение URL, сборка body, query, cookies."""

from unittest.mock import MagicMock

import pytest

from http_builder.core.exceptions import (
    EmptyTargetError,
    MalformedURLError,
    UnsupportedBodyType,
)
from http_builder.core.negotiation import FORM_CONTENT_TYPE


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# URL resolution
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestResolveUrl:
    @pytest.mark.parametrize("base,path", [
        ("https://api.example.com", "users"),
        ("https://api.example.com/v1", "users/1"),
        ("http://localhost:8080", "health"),
        ("https://api.example.com", "search?q=x"),
    ])
    def test_relative_path_gets_separator(self, fake_client, base, path):
        client, _ = fake_client(base_url=base)
        assert client.r().resolve_url(path) == base + "/" + path

    def test_leading_separator_kept(self, fake_client):
        client, _ = fake_client()
        assert client.r().resolve_url("/users") == "https://api.example.com/users"

    def test_trailing_separator_trimmed_from_base(self, fake_client):
        client, _ = fake_client(base_url="https://api.example.com///")
        assert client.base_url == "https://api.example.com"
        assert client.r().resolve_url("users") == "https://api.example.com/users"

    def test_empty_path_uses_base(self, fake_client):
        client, _ = fake_client()
        assert client.r().resolve_url("") == "https://api.example.com"

    def test_both_empty(self, fake_client):
        client, _ = fake_client(base_url=None)
        with pytest.raises(EmptyTargetError):
            client.r().resolve_url("")

    def test_url_like_path_is_joined_to_base(self, fake_client):
        client, _ = fake_client()
        assert (
            client.r().resolve_url("https://other.example.org/x")
            == "https://api.example.com/https://other.example.org/x"
        )

    @pytest.mark.parametrize("base,path,expected", [
        ("https://api.example.com", "users", "https://api.example.com/users"),
        ("https://api.example.com", "/users", "https://api.example.com/users"),
        ("https://api.example.com", "a/b?x=1", "https://api.example.com/a/b?x=1"),
        ("https://api.example.com/v1", "users/1", "https://api.example.com/v1/users/1"),
        ("http://127.0.0.1:8080", "http://x/y", "http://127.0.0.1:8080/http://x/y"),
        ("https://api.example.com", "", "https://api.example.com"),
    ])
    def test_join_rule(self, fake_client, base, path, expected):
        client, _ = fake_client(base_url=base)
        resolved = client.r().resolve_url(path)

        assert resolved == expected
        if path and not path.startswith("/"):
            assert resolved == base + "/" + path

    def test_absolute_path_without_base(self, fake_client):
        client, _ = fake_client(base_url=None)
        assert client.r().resolve_url("https://a.example.com/") == "https://a.example.com/"

    @pytest.mark.parametrize("base,path", [
        (None, "users"),
        ("not a url", "users"),
        ("ftp://files.example.com", "a"),
        ("https://api.example.com:99999", "users"),
        ("https://", "users"),
    ])
    def test_malformed(self, fake_client, base, path):
        client, _ = fake_client(base_url=base)
        with pytest.raises(MalformedURLError) as exc_info:
            client.r().resolve_url(path)
        assert exc_info.value.url


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Dispatch assembly
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestAssembly:
    def test_get_with_query(self, fake_client):
        client, transport = fake_client()

        client.r().set_query_param("page", "1").get("users")

        call = transport.calls[0]
        assert call["method"] == "GET"
        assert call["url"] == "https://api.example.com/users?page=1"
        assert call["body"] is None

    def test_client_query_merged_request_wins(self, fake_client):
        client, transport = fake_client()
        client.set_query_params({"lang": "en", "page": 1})

        client.r().set_query_param("page", 2).get("users")

        assert transport.calls[0]["url"] == "https://api.example.com/users?lang=en&page=2"

    def test_json_body(self, fake_client):
        client, transport = fake_client()

        client.r().set_body({"name": "John", "age": 30}).post("users")

        call = transport.calls[0]
        assert call["headers"]["Content-Type"] == "application/json"
        assert call["body"] == b'{"age":30,"name":"John"}'

    def test_query_goes_to_url_even_with_body(self, fake_client):
        client, transport = fake_client()

        client.r().set_query_param("dry_run", True).set_json({"a": 1}).post("items")

        call = transport.calls[0]
        assert call["url"] == "https://api.example.com/items?dry_run=true"
        assert call["body"] == b'{"a":1}'

    def test_explicit_content_type_kept(self, fake_client):
        client, transport = fake_client()

        client.r().set_content_type("application/xml").set_body({"user": {"name": "J"}}).put("u/1")

        call = transport.calls[0]
        assert call["method"] == "PUT"
        assert call["headers"]["Content-Type"] == "application/xml"
        assert call["body"] == b"<user><name>J</name></user>"

    def test_form_data_only(self, fake_client):
        client, transport = fake_client()

        client.r().set_form_data("b", "2").set_form_data("a", "x y").post("login")

        call = transport.calls[0]
        assert call["headers"]["Content-Type"] == FORM_CONTENT_TYPE
        assert call["body"] == b"a=x+y&b=2"

    def test_client_form_data_seeds_content_type(self, fake_client):
        client, _ = fake_client()
        client.set_form_data("token", "abc")

        request = client.r()

        assert request.get_content_type() == FORM_CONTENT_TYPE
        assert request.get_form_data_encode() == "token=abc"

    def test_client_content_type_not_overridden_by_form_data(self, fake_client):
        client, _ = fake_client()
        client.set_content_type("application/json").set_form_data("a", "1")

        assert client.r().get_content_type() == "application/json"

    def test_form_body_merged_with_form_data(self, fake_client):
        client, transport = fake_client()

        client.r().set_form_data("a", "1").set_form_data("c", "3") \
            .set_form({"b": "2", "a": "override"}).post("form")

        assert transport.calls[0]["body"] == b"a=override&b=2&c=3"

    def test_non_form_body_wins_over_form_data(self, fake_client):
        logger = MagicMock()
        client, transport = fake_client(logger=logger)

        client.r().set_form_data("a", "1").set_json({"x": 1}).post("items")

        call = transport.calls[0]
        assert call["body"] == b'{"x":1}'
        logger.warning.assert_called()
        assert logger.warning.call_args.kwargs["operation"] == "prepare"

    def test_request_headers_do_not_leak_into_client(self, fake_client):
        client, transport = fake_client()
        client.set_header("X-App", "demo")

        client.r().set_header("X-App", "override").set_header("X-Trace", 1).get("a")
        client.r().get("b")

        first, second = transport.calls
        assert first["headers"]["X-App"] == "override"
        assert first["headers"]["X-Trace"] == "1"
        assert second["headers"]["X-App"] == "demo"
        assert "X-Trace" not in second["headers"]

    def test_user_agent_default(self, fake_client):
        client, transport = fake_client()
        client.r().get("a")
        assert transport.calls[0]["headers"]["User-Agent"]

    @pytest.mark.parametrize("verb,method", [
        ("get", "GET"), ("post", "POST"), ("put", "PUT"), ("delete", "DELETE"),
        ("patch", "PATCH"), ("head", "HEAD"), ("options", "OPTIONS"),
    ])
    def test_verbs(self, fake_client, verb, method):
        client, transport = fake_client()
        getattr(client.r(), verb)("items")
        assert transport.calls[0]["method"] == method

    def test_execute_generic_method(self, fake_client):
        client, transport = fake_client()
        client.r().execute("get", "items")
        assert transport.calls[0]["method"] == "GET"


class TestAuth:
    def test_bearer_token(self, fake_client):
        client, transport = fake_client()
        client.r().set_auth_token("tok").get("me")
        assert transport.calls[0]["headers"]["Authorization"] == "Bearer tok"

    def test_custom_scheme_and_header(self, fake_client):
        client, transport = fake_client()
        client.set_auth_scheme("Token").set_authorization_key("X-Auth")
        client.set_auth_token("abc")

        client.r().get("me")

        assert transport.calls[0]["headers"]["X-Auth"] == "Token abc"

    def test_basic_auth(self, fake_client):
        client, transport = fake_client()
        client.r().set_basic_auth("user", "pass").get("me")
        assert transport.calls[0]["headers"]["Authorization"] == "Basic dXNlcjpwYXNz"


class TestCookies:
    def test_request_cookie_bound_to_resolved_url(self, fake_client):
        client, _ = fake_client()

        client.r().set_cookie("sid", "abc").get("users/1")

        cookies = list(client.cookie_store)
        assert len(cookies) == 1
        assert cookies[0].name == "sid"
        assert cookies[0].value == "abc"
        assert cookies[0].domain == "api.example.com"
        assert cookies[0].path == "/users"

    def test_client_cookies_copied_into_requests(self, fake_client):
        client, _ = fake_client()
        client.add_cookie("lang", "ru")

        request = client.r()

        assert request.get_cookies() == [("lang", "ru")]

    def test_explicit_cookie_header_extended(self, fake_client):
        client, transport = fake_client()
        client.set_cookie("a=b")

        client.r().set_cookies({"sid": "abc"}).get("x")

        assert transport.calls[0]["headers"]["Cookie"] == "a=b; sid=abc"


class TestAssemblyErrors:
    def test_error_aborts_before_transport(self, fake_client):
        logger = MagicMock()
        client, transport = fake_client(base_url=None, logger=logger)

        with pytest.raises(EmptyTargetError):
            client.r().get("")

        assert transport.calls == []
        assert logger.error.call_args.kwargs["operation"] == "prepare"

    def test_unsupported_body(self, fake_client):
        client, transport = fake_client()

        with pytest.raises(UnsupportedBodyType):
            client.r().set_body(42).post("x")

        assert transport.calls == []


class TestAccessors:
    def test_query_string_parsing(self, fake_client):
        client, _ = fake_client()
        request = client.r().set_query_string("b=2&a=1")
        assert request.get_query_params_encode() == "a=1&b=2"

    def test_invalid_query_string_ignored(self, fake_client):
        logger = MagicMock()
        client, _ = fake_client(logger=logger)

        request = client.r().set_query_param("a", "1").set_query_string("broken")

        assert request.get_query_params_encode() == "a=1"
        assert logger.warning.call_args.kwargs["operation"] == "set_query_string"

    def test_after_dispatch(self, fake_client):
        client, _ = fake_client()
        request = client.r().set_body("hello")

        request.post("v1/echo")

        assert request.method == "POST"
        assert request.url == "https://api.example.com/v1/echo"
        assert request.host == "api.example.com"
        assert request.path == "/v1/echo"
        assert request.body_bytes == b"hello"

    def test_get_request_headers_is_copy(self, fake_client):
        client, _ = fake_client()
        request = client.r()
        request.get_request_headers()["X-New"] = "1"
        assert "X-New" not in request.get_request_headers()


class TestDebugRecord:
    def test_query_string_reported_as_body(self, fake_client):
        client, _ = fake_client()
        prepared = client.r().set_query_param("page", 1).prepare("GET", "users")

        record = prepared.debug_record()

        assert record["method"] == "GET"
        assert record["host"] == "api.example.com"
        assert record["path"] == "/users"
        assert record["body"] == "page=1"

    def test_form_body(self, fake_client):
        client, _ = fake_client()
        prepared = client.r().set_form_data("a", "1").prepare("POST", "login")
        assert prepared.debug_record()["body"] == "a=1"
        assert prepared.form_body == "a=1"

    def test_no_body(self, fake_client):
        client, _ = fake_client()
        prepared = client.r().prepare("GET", "users")
        assert prepared.debug_record()["body"] == "this request has no body"
