"""
Unit tests for the Request value.

Tests construction, the request target, method and Uri replacement,
query parameters, attributes and body parsing.
"""

import dataclasses

import pytest

from http_message.exceptions import InvalidArgumentError, ParserError
from http_message.request import Request
from http_message.streams import create_stream
from http_message.uri import Uri


def make_request(content_type=None, body=b"", uri="http://example.com/submit") -> Request:
    headers = {"Content-Type": content_type} if content_type else None
    return Request.create("POST", uri, headers=headers, body=create_stream(body))


class TestRequestCreation:
    """Test Request.create functionality."""

    def test_create_basic(self) -> None:
        """Test creating a basic request."""
        request = Request.create("get", "http://example.com/path?x=1")
        assert request.method == "GET"
        assert isinstance(request.uri, Uri)
        assert request.uri.host == "example.com"
        assert request.protocol_version == "1.1"
        assert request.get_headers() == {"Host": ["example.com"]}
        assert request.body.get_contents() == b""

    def test_create_with_uri_instance(self) -> None:
        """Test creating a request from a Uri."""
        uri = Uri.parse("https://example.com/")
        assert Request.create("GET", uri).uri is uri

    def test_invalid_uri(self) -> None:
        """Test that the uri must be a string or a Uri."""
        with pytest.raises(InvalidArgumentError):
            Request.create("GET", 123)

    def test_host_header_overrides_from_uri(self) -> None:
        """Test that the Uri host replaces a Host header."""
        request = Request.create("GET", "http://example.com/", headers={"host": "other.com"})
        assert request.get_header("Host") == ["example.com"]

    def test_host_header_kept_without_uri_host(self) -> None:
        """Test that a Host header survives a Uri without a host."""
        request = Request.create("GET", "/path", headers={"Host": "other.com"})
        assert request.get_header_line("host") == "other.com"

    def test_host_header_without_any_host(self) -> None:
        """Test that Host is always present, even if empty."""
        request = Request.create("GET", "/path")
        assert request.has_header("Host")
        assert request.get_header_line("Host") == ""

    def test_protocol_from_server_params(self) -> None:
        """Test taking the protocol version from SERVER_PROTOCOL."""
        request = Request.create("GET", "/", server_params={"SERVER_PROTOCOL": "HTTP/1.0"})
        assert request.protocol_version == "1.0"

    def test_params_are_read_only_copies(self) -> None:
        """Test that mappings are copied and cannot be mutated."""
        server_params = {"SERVER_NAME": "example.com"}
        request = Request.create("GET", "/", server_params=server_params)
        server_params["SERVER_NAME"] = "changed"
        assert request.server_params["SERVER_NAME"] == "example.com"
        with pytest.raises(TypeError):
            request.server_params["SERVER_NAME"] = "changed"

    def test_immutability(self) -> None:
        """Test that Request fields cannot be assigned."""
        request = Request.create("GET", "/")
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.method = "POST"

    def test_non_string_method(self) -> None:
        """Test that a non-string method becomes empty."""
        assert Request(method=None, uri="/").method == ""


class TestRequestTarget:
    """Test request target handling."""

    @pytest.mark.parametrize("uri,target", [
        ("http://example.com", "/"),
        ("http://example.com/path", "/path"),
        ("http://example.com/path?x=1&y=2", "/path?x=1&y=2"),
        ("http://example.com?x=1", "/?x=1"),
    ])
    def test_default_target(self, uri: str, target: str) -> None:
        """Test the target computed from the Uri."""
        assert Request.create("GET", uri).get_request_target() == target

    def test_with_request_target(self) -> None:
        """Test setting an explicit target."""
        original = Request.create("OPTIONS", "http://example.com/")
        request = original.with_request_target("*")
        assert request.get_request_target() == "*"
        assert original.get_request_target() == "/"

    def test_with_empty_request_target(self) -> None:
        """Test that an explicit empty target is kept."""
        request = Request.create("GET", "http://example.com/path").with_request_target("")
        assert request.get_request_target() == ""

    @pytest.mark.parametrize("target", ["/with space", "/tab\there", 42])
    def test_invalid_request_target(self, target) -> None:
        """Test that whitespace and non-strings are rejected."""
        with pytest.raises(InvalidArgumentError):
            Request.create("GET", "/").with_request_target(target)

    def test_target_follows_new_uri(self) -> None:
        """Test that the cached target is not carried to a new Uri."""
        request = Request.create("GET", "http://example.com/a")
        assert request.get_request_target() == "/a"
        assert request.with_uri("http://example.com/b").get_request_target() == "/b"


class TestRequestMethodAndUri:
    """Test replacing the method and Uri."""

    def test_with_method(self) -> None:
        """Test changing the method."""
        original = Request.create("GET", "/")
        request = original.with_method("patch")
        assert request.method == "PATCH"
        assert original.method == "GET"

    def test_with_method_invalid(self) -> None:
        """Test that the method must be a string."""
        with pytest.raises(InvalidArgumentError):
            Request.create("GET", "/").with_method(None)

    def test_with_uri_updates_host(self) -> None:
        """Test that the Host header follows the new Uri."""
        request = Request.create("GET", "http://a.com/").with_uri("http://b.com/x")
        assert request.uri.host == "b.com"
        assert request.get_header_line("Host") == "b.com"

    def test_with_uri_preserve_host(self) -> None:
        """Test keeping an existing Host header."""
        request = Request.create("GET", "http://a.com/").with_uri("http://b.com/", preserve_host=True)
        assert request.get_header_line("Host") == "a.com"

    def test_with_uri_preserve_host_when_empty(self) -> None:
        """Test that an empty Host header is filled even when preserving."""
        request = Request.create("GET", "/").with_uri("http://b.com/", preserve_host=True)
        assert request.get_header_line("Host") == "b.com"

    def test_with_uri_without_host(self) -> None:
        """Test that a Uri without a host leaves Host alone."""
        request = Request.create("GET", "http://a.com/").with_uri("/other")
        assert request.get_header_line("Host") == "a.com"


class TestRequestParams:
    """Test cookie and query parameters and attributes."""

    def test_cookie_params(self) -> None:
        """Test replacing cookie parameters."""
        original = Request.create("GET", "/", cookie_params={"a": "1"})
        request = original.with_cookie_params({"session": "abc"})
        assert dict(request.cookie_params) == {"session": "abc"}
        assert dict(original.cookie_params) == {"a": "1"}

    def test_cookie_params_must_be_mapping(self) -> None:
        """Test that cookies must be a mapping."""
        with pytest.raises(InvalidArgumentError):
            Request.create("GET", "/").with_cookie_params("session=abc")

    def test_uploaded_files(self) -> None:
        """Test replacing the uploaded file table."""
        original = Request.create("POST", "/", uploaded_files={"a": "first"})
        request = original.with_uploaded_files({"avatar": {"name": "me.png"}})
        assert request.get_uploaded_files() == {"avatar": {"name": "me.png"}}
        assert original.get_uploaded_files() == {"a": "first"}
        assert Request.create("GET", "/").get_uploaded_files() == {}

    def test_uploaded_files_are_read_only(self) -> None:
        """Test that the uploaded file table cannot be mutated in place."""
        files = {"a": "first"}
        request = Request.create("POST", "/").with_uploaded_files(files)
        files["b"] = "second"
        assert request.get_uploaded_files() == {"a": "first"}
        with pytest.raises(TypeError):
            request.uploaded_files["b"] = "second"

    def test_uploaded_files_must_be_mapping(self) -> None:
        """Test that the uploaded file table must be a mapping."""
        with pytest.raises(InvalidArgumentError):
            Request.create("POST", "/").with_uploaded_files(["file"])

    def test_query_params_from_uri(self) -> None:
        """Test decoding query parameters from the Uri."""
        request = Request.create("GET", "/search?q=python&tags[]=a&tags[]=b&empty=")
        assert request.get_query_params() == {"q": "python", "tags": ["a", "b"], "empty": ""}

    def test_query_params_are_copies(self) -> None:
        """Test that returned query parameters can be mutated safely."""
        request = Request.create("GET", "/?a=1")
        request.get_query_params()["a"] = "changed"
        assert request.get_query_params() == {"a": "1"}

    def test_with_query_params(self) -> None:
        """Test explicit query parameters."""
        original = Request.create("GET", "/?a=1")
        request = original.with_query_params({"b": "2"})
        assert request.get_query_params() == {"b": "2"}
        assert original.get_query_params() == {"a": "1"}

    def test_with_query_params_invalid(self) -> None:
        """Test that query parameters must be a mapping."""
        with pytest.raises(InvalidArgumentError):
            Request.create("GET", "/").with_query_params([("a", "1")])

    def test_attributes(self) -> None:
        """Test setting, reading and removing attributes."""
        user = object()
        original = Request.create("GET", "/")
        request = original.with_attribute("user", user)
        assert request.get_attribute("user") is user
        assert original.get_attribute("user") is None
        assert original.get_attribute("user", "anonymous") == "anonymous"
        assert request.without_attribute("user").get_attribute("user") is None
        assert request.without_attribute("missing").get_attribute("user") is user


class TestRequestBodyParsing:
    """Test parsed body resolution."""

    def test_media_type(self) -> None:
        """Test extracting the media type."""
        request = make_request("Application/JSON; charset=UTF-8")
        assert request.get_content_type() == "Application/JSON; charset=UTF-8"
        assert request.get_media_type() == "application/json"

    def test_no_content_type(self) -> None:
        """Test a request without a Content-Type."""
        request = make_request(body=b"a=1")
        assert request.get_content_type() is None
        assert request.get_media_type() is None
        assert request.get_parsed_body() is None

    def test_form_body(self) -> None:
        """Test parsing a form-urlencoded body."""
        request = make_request("application/x-www-form-urlencoded; charset=utf-8", b"a=1&b=2")
        assert request.get_parsed_body() == {"a": "1", "b": "2"}

    def test_json_body(self) -> None:
        """Test parsing a JSON body."""
        request = make_request("application/json", b'{"name": "widget", "tags": ["a"]}')
        assert request.get_parsed_body() == {"name": "widget", "tags": ["a"]}

    def test_json_suffix(self) -> None:
        """Test that +json media types use the JSON parser."""
        request = make_request("application/vnd.api+json", b'{"data": {"id": "1"}}')
        assert request.get_parsed_body() == {"data": {"id": "1"}}

    def test_invalid_json(self) -> None:
        """Test that invalid JSON parses to None."""
        assert make_request("application/json", b"{not json").get_parsed_body() is None

    def test_xml_body(self) -> None:
        """Test parsing an XML body."""
        request = make_request("text/xml", b"<root><item>1</item></root>")
        parsed = request.get_parsed_body()
        assert parsed.tag == "root"
        assert parsed.find("item").text == "1"

    def test_xml_suffix(self) -> None:
        """Test that +xml media types use the XML parser."""
        request = make_request("application/atom+xml", b"<feed/>")
        assert request.get_parsed_body().tag == "feed"

    def test_unknown_media_type(self) -> None:
        """Test that unregistered media types parse to None."""
        assert make_request("text/plain", b"hello").get_parsed_body() is None

    def test_custom_parser(self) -> None:
        """Test registering a parser."""
        original = make_request("text/csv", b"a,b")
        request = original.register_media_type_parser(
            "text/csv", lambda text: {"columns": text.split(",")}
        )
        assert request.get_parsed_body() == {"columns": ["a", "b"]}
        assert original.get_parsed_body() is None

    def test_suffix_always_collapses(self) -> None:
        """Test that +json types use the application/json parser even when
        a parser is registered under the full media type."""
        request = make_request("application/vnd.api+json", b'{"a": 1}').register_media_type_parser(
            "application/vnd.api+json", lambda text: {"custom": True}
        )
        assert request.get_parsed_body() == {"a": 1}

    def test_suffix_uses_replaced_base_parser(self) -> None:
        """Test that a parser registered for the base type handles suffixed types."""
        request = make_request("application/vnd.api+json", b"{}").register_media_type_parser(
            "application/json", lambda text: {"custom": True}
        )
        assert request.get_parsed_body() == {"custom": True}

    def test_parser_must_be_callable(self) -> None:
        """Test that parsers must be callable."""
        with pytest.raises(InvalidArgumentError):
            make_request().register_media_type_parser("text/csv", "not callable")

    @pytest.mark.parametrize("result", ["text", 42, ["a"], ("a",)])
    def test_invalid_parser_result(self, result) -> None:
        """Test that parsers returning scalars or sequences raise ParserError."""
        request = make_request("text/csv", b"x").register_media_type_parser(
            "text/csv", lambda text: result
        )
        with pytest.raises(ParserError):
            request.get_parsed_body()

    def test_parsed_body_is_cached(self) -> None:
        """Test that the parser runs once per request."""
        calls = []

        def parser(text):
            calls.append(text)
            return {"text": text}

        request = make_request("text/csv", b"x").register_media_type_parser("text/csv", parser)
        assert request.get_parsed_body() is request.get_parsed_body()
        assert calls == ["x"]

    def test_new_body_is_parsed_again(self) -> None:
        """Test that the cache does not survive a body change."""
        request = make_request("application/json", b'{"a": 1}')
        assert request.get_parsed_body() == {"a": 1}
        updated = request.with_body(create_stream(b'{"a": 2}'))
        assert updated.get_parsed_body() == {"a": 2}

    def test_with_parsed_body(self) -> None:
        """Test setting the parsed body explicitly."""
        original = make_request("application/json", b'{"a": 1}')
        request = original.with_parsed_body({"b": 2})
        assert request.get_parsed_body() == {"b": 2}
        assert original.get_parsed_body() == {"a": 1}

    def test_with_parsed_body_none(self) -> None:
        """Test that None is an allowed parsed body."""
        request = make_request("application/json", b'{"a": 1}').with_parsed_body(None)
        assert request.get_parsed_body() is None

    def test_with_parsed_body_object(self) -> None:
        """Test that arbitrary objects are allowed."""
        value = object()
        assert make_request().with_parsed_body(value).get_parsed_body() is value

    @pytest.mark.parametrize("value", ["text", 1, 1.5, True, ["a"], ("a",)])
    def test_with_parsed_body_invalid(self, value) -> None:
        """Test that scalars and sequences are rejected."""
        with pytest.raises(InvalidArgumentError):
            make_request().with_parsed_body(value)
