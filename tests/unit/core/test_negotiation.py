"""Тесты content negotiation."""

import io
import json
from dataclasses import dataclass
from typing import NamedTuple
from unittest.mock import MagicMock

import pytest

from http_builder.core.exceptions import BodyEncodingError, UnsupportedBodyType
from http_builder.core.negotiation import (
    FORM_CONTENT_TYPE,
    JSON_CONTENT_TYPE,
    PLAIN_TEXT_TYPE,
    Body,
    ContentNegotiator,
    FormBody,
    JsonBody,
    RawBody,
    StreamBody,
    TextBody,
    XmlBody,
    detect_content_type,
    is_form_type,
    is_json_type,
    is_xml_type,
)
from http_builder.utils.marshal import json_marshal, json_unmarshal, xml_marshal


@dataclass
class User:
    name: str
    age: int


class Point(NamedTuple):
    x: int
    y: int


@pytest.fixture
def negotiator():
    return ContentNegotiator(json_marshal, json_unmarshal, xml_marshal)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Content type checks
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@pytest.mark.parametrize("content_type", [
    "application/json",
    "application/json; charset=utf-8",
    "application/problem+json",
    "TEXT/JSON",
])
def test_is_json_type(content_type):
    assert is_json_type(content_type)


@pytest.mark.parametrize("content_type", [None, "", "text/html", "application/xml"])
def test_is_not_json_type(content_type):
    assert not is_json_type(content_type)


def test_is_xml_type():
    assert is_xml_type("application/xml")
    assert is_xml_type("text/xml; charset=utf-8")
    assert is_xml_type("application/atom+xml")
    assert not is_xml_type("application/json")


def test_is_form_type_ignores_parameters():
    assert is_form_type("application/x-www-form-urlencoded; charset=utf-8")
    assert not is_form_type("multipart/form-data")
    assert not is_form_type(None)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# detect_content_type
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@pytest.mark.parametrize("data,expected", [
    (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
    (b"%PDF-1.7 ...", "application/pdf"),
    (b"GIF89a....", "image/gif"),
    (b"PK\x03\x04rest", "application/zip"),
    (b"  <html><body>hi</body></html>", "text/html; charset=utf-8"),
    (b"<?xml version='1.0'?><a/>", "text/xml; charset=utf-8"),
    (b"plain words", PLAIN_TEXT_TYPE),
    (b"\x00\x01\x02\x03binary", "application/octet-stream"),
    (b"", PLAIN_TEXT_TYPE),
])
def test_detect_bytes(data, expected):
    assert detect_content_type(data) == expected


def test_detect_structured_values():
    assert detect_content_type("hello") == PLAIN_TEXT_TYPE
    assert detect_content_type({"a": 1}) == JSON_CONTENT_TYPE
    assert detect_content_type([1, 2]) == JSON_CONTENT_TYPE
    assert detect_content_type(User("a", 1)) == JSON_CONTENT_TYPE


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Body.infer
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestBodyInfer:
    def test_variants(self):
        assert Body.infer(b"x") == RawBody(b"x")
        assert Body.infer(bytearray(b"x")) == RawBody(b"x")
        assert Body.infer("x") == TextBody("x")
        assert isinstance(Body.infer({"a": 1}), JsonBody)
        assert isinstance(Body.infer(User("a", 1)), JsonBody)
        assert isinstance(Body.infer(io.BytesIO(b"x")), StreamBody)

    def test_explicit_variant_kept(self):
        body = FormBody({"a": "1"})
        assert Body.infer(body) is body

    def test_shapes(self):
        assert JsonBody({"a": 1}).shape == "mapping"
        assert JsonBody([1, 2]).shape == "sequence"
        assert JsonBody(User("a", 1)).shape == "record"
        assert JsonBody(Point(1, 2)).shape == "record"

    @pytest.mark.parametrize("value", [42, 3.14, None, {1, 2}])
    def test_unsupported(self, value):
        with pytest.raises(UnsupportedBodyType):
            Body.infer(value)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# negotiate
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TestNegotiateJson:
    def test_mapping_without_content_type(self, negotiator):
        encoded = negotiator.negotiate({"name": "John", "age": 30})

        assert encoded.content_type == "application/json"
        assert encoded.content == b'{"age":30,"name":"John"}'
        assert not encoded.is_form

    def test_record_round_trips(self, negotiator):
        encoded = negotiator.negotiate(User("John", 30))

        assert encoded.content_type == JSON_CONTENT_TYPE
        assert json_unmarshal(encoded.content) == {"name": "John", "age": 30}

    def test_namedtuple_is_record(self, negotiator):
        encoded = negotiator.negotiate(Point(1, 2))
        assert json.loads(encoded.content) == {"x": 1, "y": 2}

    def test_sequence_is_json(self, negotiator):
        encoded = negotiator.negotiate([1, "two"])
        assert encoded.content == b'[1,"two"]'
        assert encoded.content_type == JSON_CONTENT_TYPE

    def test_explicit_json_type_kept(self, negotiator):
        encoded = negotiator.negotiate({"a": 1}, "application/vnd.api+json")
        assert encoded.content_type == "application/vnd.api+json"
        assert encoded.content == b'{"a":1}'


class TestNegotiateForm:
    def test_json_text_flattened(self, negotiator):
        encoded = negotiator.negotiate('{"b": "x y", "a": "1"}', FORM_CONTENT_TYPE)

        assert encoded.content == b"a=1&b=x+y"
        assert encoded.form_fields == {"a": "1", "b": "x y"}
        assert encoded.content_type == FORM_CONTENT_TYPE

    def test_non_json_text_sent_verbatim(self, negotiator):
        encoded = negotiator.negotiate("a=1&b=2", FORM_CONTENT_TYPE)

        assert encoded.content == b"a=1&b=2"
        assert encoded.content_type == FORM_CONTENT_TYPE
        assert not encoded.is_form

    def test_mapping_values_stringified(self, negotiator):
        encoded = negotiator.negotiate(
            {"n": 1, "flag": True, "s": "str", "none": None},
            FORM_CONTENT_TYPE,
        )

        assert encoded.form_fields == {"n": "1", "flag": "true", "s": "str", "none": ""}
        assert encoded.content == b"flag=true&n=1&none=&s=str"

    def test_record_as_form(self, negotiator):
        encoded = negotiator.negotiate(User("John Doe", 30), FORM_CONTENT_TYPE)
        assert encoded.content == b"age=30&name=John+Doe"

    def test_form_body_without_content_type(self, negotiator):
        encoded = negotiator.negotiate(FormBody({"a": "1"}))
        assert encoded.content_type == FORM_CONTENT_TYPE
        assert encoded.content == b"a=1"

    def test_sequence_cannot_be_form(self, negotiator):
        with pytest.raises(UnsupportedBodyType) as exc_info:
            negotiator.negotiate([1, 2], FORM_CONTENT_TYPE)
        assert exc_info.value.content_type == FORM_CONTENT_TYPE


class TestNegotiateXml:
    def test_mapping_as_xml(self, negotiator):
        encoded = negotiator.negotiate({"user": {"name": "John"}}, "application/xml")
        assert encoded.content == b"<user><name>John</name></user>"
        assert encoded.content_type == "application/xml"

    def test_xml_body_variant(self, negotiator):
        encoded = negotiator.negotiate(XmlBody(User("John", 30)))
        assert encoded.content == b"<User><name>John</name><age>30</age></User>"
        assert encoded.content_type == "application/xml"


class TestNegotiateVerbatim:
    def test_bytes_sniffed(self, negotiator):
        encoded = negotiator.negotiate(b"\x89PNG\r\n\x1a\n\x00")
        assert encoded.content_type == "image/png"
        assert encoded.content == b"\x89PNG\r\n\x1a\n\x00"

    def test_bytes_with_explicit_type(self, negotiator):
        encoded = negotiator.negotiate(b"{}", "application/json")
        assert encoded.content == b"{}"
        assert encoded.content_type == "application/json"

    def test_text(self, negotiator):
        encoded = negotiator.negotiate("привет")
        assert encoded.content == "привет".encode("utf-8")
        assert encoded.content_type == PLAIN_TEXT_TYPE

    def test_stream_read_fully(self, negotiator):
        encoded = negotiator.negotiate(io.BytesIO(b"file contents"))
        assert encoded.content == b"file contents"
        assert encoded.content_type == PLAIN_TEXT_TYPE


class TestNegotiateErrors:
    def test_unsupported_logged(self):
        logger = MagicMock()
        negotiator = ContentNegotiator(json_marshal, json_unmarshal, xml_marshal, logger=logger)

        with pytest.raises(UnsupportedBodyType):
            negotiator.negotiate(42, "application/json")

        logger.error.assert_called_once()
        assert logger.error.call_args.kwargs["operation"] == "negotiate"

    def test_marshal_failure_wrapped(self):
        def broken(value):
            raise RuntimeError("boom")

        logger = MagicMock()
        negotiator = ContentNegotiator(broken, json_unmarshal, xml_marshal, logger=logger)

        with pytest.raises(BodyEncodingError) as exc_info:
            negotiator.negotiate({"a": 1})

        assert isinstance(exc_info.value.cause, RuntimeError)
        assert exc_info.value.fatal is True
        assert logger.error.call_args.kwargs["operation"] == "json_marshal"

    def test_unserializable_value(self, negotiator):
        with pytest.raises(BodyEncodingError):
            negotiator.negotiate({"obj": object()})
