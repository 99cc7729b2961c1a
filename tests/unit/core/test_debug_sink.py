"""Tests for debug sinks."""

import io
import json

from http_builder.core.debug import NO_BODY, LoggerDebugSink, NullDebugSink
from http_builder.core.logging import HTTPBuilderLogger, LoggingConfig


def make_sink():
    stream = io.StringIO()
    logger = HTTPBuilderLogger(
        LoggingConfig.create(level="DEBUG", format="json"),
        name="http_builder.debug.test",
        stream=stream,
    )
    return LoggerDebugSink(logger, owns_logger=True), stream


def records(stream):
    return [json.loads(line) for line in stream.getvalue().strip().splitlines()]


def test_null_sink_is_falsy():
    sink = NullDebugSink()
    assert not sink
    sink.on_request({})
    sink.on_response({})
    sink.close()


def test_request_record():
    sink, stream = make_sink()

    sink.on_request({
        "method": "POST",
        "host": "api.example.com",
        "path": "/users",
        "url": "https://api.example.com/users",
        "headers": {"Content-Type": "application/json", "Authorization": "Bearer t"},
        "cookies": ["sid=1"],
        "body": '{"name":"John"}',
    })
    sink.close()

    [record] = records(stream)
    assert record["message"] == "HTTP request"
    assert record["http_method"] == "POST"
    assert record["host"] == "api.example.com"
    assert record["url_path"] == "/users"
    assert record["headers"]["Authorization"] == "***REDACTED***"
    assert record["cookies"] == "***REDACTED***"
    assert record["body"] == '{\n  "name": "John"\n}'


def test_response_record_keeps_non_json_body():
    sink, stream = make_sink()

    sink.on_response({
        "status_code": 404,
        "status": "404 Not Found",
        "headers": {},
        "cookies": {},
        "body": "{not json",
    })
    sink.close()

    [record] = records(stream)
    assert record["status_code"] == 404
    assert record["status"] == "404 Not Found"
    assert record["body"] == "{not json"


def test_no_body_placeholder_passes_through():
    sink, stream = make_sink()
    sink.on_request({"method": "GET", "body": NO_BODY})
    sink.close()
    assert records(stream)[0]["body"] == NO_BODY


def test_to_file(tmp_path):
    target = tmp_path / "debug"
    sink = LoggerDebugSink.to_file(str(target))

    sink.on_request({"method": "GET", "url": "https://api.example.com/", "body": NO_BODY})
    sink.close()

    content = (tmp_path / "debug.txt").read_text(encoding="utf-8")
    assert "HTTP request" in content
    assert "http_method=GET" in content


def test_borrowed_logger_not_closed():
    stream = io.StringIO()
    logger = HTTPBuilderLogger(
        LoggingConfig.create(level="DEBUG"), name="http_builder.debug.borrowed", stream=stream
    )
    sink = LoggerDebugSink(logger)

    sink.close()

    assert logger.logger.handlers
    logger.close()
