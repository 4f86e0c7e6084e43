"""Tests for incremental SSE line decoding."""

import pytest

from chatrelay.ai.sse import SSELineBuffer, parse_data_line
from chatrelay.errors import ProtocolDecodeError


def test_feed_holds_back_partial_line():
    buffer = SSELineBuffer()

    assert buffer.feed('data: {"a"') == []
    assert buffer.pending == 'data: {"a"'
    assert buffer.feed(': 1}\n\ndata: {"b": 2}\n') == ['data: {"a": 1}', "", 'data: {"b": 2}']
    assert buffer.pending == ""


def test_feed_strips_carriage_returns():
    buffer = SSELineBuffer()

    assert buffer.feed("data: 1\r\ndata: 2\r\n") == ["data: 1", "data: 2"]


def test_feed_ignores_empty_chunks():
    buffer = SSELineBuffer()
    buffer.feed("partial")

    assert buffer.feed("") == []
    assert buffer.pending == "partial"


def test_flush_returns_unterminated_last_line():
    buffer = SSELineBuffer()
    buffer.feed('data: {"done": true}')

    assert buffer.flush() == ['data: {"done": true}']
    assert buffer.pending == ""


def test_flush_drops_whitespace_only_remainder():
    buffer = SSELineBuffer()
    buffer.feed("data: 1\n  ")

    assert buffer.flush() == []


def test_parse_data_line_decodes_json():
    assert parse_data_line('data: {"x": [1, 2]}', "google") == {"x": [1, 2]}


@pytest.mark.parametrize("line", ["", ": keep-alive", "event: message", "data:{}"])
def test_parse_data_line_ignores_non_data_lines(line):
    assert parse_data_line(line, "google") is None


def test_parse_data_line_raises_decode_error_for_bad_json():
    with pytest.raises(ProtocolDecodeError) as exc_info:
        parse_data_line('data: {"broken', "google")

    assert exc_info.value.provider == "google"
    assert exc_info.value.line == 'data: {"broken'
