"""Tests for content type detection."""

from __future__ import annotations

import pytest

from pgfs.storage.sniffing import TEXT_HTML, TEXT_PLAIN, TEXT_XML, detect_content_type

MP4_HEADER = (
    (24).to_bytes(4, "big") + b"ftyp" + b"isom" + b"\x00\x00\x02\x00" + b"isom" + b"mp41"
)


class TestSignatures:
    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            (b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", "image/png"),
            (b"\xff\xd8\xff\xe0\x00\x10JFIF", "image/jpeg"),
            (b"GIF89a\x01\x00\x01\x00", "image/gif"),
            (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"RIFF\x24\x00\x00\x00WAVEfmt ", "audio/wave"),
            (b"%PDF-1.7\n", "application/pdf"),
            (b"PK\x03\x04\x14\x00", "application/zip"),
            (b"\x1f\x8b\x08\x00\x00\x00", "application/x-gzip"),
            (b"OggS\x00\x02", "application/ogg"),
            (b"ID3\x04\x00", "audio/mpeg"),
            (b"\x1aE\xdf\xa3\x9fB\x86", "video/webm"),
            (b"wOF2\x00\x01\x00\x00", "font/woff2"),
            (b"%!PS-Adobe-3.0", "application/postscript"),
            (MP4_HEADER, "video/mp4"),
        ],
    )
    def test_magic_numbers(self, data: bytes, expected: str) -> None:
        assert detect_content_type(data) == expected


class TestMarkup:
    @pytest.mark.parametrize(
        "data",
        [
            b"<!DOCTYPE html><html></html>",
            b"  \n<html lang='en'>",
            b"<HEAD>",
            b"<p>paragraph</p>",
            b"<br>",
            b"<!-- comment -->",
        ],
    )
    def test_html(self, data: bytes) -> None:
        assert detect_content_type(data) == TEXT_HTML

    def test_xml(self) -> None:
        assert detect_content_type(b'<?xml version="1.0"?><root/>') == TEXT_XML

    def test_tag_prefix_without_terminator_is_not_html(self) -> None:
        # "<pre" starts with "<P" but is not followed by a space or ">".
        assert detect_content_type(b"<pre>") == TEXT_PLAIN


class TestText:
    def test_plain_text(self) -> None:
        assert detect_content_type(b"hello, world\n") == TEXT_PLAIN

    def test_utf8_text(self) -> None:
        assert detect_content_type("héllo wörld".encode()) == TEXT_PLAIN

    def test_utf16_byte_order_marks(self) -> None:
        assert detect_content_type(b"\xfe\xff\x00h") == "text/plain; charset=utf-16be"
        assert detect_content_type(b"\xff\xfeh\x00") == "text/plain; charset=utf-16le"

    def test_binary_control_bytes_are_inconclusive(self) -> None:
        assert detect_content_type(b"\x00\x01\x02\x03\x04") is None


class TestLimits:
    def test_empty_content_is_inconclusive(self) -> None:
        assert detect_content_type(b"") is None

    def test_only_leading_window_is_considered(self) -> None:
        data = b"a" * 512 + b"\x00\x01"
        assert detect_content_type(data, 512) == TEXT_PLAIN
        assert detect_content_type(data, 1024) is None

    def test_whole_input_without_limit(self) -> None:
        assert detect_content_type(b"a" * 4096 + b"\x00") is None
