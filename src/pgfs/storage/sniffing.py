"""Content type detection from leading bytes.

Detection is based on magic bytes and markup patterns only (never on names).
The caller decides how many leading bytes to pass (FileSystemConfig.sniff_size
for writers). Returns None when the content is not recognised, leaving the
fallback type to the caller.

Detection order:
    1. Markup (HTML, XML), after leading whitespace
    2. Binary signatures (images, documents, archives, audio/video, fonts)
    3. Byte order marks and plain text
"""

from __future__ import annotations

TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_HTML = "text/html; charset=utf-8"
TEXT_XML = "text/xml; charset=utf-8"

_WHITESPACE = b"\t\n\x0c\r "

# HTML openers, matched case-insensitively and followed by a space or ">".
_HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

# (signature, mime type); signatures anchored at offset 0.
_EXACT_SIGNATURES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"OggS\x00", "application/ogg"),
    (b"ID3", "audio/mpeg"),
    (b"\x1aE\xdf\xa3", "video/webm"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    (b"\x00asm", "application/wasm"),
)

# (container, form, mime type); the 4-byte chunk size between them is ignored.
_CHUNKED_SIGNATURES: tuple[tuple[bytes, bytes, str], ...] = (
    (b"RIFF", b"WEBPVP", "image/webp"),
    (b"RIFF", b"WAVE", "audio/wave"),
    (b"RIFF", b"AVI ", "video/avi"),
    (b"FORM", b"AIFF", "audio/aiff"),
)

# Bytes that never occur in text content.
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def _strip_leading_whitespace(data: bytes) -> bytes:
    return data.lstrip(_WHITESPACE)


def _is_tag_terminator(data: bytes, index: int) -> bool:
    return index < len(data) and data[index : index + 1] in (b" ", b">")


def _detect_markup(data: bytes) -> str | None:
    """Detect HTML or XML after leading whitespace."""
    stripped = _strip_leading_whitespace(data)
    upper = stripped[:16].upper()
    for tag in _HTML_TAGS:
        if upper.startswith(tag) and _is_tag_terminator(stripped, len(tag)):
            return TEXT_HTML
    if stripped.startswith(b"<?xml"):
        return TEXT_XML
    return None


def _chunked_match(data: bytes, container: bytes, form: bytes) -> bool:
    return data[:4] == container and data[8 : 8 + len(form)] == form


def _is_mp4(data: bytes) -> bool:
    """Check for an ISO base media "ftyp" box with an mp4 brand."""
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], "big")
    if box_size < 12 or box_size % 4 != 0 or len(data) < box_size:
        return False
    if data[4:8] != b"ftyp":
        return False
    if data[8:11] == b"mp4":
        return True
    for offset in range(16, box_size, 4):
        if data[offset : offset + 3] == b"mp4":
            return True
    return False


def _detect_signature(data: bytes) -> str | None:
    """Detect binary formats from magic bytes."""
    for signature, mime_type in _EXACT_SIGNATURES:
        if data.startswith(signature):
            return mime_type
    for container, form, mime_type in _CHUNKED_SIGNATURES:
        if _chunked_match(data, container, form):
            return mime_type
    if _is_mp4(data):
        return "video/mp4"
    return None


def _detect_text(data: bytes) -> str | None:
    """Detect byte order marks or binary-free text."""
    if data.startswith(b"\xfe\xff"):
        return "text/plain; charset=utf-16be"
    if data.startswith(b"\xff\xfe"):
        return "text/plain; charset=utf-16le"
    if data.startswith(b"\xef\xbb\xbf"):
        return TEXT_PLAIN
    if any(byte in _BINARY_BYTES for byte in data):
        return None
    return TEXT_PLAIN


def detect_content_type(data: bytes, limit: int | None = None) -> str | None:
    """Make a best-effort guess at the MIME type of content.

    Args:
        data: Leading bytes of the content.
        limit: If given, only the first limit bytes are considered.

    Returns:
        A MIME type string, or None if the content is empty or inconclusive.
    """
    data = bytes(data if limit is None else data[:limit])
    if not data:
        return None

    markup = _detect_markup(data)
    if markup:
        return markup

    signature = _detect_signature(data)
    if signature:
        return signature

    return _detect_text(data)
