"""
Input classification and source resolution.

Every conversion input is classified once into a closed set of variants:
    StringInput  - CSV text held in memory
    BufferInput  - raw bytes (workbook or encoded CSV)
    UrlInput     - http(s) location, needs a SourceResolver
    PathInput    - file path, needs a SourceResolver

``resolve_source`` turns the variant into a ``ResolvedSource``: either CSV
text or workbook bytes, plus ``SourceInfo`` metadata. Fetching URLs and
reading files is delegated to an injected resolver; nothing here performs I/O.
"""

import logging
import mimetypes
import os
from dataclasses import dataclass
from typing import Protocol, Union
from urllib.parse import urlparse

from converters.config import MIME_TYPES, XLS_SIGNATURE, XLSX_SIGNATURE
from converters.csv_dialect import looks_like_csv
from converters.errors import InvalidInputError
from converters.validator import is_url
from models.results import SourceInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StringInput:
    text: str


@dataclass(frozen=True)
class BufferInput:
    data: bytes


@dataclass(frozen=True)
class UrlInput:
    url: str


@dataclass(frozen=True)
class PathInput:
    path: str


@dataclass(frozen=True)
class ResolvedPayload:
    """What a SourceResolver hands back: content plus optional metadata."""
    content: Union[bytes, str]
    file_type: str = None
    size_bytes: int = None


class SourceResolver(Protocol):
    def resolve(self, location: str) -> Union[bytes, str, ResolvedPayload]:
        ...


@dataclass(frozen=True)
class ResolvedSource:
    """
    Input ready for parsing.

    Attributes:
        kind: 'csv' or 'workbook'
        content: CSV text (kind 'csv') or workbook bytes (kind 'workbook')
        info: SourceInfo describing where the content came from
    """
    kind: str
    content: Union[bytes, str]
    info: SourceInfo


def classify_input(data):
    """
    Classify a raw conversion input.

    Strings are URLs when http(s)-shaped, CSV text when they look like CSV,
    and file paths otherwise.

    Examples:
        >>> classify_input(b'PK...')
        BufferInput(data=b'PK...')
        >>> classify_input('https://example.com/sheet.xlsx')
        UrlInput(url='https://example.com/sheet.xlsx')
        >>> classify_input('a,b\\n1,2')
        StringInput(text='a,b\\n1,2')
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return BufferInput(bytes(data))
    if isinstance(data, str):
        if is_url(data):
            return UrlInput(data.strip())
        if looks_like_csv(data):
            return StringInput(data)
        return PathInput(data.strip())
    raise InvalidInputError(f"Unsupported input type: {type(data).__name__}")


def detect_file_type(data):
    """Sniff workbook magic bytes: 'xlsx', 'xls', or None."""
    if data.startswith(XLSX_SIGNATURE):
        return 'xlsx'
    if data.startswith(XLS_SIGNATURE):
        return 'xls'
    return None


def _extension_type(location):
    path = urlparse(location).path if is_url(location) else location
    ext = os.path.splitext(path)[1].lower().lstrip('.')
    return ext if ext in ('xlsx', 'xls', 'csv') else None


def _mime_type(file_type, location=None):
    if file_type in MIME_TYPES:
        return MIME_TYPES[file_type]
    if location:
        return mimetypes.guess_type(location)[0]
    return None


def _from_bytes(data, encoding, source, file_type_hint=None, reported_type=None):
    sniffed = detect_file_type(data)
    size = len(data)

    if sniffed is None:
        try:
            text = data.decode(encoding).lstrip('\ufeff')
        except UnicodeDecodeError:
            text = None
        if text is not None and (file_type_hint == 'csv' or looks_like_csv(text)):
            file_type = reported_type or 'csv'
            info = SourceInfo(file_type=file_type, source=source, size_bytes=size, mime_type=_mime_type('csv'))
            return ResolvedSource('csv', text, info)

    file_type = reported_type or sniffed or file_type_hint or 'buffer'
    mime = _mime_type(sniffed or file_type_hint, None if source == 'buffer' else source)
    return ResolvedSource('workbook', data, SourceInfo(file_type=file_type, source=source, size_bytes=size, mime_type=mime))


def _resolve_location(location, reported_type, resolver, encoding):
    if resolver is None:
        raise InvalidInputError(
            f"No source resolver configured to read '{location}'",
            details={'source': location},
        )

    payload = resolver.resolve(location)
    if not isinstance(payload, ResolvedPayload):
        payload = ResolvedPayload(content=payload)

    hint = payload.file_type or _extension_type(location)
    content = payload.content
    if isinstance(content, str):
        size = payload.size_bytes if payload.size_bytes is not None else len(content.encode(encoding))
        info = SourceInfo(file_type=reported_type or 'csv', source=location, size_bytes=size, mime_type=_mime_type('csv'))
        return ResolvedSource('csv', content, info)

    resolved = _from_bytes(bytes(content), encoding, location, file_type_hint=hint, reported_type=reported_type)
    if payload.size_bytes is not None:
        info = SourceInfo(resolved.info.file_type, location, payload.size_bytes, resolved.info.mime_type)
        resolved = ResolvedSource(resolved.kind, resolved.content, info)
    return resolved


def resolve_source(data, encoding='utf-8', resolver=None):
    """
    Classify an input and produce parse-ready content.

    Args:
        data: str or bytes-like conversion input
        encoding: Text encoding for CSV bytes
        resolver: Optional SourceResolver for URL and path inputs

    Returns:
        ResolvedSource

    Raises:
        InvalidInputError: Unsupported input, or a URL/path without resolver
    """
    variant = classify_input(data)

    if isinstance(variant, StringInput):
        size = len(variant.text.encode(encoding, errors='replace'))
        info = SourceInfo(file_type='csv', source='CSV content', size_bytes=size, mime_type=_mime_type('csv'))
        resolved = ResolvedSource('csv', variant.text, info)
    elif isinstance(variant, BufferInput):
        resolved = _from_bytes(variant.data, encoding, 'buffer')
    elif isinstance(variant, UrlInput):
        resolved = _resolve_location(variant.url, 'url', resolver, encoding)
    elif isinstance(variant, PathInput):
        resolved = _resolve_location(variant.path, None, resolver, encoding)
    else:
        raise InvalidInputError(f"Unhandled input variant: {type(variant).__name__}")

    logger.debug(
        "Resolved %s source '%s' (%s, %d bytes)",
        resolved.kind, resolved.info.source, resolved.info.file_type, resolved.info.size_bytes,
    )
    return resolved
