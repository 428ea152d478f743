"""Front-matter parser for post sources.

Format:
---
layout: post
title:  "Hello!"
date:   2017-05-21 10:18:00
categories: Rails
tags:
  - ruby
  - web
---
<body>

Only scalars and simple sequences are supported. A line that cannot be read
does not abort the document: it is skipped and reported as an
``UnparseableField`` warning.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

from postkit.errors import (
    MalformedDocument,
    MissingRequiredField,
    UnparseableField,
    UnterminatedMetadata,
)

DEFAULT_DELIMITER = "---"
DEFAULT_REQUIRED_FIELDS = ("title", "date")

_KEY_RE = re.compile(r"^(?P<key>[A-Za-z0-9_][\w-]*)[ \t]*:(?:[ \t]+(?P<value>.*?))?[ \t]*$")
_ITEM_RE = re.compile(r"^[ \t]*-(?:[ \t]+(?P<value>.*?))?[ \t]*$")
_NESTED_KEY_RE = re.compile(r"^[ \t]+[A-Za-z0-9_][\w-]*[ \t]*:")


@dataclass(frozen=True)
class ParsedSource:
    """Result of splitting a raw source into metadata and body.

    Attributes:
        metadata: Field name to string or list of strings
        body: Text after the closing delimiter line
        body_offset: Character offset of the body in the raw source
        body_line: 1-based line number where the body starts
        warnings: Metadata lines that were skipped
    """

    metadata: Dict[str, object]
    body: str
    body_offset: int = 0
    body_line: int = 1
    warnings: Tuple[UnparseableField, ...] = field(default_factory=tuple)


class _FieldError(ValueError):
    pass


def _strip_newline(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n") or line.endswith("\r"):
        return line[:-1]
    return line


def _decode_scalar(raw: str) -> str:
    """Decode one scalar value. Quoted values follow YAML escaping rules."""
    if not raw or raw[0] not in "\"'":
        return raw

    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise _FieldError(f"invalid quoted value ({exc.__class__.__name__})") from exc

    if not isinstance(value, str):
        raise _FieldError("quoted value did not decode to text")
    return value


def _decode_flow_sequence(raw: str) -> List[str]:
    try:
        value = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise _FieldError(f"invalid sequence ({exc.__class__.__name__})") from exc

    if not isinstance(value, list):
        raise _FieldError("sequence did not decode to a list")

    items = []
    for item in value:
        if isinstance(item, (list, dict)):
            raise _FieldError("nested structures are not supported")
        if item is None:
            continue
        items.append(item if isinstance(item, str) else str(item))
    return items


def _decode_value(raw: str):
    if raw.startswith("["):
        return _decode_flow_sequence(raw)
    if raw.startswith("{"):
        raise _FieldError("nested structures are not supported")
    return _decode_scalar(raw)


def _split_lines(text: str) -> List[str]:
    """Split on newlines only, keeping line endings."""
    lines = text.split("\n")
    result = [line + "\n" for line in lines[:-1]]
    if lines[-1]:
        result.append(lines[-1])
    return result


def _is_delimiter(line: str, delimiter: str) -> bool:
    return _strip_newline(line).rstrip() == delimiter


def parse_source(
    text: str,
    *,
    delimiter: str = DEFAULT_DELIMITER,
    required_fields: Iterable[str] = DEFAULT_REQUIRED_FIELDS,
) -> ParsedSource:
    """Split a raw source into its metadata mapping and body.

    Args:
        text: Raw source text
        delimiter: Marker line that opens and closes the metadata block
        required_fields: Field names that must be present

    Returns:
        ParsedSource with metadata, body and any field warnings

    Raises:
        MalformedDocument: If the text does not open with the delimiter
        UnterminatedMetadata: If the block is never closed
        MissingRequiredField: If a required field is absent
    """
    start = 1 if text.startswith("\ufeff") else 0
    lines = _split_lines(text[start:])

    if not lines or not _is_delimiter(lines[0], delimiter):
        raise MalformedDocument(
            f"Document must start with a '{delimiter}' metadata delimiter",
            offset=start,
            line=1,
        )

    metadata: Dict[str, object] = {}
    warnings: List[UnparseableField] = []
    sequence_key: Optional[str] = None

    offset = start + len(lines[0])
    for index, line in enumerate(lines[1:], start=2):
        line_offset = offset
        offset += len(line)
        content = _strip_newline(line)

        if _is_delimiter(line, delimiter):
            _check_required(metadata, required_fields, start)
            return ParsedSource(
                metadata=metadata,
                body=text[offset:],
                body_offset=offset,
                body_line=index + 1,
                warnings=tuple(warnings),
            )

        stripped = content.strip()
        if not stripped or stripped.startswith("#"):
            continue

        reason = None
        item = _ITEM_RE.match(content)
        pair = _KEY_RE.match(content)
        if item:
            if sequence_key is None:
                reason = "sequence item without a key"
            elif item.group("value"):
                try:
                    value = _decode_value(item.group("value"))
                except _FieldError as exc:
                    reason = str(exc)
                else:
                    if isinstance(value, list):
                        reason = "nested structures are not supported"
                    else:
                        metadata[sequence_key].append(value)
        elif _NESTED_KEY_RE.match(content):
            reason = "nested structures are not supported"
        elif not pair:
            sequence_key = None
            reason = "expected 'key: value' or 'key:'"
        elif not pair.group("value"):
            # "key:" opens a block sequence
            sequence_key = pair.group("key")
            metadata[sequence_key] = []
        else:
            sequence_key = None
            try:
                metadata[pair.group("key")] = _decode_value(pair.group("value"))
            except _FieldError as exc:
                metadata.pop(pair.group("key"), None)
                reason = str(exc)

        if reason:
            warnings.append(UnparseableField(line=index, offset=line_offset, text=content, reason=reason))

    raise UnterminatedMetadata(
        f"Metadata block opened with '{delimiter}' is never closed",
        offset=start,
        line=1,
    )


def _check_required(metadata: Dict[str, object], required_fields: Iterable[str], offset: int) -> None:
    for name in required_fields:
        if name not in metadata:
            raise MissingRequiredField(name, offset=offset, line=1)


def parse_front_matter(text: str, **kwargs) -> Tuple[Dict[str, object], str]:
    """Parse a source and return (metadata, body)."""
    parsed = parse_source(text, **kwargs)
    return parsed.metadata, parsed.body


def _dump_scalar(value) -> str:
    """Write one value as a single-line YAML double-quoted scalar.

    Non-printable characters and YAML line breaks (U+0085, U+2028, U+2029)
    come out as escapes, so the value survives a parse unchanged.
    """
    text = yaml.safe_dump(str(value), default_style='"', allow_unicode=True, width=float("inf"))
    text = text.rstrip("\n")
    if text.endswith("\n..."):
        text = text[: -len("\n...")]
    return text


def dump_front_matter(metadata: Dict[str, object], delimiter: str = DEFAULT_DELIMITER) -> str:
    """Serialize a metadata mapping back into a front-matter block.

    Scalars are written as double-quoted strings, sequences as ``- item``
    lines, so parsing the output yields the same mapping.
    """
    out = [delimiter]
    for key, value in metadata.items():
        if isinstance(value, (list, tuple)):
            if not value:
                out.append(f"{key}: []")
                continue
            out.append(f"{key}:")
            for item in value:
                out.append(f"  - {_dump_scalar(item)}")
        else:
            out.append(f"{key}: {_dump_scalar(value)}")
    out.append(delimiter)
    return "\n".join(out) + "\n"


def compose_source(metadata: Dict[str, object], body: str, delimiter: str = DEFAULT_DELIMITER) -> str:
    """Rebuild a raw source from metadata and body."""
    return dump_front_matter(metadata, delimiter) + body
