"""Errors raised while turning raw sources into indexed documents.

Structural failures abort processing of a single document and carry enough
context (source name, character and UTF-8 byte offset, line number) to
locate the fault.

``UnparseableField`` is not an exception: it is a warning record attached to
the parse result so a document can still render with partial metadata.
"""

from __future__ import annotations

from dataclasses import dataclass


class PostkitError(Exception):
    """Base exception for all document processing errors."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        offset: int | None = None,
        line: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.source = source
        self.offset = offset
        self.line = line
        self.byte_offset: int | None = None

    def __str__(self) -> str:
        location = []
        if self.source:
            location.append(self.source)
        if self.line is not None:
            location.append(f"line {self.line}")
        if self.offset is not None:
            location.append(f"offset {self.offset}")
        if not location:
            return self.message
        return f"{self.message} ({', '.join(location)})"

    def locate(
        self,
        source: str | None = None,
        shift: int = 0,
        line_shift: int = 0,
        raw: str | None = None,
    ) -> "PostkitError":
        """Attach the source name and rebase offsets onto the raw source text.

        With ``raw`` given, ``byte_offset`` is set to the UTF-8 byte position
        matching ``offset``.
        """
        if source and not self.source:
            self.source = source
        if self.offset is not None:
            self.offset += shift
        if self.line is not None:
            self.line += line_shift
        if raw is not None and self.offset is not None:
            self.byte_offset = len(raw[: self.offset].encode("utf-8"))
        return self


class MalformedDocument(PostkitError):
    """Raised when the source does not start with a metadata delimiter."""


class UnterminatedMetadata(PostkitError):
    """Raised when the metadata block is opened but never closed."""


class MissingRequiredField(PostkitError):
    """Raised when a required metadata field is absent."""

    def __init__(self, field: str, **kwargs):
        super().__init__(f"Missing required field: {field}", **kwargs)
        self.field = field


class UnterminatedDirective(PostkitError):
    """Raised when a block directive has no matching close marker."""

    def __init__(self, directive: str, **kwargs):
        super().__init__(f"Unterminated directive: {directive}", **kwargs)
        self.directive = directive


class InvalidDocument(PostkitError):
    """Raised when metadata cannot form a consistent document."""

    def __init__(self, reason: str, detail: str = "", **kwargs):
        message = f"Invalid document: {reason}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, **kwargs)
        self.reason = reason
        self.detail = detail


class DuplicateIdentifier(PostkitError):
    """Raised when a second source resolves to an identifier already in use."""

    def __init__(self, identifier: str, existing_source: str | None = None, **kwargs):
        message = f"Duplicate identifier: {identifier}"
        if existing_source:
            message = f"{message} (already defined by {existing_source})"
        super().__init__(message, **kwargs)
        self.identifier = identifier
        self.existing_source = existing_source


@dataclass(frozen=True, slots=True)
class UnparseableField:
    """Warning for a metadata line that could not be parsed.

    Attributes:
        line: 1-based line number in the raw source
        offset: Character offset of the line in the raw source
        text: The offending line, without its newline
        reason: Short explanation of why the line was skipped
    """

    line: int
    offset: int
    text: str
    reason: str

    def __str__(self) -> str:
        return f"line {self.line}: {self.reason}: {self.text!r}"

    def to_dict(self) -> dict:
        return {"line": self.line, "offset": self.offset, "text": self.text, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: dict) -> "UnparseableField":
        return cls(
            line=data["line"],
            offset=data["offset"],
            text=data["text"],
            reason=data["reason"],
        )
