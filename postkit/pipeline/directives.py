"""Directive expansion for post bodies.

Bodies may embed Liquid-style block directives:

    {% highlight ruby %}
    class A
    end
    {% endhighlight %}

The scanner is a single forward pass over the body with an index cursor and
two states:

- IN_PROSE: copy text until the next ``{%`` tag.
- IN_DIRECTIVE_BODY: the enclosed text is literal; only the matching close
  tag ends it, nothing inside is interpreted.

Rendered code never contains ``{`` or ``%`` unescaped, so expanding an
expanded body finds no new tags.

Unknown tags are passed through untouched with a logged warning.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from enum import Enum

from postkit.errors import UnterminatedDirective

logger = logging.getLogger(__name__)

TAG_OPEN = "{%"
TAG_CLOSE = "%}"
DEFAULT_LANGUAGE = "text"


class ScanState(Enum):
    IN_PROSE = "in_prose"
    IN_DIRECTIVE_BODY = "in_directive_body"


@dataclass(frozen=True)
class Tag:
    """One ``{% name args %}`` marker found in the body."""

    name: str
    args: tuple[str, ...]
    start: int
    end: int


def _make_tag(text: str, start: int, close: int) -> Tag:
    inner = text[start + len(TAG_OPEN):close]
    # Liquid whitespace control markers: {%- ... -%}
    if inner.startswith("-"):
        inner = inner[1:]
    if inner.endswith("-"):
        inner = inner[:-1]

    parts = inner.split()
    name = parts[0] if parts else ""
    return Tag(name=name, args=tuple(parts[1:]), start=start, end=close + len(TAG_CLOSE))


class _TagFinder:
    """Finds well-formed tags left to right.

    A ``{%`` followed by another ``{%`` before any ``%}`` is literal text.
    Search positions only move forward, so a whole body costs one pass.
    """

    def __init__(self, text: str):
        self._text = text
        self._close_at = -1
        self._exhausted = False

    def next_tag(self, start: int) -> Tag | None:
        if self._exhausted:
            return None

        text = self._text
        open_at = text.find(TAG_OPEN, start)
        while open_at != -1:
            if self._close_at < open_at + len(TAG_OPEN):
                self._close_at = text.find(TAG_CLOSE, open_at + len(TAG_OPEN))
                if self._close_at == -1:
                    break
            following = text.find(TAG_OPEN, open_at + len(TAG_OPEN), self._close_at)
            if following == -1:
                return _make_tag(text, open_at, self._close_at)
            open_at = following

        self._exhausted = True
        return None


def _line_at(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _trim_newlines(text: str) -> str:
    return text.strip("\r\n")


_MARKER_ESCAPES = str.maketrans({"{": "&#123;", "%": "&#37;"})


def _escape(text: str, quote: bool) -> str:
    """HTML-escape text and neutralize tag markers."""
    return html.escape(text, quote=quote).translate(_MARKER_ESCAPES)


class DirectiveExpander:
    """Expands ``highlight`` blocks into HTML code containers.

    Args:
        container_class: CSS class of the outer ``<figure>`` element
    """

    block_directives = {"highlight": "endhighlight"}

    def __init__(self, container_class: str = "highlight"):
        self._container_class = html.escape(container_class, quote=True)

    def render_highlight(self, args: tuple[str, ...], code: str) -> str:
        """Wrap literal code in a container tagged with its language."""
        language = args[0] if args else DEFAULT_LANGUAGE
        options = set(args[1:])

        lang = _escape(language, quote=True)
        attributes = f'class="language-{lang}" data-lang="{lang}"'
        if "linenos" in options:
            attributes += ' data-linenos="true"'

        escaped = _escape(_trim_newlines(code), quote=False)
        return f'<figure class="{self._container_class}"><pre><code {attributes}>{escaped}</code></pre></figure>'

    def expand(self, body: str, *, base_offset: int = 0, base_line: int = 1, source: str | None = None) -> str:
        """Expand every directive in ``body``.

        Args:
            body: Body text, raw or already expanded
            base_offset: Offset of ``body`` in the raw source, for error reports
            base_line: Line number of the first body line in the raw source
            source: Source name, for error reports and warnings

        Returns:
            Body with directives replaced by rendered containers

        Raises:
            UnterminatedDirective: If a block directive is never closed
        """
        out: list[str] = []
        finder = _TagFinder(body)
        cursor = 0
        state = ScanState.IN_PROSE
        opened: Tag | None = None

        while cursor < len(body):
            if state is ScanState.IN_PROSE:
                tag = finder.next_tag(cursor)
                if tag is None:
                    out.append(body[cursor:])
                    break

                out.append(body[cursor:tag.start])
                cursor = tag.end
                if tag.name in self.block_directives:
                    opened = tag
                    state = ScanState.IN_DIRECTIVE_BODY
                    continue

                logger.warning(
                    "Unknown directive '%s' passed through at line %d%s",
                    tag.name,
                    base_line + _line_at(body, tag.start) - 1,
                    f" in {source}" if source else "",
                )
                out.append(body[tag.start:tag.end])

            else:
                close_name = self.block_directives[opened.name]
                close_tag = finder.next_tag(cursor)
                while close_tag is not None and not (close_tag.name == close_name and not close_tag.args):
                    close_tag = finder.next_tag(close_tag.end)
                if close_tag is None:
                    break

                out.append(self.render_highlight(opened.args, body[cursor:close_tag.start]))
                cursor = close_tag.end
                opened = None
                state = ScanState.IN_PROSE

        if opened is not None:
            raise UnterminatedDirective(
                opened.name,
                source=source,
                offset=base_offset + opened.start,
                line=base_line + _line_at(body, opened.start) - 1,
            )

        return "".join(out)


def expand(body: str, **kwargs) -> str:
    """Expand directives with the default expander."""
    return DirectiveExpander().expand(body, **kwargs)
