"""reqr render - turn a response into terminal output or a file."""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import click
import pygments
import pygments.lexers
import pygments.styles
from pygments.formatters.terminal256 import Terminal256Formatter
from pygments.util import ClassNotFound

from reqr.core import DEFAULT_STYLE, FileWriteError, RequestSpec
from reqr.executor import ResponseEnvelope

logger = logging.getLogger(__name__)

# Ordered (substring, language) table; the first substring found in the
# content-type wins.
CONTENT_TYPE_LANGUAGES = (
    ("json", "json"),
    ("xml", "xml"),
    ("javascript", "javascript"),
    ("html", "html"),
    ("css", "css"),
)

JSON_INDENT = 2


class RenderKind(Enum):
    WRITE_TO_FILE = "file"
    PRETTY_PRINT_JSON = "json"
    HIGHLIGHT = "highlight"
    RAW_PRINT = "raw"


@dataclass(frozen=True)
class RenderDecision:
    kind: RenderKind
    path: Path | None = None
    language: str | None = None


# ---------------------------------------------------------------------------
# Highlighting
# ---------------------------------------------------------------------------


class HighlighterContext:
    """Pygments style and lexers, built once and shared across responses."""

    def __init__(self, style: str = DEFAULT_STYLE):
        try:
            style_class = pygments.styles.get_style_by_name(style)
        except ClassNotFound:
            logger.debug("Unknown style %r, using %r", style, DEFAULT_STYLE)
            style_class = pygments.styles.get_style_by_name(DEFAULT_STYLE)
        self.formatter = Terminal256Formatter(style=style_class)
        self._lexers: dict = {}

    def lexer_for(self, language: str):
        if language not in self._lexers:
            try:
                self._lexers[language] = pygments.lexers.get_lexer_by_name(
                    language,
                    stripnl=False,
                )
            except ClassNotFound:
                self._lexers[language] = None
        return self._lexers[language]

    def highlighter(self, language: str) -> "LineHighlighter | None":
        """Return a fresh highlighter for one response, or None if unknown."""
        lexer = self.lexer_for(language)
        if lexer is None:
            return None
        return LineHighlighter(lexer, self.formatter)


class LineHighlighter:
    """Highlights one response body.

    The body is lexed as a whole so that multi-line constructs (strings,
    comments, nested tags) keep their state from one line to the next.
    """

    def __init__(self, lexer, formatter):
        self.lexer = lexer
        self.formatter = formatter

    def lines(self, text: str) -> list[str]:
        return pygments.highlight(text, self.lexer, self.formatter).splitlines()


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


def language_for(content_type: str | None) -> str | None:
    """Map a content-type header to a highlighter language tag."""
    if not content_type:
        return None
    lowered = content_type.lower()
    for needle, language in CONTENT_TYPE_LANGUAGES:
        if needle in lowered:
            return language
    return None


def decide(
    response: ResponseEnvelope,
    output_path: str | Path | None = None,
    color: bool = False,
) -> RenderDecision:
    """Pick how to render *response*.

    An output path always wins. JSON is pretty-printed (and highlighted when
    color is on); other known types are highlighted only with color.
    """
    if output_path:
        return RenderDecision(RenderKind.WRITE_TO_FILE, path=Path(output_path))

    language = language_for(response.header("Content-Type"))
    if language == "json":
        return RenderDecision(
            RenderKind.PRETTY_PRINT_JSON,
            language=language if color else None,
        )
    if language and color:
        return RenderDecision(RenderKind.HIGHLIGHT, language=language)
    return RenderDecision(RenderKind.RAW_PRINT)


# ---------------------------------------------------------------------------
# Body helpers
# ---------------------------------------------------------------------------


def decode_body(body: bytes) -> str:
    """Decode as UTF-8, replacing invalid bytes instead of failing."""
    return body.decode("utf-8", errors="replace")


def pretty_json(text: str) -> str | None:
    """Re-indent a JSON document, or return None if it does not parse."""
    try:
        obj = json.loads(text)
    except ValueError:
        return None
    return json.dumps(obj, indent=JSON_INDENT, ensure_ascii=False)


def write_body(path: str | Path, body: bytes) -> int:
    """Write the body bytes verbatim, replacing any existing file."""
    try:
        with open(path, "wb") as f:
            return f.write(body)
    except OSError as e:
        raise FileWriteError(path, e) from e


def status_line(response: ResponseEnvelope, spec: RequestSpec) -> str:
    status = f"{response.status_code} {response.reason}".rstrip()
    return f"STATUS: {status}  {spec.method.value} {spec.url}"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def render_response(
    response: ResponseEnvelope,
    spec: RequestSpec,
    output_path: str | Path | None = None,
    context: HighlighterContext | None = None,
    verbose: bool = False,
) -> RenderDecision:
    """Print the status line, then render the body per the decision.

    Passing a HighlighterContext turns color on. Raises FileWriteError if
    the output path cannot be written.
    """
    decision = decide(response, output_path, color=context is not None)
    logger.debug("Render decision: %s", decision)

    click.echo(status_line(response, spec))
    if verbose:
        click.echo(f"TIME: {int(response.elapsed_ms)}ms")
        if response.headers:
            click.echo("HEADERS:")
            for key, value in response.headers.items():
                click.echo(f"  {key}: {value}")

    if decision.kind is RenderKind.WRITE_TO_FILE:
        written = write_body(decision.path, response.body)
        click.echo(f"Saved {written} bytes to {decision.path}", err=True)
        return decision

    text = decode_body(response.body)

    if decision.kind is RenderKind.PRETTY_PRINT_JSON:
        pretty = pretty_json(text)
        if pretty is None:
            logger.debug("Body is not valid JSON, printing raw")
            _echo_raw(text)
            return decision
        text = pretty

    highlighter = None
    if decision.language and context is not None:
        highlighter = context.highlighter(decision.language)

    if highlighter is None:
        _echo_raw(text)
        return decision

    for line in highlighter.lines(text):
        click.echo(line, color=True)
    return decision


def _echo_raw(text: str) -> None:
    if text:
        click.echo(text, nl=not text.endswith("\n"))
