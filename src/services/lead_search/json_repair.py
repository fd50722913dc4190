"""
Best-effort recovery of JSON object arrays from model output.

Model answers are supposed to be a JSON array of objects, but in practice they
arrive wrapped in markdown fences, with `//` comments, unquoted URLs, missing
brackets, sibling objects without commas and trailing commas. `repair_json_array`
cleans the text in ordered passes, tries a single parse, and falls back to
scanning balanced `{...}` spans one by one so a single broken object never
costs the whole batch.
"""

import enum
import json
import logging
import re
from typing import Any, List, Tuple

logger = logging.getLogger(__name__)

URL_TOKEN_PREFIX = "__LS_URL_"
URL_TOKEN_SUFFIX = "__"

_FENCE_RE = re.compile(r"```(?:json|javascript|js)?", re.IGNORECASE)
_URL_RE = re.compile(r"https?://[^\s\"'<>{}\[\],\\]+", re.IGNORECASE)
_LINE_COMMENT_RE = re.compile(r"//[^\n]*")
_BARE_TOKEN_RE = re.compile(
    r"([:\[,]\s*)(" + re.escape(URL_TOKEN_PREFIX) + r"\d+" + re.escape(URL_TOKEN_SUFFIX) + r")(?=\s*[,}\]]|\s*$)"
)
_ADJACENT_OBJECTS_RE = re.compile(r"}\s*{")
_TRAILING_COMMA_RE = re.compile(r",(\s*[\]}])")
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][\w\-]*)(\s*):")


class _ScanState(enum.Enum):
    OUTSIDE = "outside"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


def repair_json_array(text: Any) -> List[Any]:
    """Return every object recoverable from `text`. Never raises."""
    if not isinstance(text, str) or not text.strip():
        return []
    try:
        cleaned = clean_model_text(text)
        parsed = _parse_direct(cleaned)
        if parsed is not None:
            return parsed
        logger.debug("Direct JSON parse failed, scanning for balanced objects")
        return [obj for obj in (_parse_candidate(span) for span in scan_object_spans(cleaned)) if obj is not None]
    except Exception as e:  # noqa: BLE001
        logger.warning(f"JSON repair gave up on model output: {e}")
        return []


def clean_model_text(text: str) -> str:
    """Apply the textual repair passes and return text with URLs restored."""
    cleaned = strip_code_fences(text)
    cleaned, urls = tokenize_urls(cleaned)
    cleaned = strip_line_comments(cleaned)
    cleaned = quote_bare_tokens(cleaned)
    cleaned = join_adjacent_objects(cleaned)
    cleaned = remove_trailing_commas(cleaned)
    return restore_urls(cleaned, urls)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def tokenize_urls(text: str) -> tuple[str, dict[str, str]]:
    urls: dict[str, str] = {}

    def _replace(match: re.Match) -> str:
        token = f"{URL_TOKEN_PREFIX}{len(urls)}{URL_TOKEN_SUFFIX}"
        urls[token] = match.group(0)
        return token

    return _URL_RE.sub(_replace, text), urls


def strip_line_comments(text: str) -> str:
    return _LINE_COMMENT_RE.sub("", text)


def quote_bare_tokens(text: str) -> str:
    """Quote URL placeholders that stand as bare values; string literals are left untouched."""
    return "".join(
        segment if in_string else _BARE_TOKEN_RE.sub(r'\1"\2"', segment)
        for in_string, segment in split_string_literals(text)
    )


def split_string_literals(text: str) -> List[Tuple[bool, str]]:
    """Split `text` into `(in_string, segment)` runs; quoted segments keep their quotes."""
    segments: List[Tuple[bool, str]] = []
    state = _ScanState.OUTSIDE
    start = 0

    for index, char in enumerate(text):
        if state is _ScanState.ESCAPED:
            state = _ScanState.IN_STRING
        elif state is _ScanState.IN_STRING:
            if char == "\\":
                state = _ScanState.ESCAPED
            elif char == '"':
                segments.append((True, text[start : index + 1]))
                start = index + 1
                state = _ScanState.OUTSIDE
        elif char == '"':
            segments.append((False, text[start:index]))
            start = index
            state = _ScanState.IN_STRING

    segments.append((state is not _ScanState.OUTSIDE, text[start:]))
    return segments


def join_adjacent_objects(text: str) -> str:
    return _ADJACENT_OBJECTS_RE.sub("},{", text)


def remove_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def restore_urls(text: str, urls: dict[str, str]) -> str:
    for token, url in urls.items():
        text = text.replace(token, url)
    return text


def _locate_json_region(text: str) -> str:
    first_brace = text.find("{")
    first_bracket = text.find("[")
    if first_brace == -1 and first_bracket == -1:
        return ""
    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        end = text.rfind("]")
        return text[first_bracket : end + 1] if end > first_bracket else text[first_bracket:]
    end = text.rfind("}")
    return text[first_brace : end + 1] if end > first_brace else text[first_brace:]


def _parse_direct(text: str) -> List[Any] | None:
    region = _locate_json_region(text).strip()
    if not region:
        return None
    if not region.startswith("["):
        region = f"[{region}]"
    try:
        result = json.loads(region)
    except (ValueError, RecursionError):
        return None
    items = result if isinstance(result, list) else [result]
    if not any(isinstance(item, dict) for item in items):
        return None
    return items


def scan_object_spans(text: str) -> List[str]:
    """Return every top-level balanced `{...}` span, ignoring braces inside strings."""
    spans: List[str] = []
    state = _ScanState.OUTSIDE
    depth = 0
    start = -1

    for index, char in enumerate(text):
        if state is _ScanState.ESCAPED:
            state = _ScanState.IN_STRING
            continue
        if state is _ScanState.IN_STRING:
            if char == "\\":
                state = _ScanState.ESCAPED
            elif char == '"':
                state = _ScanState.OUTSIDE
            continue

        if char == '"':
            # Prose quotes outside an object are not string delimiters.
            if depth > 0:
                state = _ScanState.IN_STRING
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                spans.append(text[start : index + 1])

    return spans


def _parse_candidate(span: str) -> Any:
    candidate = remove_trailing_commas(span)
    for attempt in (candidate, _BARE_KEY_RE.sub(r'\1"\2"\3:', candidate)):
        try:
            return json.loads(attempt)
        except (ValueError, RecursionError):
            continue
    logger.debug(f"Dropping unparsable object: {span[:80]!r}")
    return None
