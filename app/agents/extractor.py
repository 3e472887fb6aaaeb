"""
Recover a JSON object from text that is supposed to contain one.

Generated text arrives in many shapes: bare JSON, JSON inside a code fence,
JSON wrapped in commentary, or JSON with small syntax defects. Each recovery
step below runs only when the previous one did not produce an object:

1. parse the trimmed text, or the body of a ```json fence found in it
   (LangChain's ``parse_json_markdown`` with a strict parser)
2. strip a leading/trailing code fence with any language tag
3. parse the greedy first-``{`` to last-``}`` span
4. balanced-brace scan that ignores braces inside string literals
5. repair the scanned candidate (trailing commas, raw newlines) and parse again

The result is either the complete object or an ``ExtractionFailure``; a
truncated or guessed object is never returned.
"""

import json
import logging
import re
from typing import Any, Dict, Iterator, List, Optional

from langchain_core.utils.json import parse_json_markdown
from pydantic import ValidationError

from app.errors import ExtractionFailure
from app.models.tutor_state import TutorState
from app.models.turn import HighlightRegion, ParsedTurn
from app.utils.result import Err, Ok, Result

logger = logging.getLogger(__name__)

FENCE = "```"
_FENCE_OPEN = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_FENCE_CLOSE = re.compile(r"\s*```\s*$")
_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")


def _parse_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse text as JSON, accepting only an object at the top level."""
    if not text:
        return None
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def _parse_markdown_object(text: str) -> Optional[Dict[str, Any]]:
    """Bare JSON, or the body of a ```json fence anywhere in the text."""
    try:
        value = parse_json_markdown(text, parser=json.loads)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def strip_code_fence(text: str) -> str:
    s = text.strip()
    if s.startswith(FENCE):
        s = _FENCE_OPEN.sub("", s, count=1)
    if s.endswith(FENCE):
        s = _FENCE_CLOSE.sub("", s)
    return s.strip()


def iter_balanced_objects(text: str) -> Iterator[str]:
    """
    Yield every top-level ``{...}`` span whose braces balance.

    Braces inside string literals do not count, and a quote preceded by an
    unescaped backslash does not end a string. Strings are only tracked inside
    an object so stray quotes in surrounding prose cannot derail the scan.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            if depth > 0:
                in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start:i + 1]


def repair_json_text(text: str) -> str:
    """
    Minimal repairs: drop trailing commas before ``}``/``]`` and escape raw
    newlines, carriage returns and tabs that appear inside string literals.
    """
    out: List[str] = []
    in_string = False
    escaped = False
    n = len(text)

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                out.append(ch)
                escaped = False
            elif ch == "\\":
                out.append(ch)
                escaped = True
            elif ch == '"':
                out.append(ch)
                in_string = False
            elif ch == "\n":
                out.append("\\n")
            elif ch == "\r":
                continue
            elif ch == "\t":
                out.append("\\t")
            else:
                out.append(ch)
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
            continue

        if ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                continue
        out.append(ch)

    return "".join(out)


def extract_object(text: Optional[str]) -> Result[Dict[str, Any]]:
    """Recover exactly one JSON object from arbitrary generated text."""
    if text is None or not text.strip():
        return Err(ExtractionFailure("no text to extract from"))

    trimmed = text.strip()

    obj = _parse_markdown_object(trimmed)
    if obj is not None:
        return Ok(obj)

    unfenced = strip_code_fence(trimmed)
    obj = _parse_object(unfenced)
    if obj is not None:
        logger.debug("Extracted object after stripping code fence")
        return Ok(obj)

    match = _GREEDY_OBJECT.search(unfenced)
    if match:
        obj = _parse_object(match.group(0))
        if obj is not None:
            logger.debug("Extracted object from greedy brace span")
            return Ok(obj)

    for candidate in iter_balanced_objects(unfenced):
        obj = _parse_object(candidate)
        if obj is None:
            obj = _parse_object(repair_json_text(candidate))
        if obj is not None:
            logger.debug("Extracted object with balanced scan")
            return Ok(obj)

    return Err(ExtractionFailure("no parseable JSON object", detail=trimmed[:80]))


def _coerce_replies(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    replies = []
    for item in raw:
        if item is None or isinstance(item, (dict, list)):
            continue
        text = str(item).strip()
        if text:
            replies.append(text)
    return replies


def _first_present(obj: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in obj and obj[key] is not None:
            return obj[key]
    return None


def parse_turn_object(obj: Dict[str, Any]) -> Result[ParsedTurn]:
    """Validate an extracted object into a ParsedTurn."""
    message = obj.get("message")
    if not isinstance(message, str) or not message.strip():
        return Err(ExtractionFailure("object has no message"))

    next_state = None
    raw_state = _first_present(obj, "nextState", "next_state")
    if isinstance(raw_state, dict):
        try:
            next_state = TutorState.model_validate(raw_state)
        except ValidationError as e:
            logger.warning(f"Discarding invalid nextState from model: {e.error_count()} errors")

    highlight = None
    raw_region = _first_present(obj, "highlightRegion", "highlight_region")
    if isinstance(raw_region, dict):
        try:
            highlight = HighlightRegion.model_validate(raw_region)
        except ValidationError:
            logger.info("Dropping out-of-range highlightRegion")

    return Ok(ParsedTurn(
        message=message.strip(),
        suggested_replies=_coerce_replies(_first_present(obj, "suggestedReplies", "suggested_replies")),
        next_state=next_state,
        highlight_region=highlight,
    ))


def extract_turn(text: Optional[str]) -> Result[ParsedTurn]:
    """Extract and validate a dialogue turn from generated text."""
    extracted = extract_object(text)
    if isinstance(extracted, Err):
        return extracted
    return parse_turn_object(extracted.value)
