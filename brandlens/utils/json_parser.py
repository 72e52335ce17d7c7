import json
import re
from typing import Any, Dict, List, Optional, Tuple, Union

from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)

_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def parse_json_safely(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from model output, tolerating common LLM formatting issues.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Leading/trailing whitespace
    - JSON wrapped in explanatory prose (first balanced block wins)
    - Trailing commas before a closing brace or bracket

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON object or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = _strip_code_fence(text)

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.debug(f"Direct JSON parse failed: {e}, locating embedded block")

    for block in iter_json_blocks(cleaned_text):
        for candidate in (block, _TRAILING_COMMA.sub(r"\1", block)):
            try:
                return json.loads(candidate)
            except json.JSONDecodeError:
                continue

    LOGGER.debug("No parseable JSON block found in response text")
    return None


def find_json_block(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` or ``[...]`` block in ``text``."""
    return next(iter_json_blocks(text), None)


def iter_json_blocks(text: str):
    """Yield every balanced JSON-like block in ``text``, in order of its opening.

    Brackets inside string literals are ignored. Nested blocks are not yielded
    separately from their enclosing block, unless the enclosing block never
    closes or hits a mismatched bracket; its complete inner blocks are yielded
    instead. The text is scanned once.
    """
    pairs = {"{": "}", "[": "]"}
    # Open blocks, outermost first: (start, expected closer, spans of complete inner blocks)
    stack: List[Tuple[int, str, List[Tuple[int, int]]]] = []
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char in pairs:
            stack.append((index, pairs[char], []))
        elif not stack:
            continue
        elif char == '"':
            in_string = True
        elif char in ("}", "]"):
            if char != stack[-1][1]:
                yield from _orphaned_blocks(text, stack)
                stack = []
                continue
            start, _, _ = stack.pop()
            if stack:
                stack[-1][2].append((start, index + 1))
            else:
                yield text[start:index + 1]

    yield from _orphaned_blocks(text, stack)


def _orphaned_blocks(text: str, stack):
    for _, _, spans in stack:
        for start, end in spans:
            yield text[start:end]


def _strip_code_fence(text: str) -> str:
    cleaned_text = text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text[7:]
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text[3:]

    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text[:-3]

    return cleaned_text.strip()
