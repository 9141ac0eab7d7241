"""
Repair of truncated or loosely formatted JSON returned by the model.

Only structural damage is targeted: code fences, trailing prose, a dangling
comma, missing commas between sibling objects/arrays and unclosed strings,
objects or arrays. Balanced-but-invalid JSON is passed through untouched.
"""
import re

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")

_CLOSERS = {"{": "}", "[": "]"}
_SIBLING_OPENERS = {"}": "{", "]": "["}


def _strip_fences(text: str) -> str:
    text = text.strip()
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def _insert_missing_commas(text: str) -> str:
    """Put ", " between `}{` and `][` siblings found outside string literals."""
    out = []
    in_string = False
    escaped = False
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        out.append(char)
        i += 1

        if in_string:
            if char == "\\" and not escaped:
                escaped = True
            elif char == '"' and not escaped:
                in_string = False
            else:
                escaped = False
            continue

        if char == '"':
            in_string = True
        elif char in _SIBLING_OPENERS:
            j = i
            while j < length and text[j].isspace():
                j += 1
            if j < length and text[j] == _SIBLING_OPENERS[char]:
                out.append(", ")
                i = j

    return "".join(out)


def _unbalanced(text: str):
    """Return (inside_string, trailing_escape, pending_closers) after one scan."""
    stack = []
    in_string = False
    escaped = False

    for char in text:
        if in_string:
            if char == "\\" and not escaped:
                escaped = True
            elif char == '"' and not escaped:
                in_string = False
            else:
                escaped = False
            continue

        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]"):
            # stray closers belong to structures the scan already closed
            if stack and stack[-1] == char:
                stack.pop()

    return in_string, escaped, stack


def clean_and_repair_json(text: str) -> str:
    """Best-effort conversion of raw model output into parseable JSON text.

    Never raises. Returns "{}" when no object start can be found.
    """
    if not text:
        return "{}"

    text = _strip_fences(text)

    first_open = text.find("{")
    if first_open == -1:
        return "{}"

    cutoff = max(text.rfind("}"), text.rfind("]"))
    if cutoff <= first_open:
        clean = text[first_open:]
    else:
        clean = text[first_open:cutoff + 1]

    clean = _insert_missing_commas(clean)

    clean = clean.strip()
    if clean.endswith(","):
        clean = clean[:-1]

    in_string, escaped, stack = _unbalanced(clean)

    if in_string:
        if escaped:
            clean = clean[:-1]
        clean += '"'

    while stack:
        clean += stack.pop()

    return clean
