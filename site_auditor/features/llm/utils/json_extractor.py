"""
Best-effort extraction of a JSON value embedded in model prose.

This is a heuristic, not a tolerant JSON parser: it locates the first `{` or
`[` and walks forward counting brackets (ignoring those inside string
literals) until the opening bracket is balanced. When the text never
balances, it falls back to the last closing bracket in the text.
"""
from typing import Any

_CLOSERS = {"{": "}", "[": "]"}


def extract_json_span(text: str) -> str:
    """
    Return the first balanced JSON object/array span in `text`, or "".

    Example:
        >>> extract_json_span('Here you go: [{"a": 1}] Thanks!')
        '[{"a": 1}]'
    """
    if not text:
        return ""

    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return ""
    start = min(starts)

    stack = []
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]"):
            if not stack or stack[-1] != char:
                break
            stack.pop()
            if not stack:
                return text[start:index + 1]

    # Unbalanced: first opener to last closer, same as a naive scan
    end = max(text.rfind("}"), text.rfind("]"))
    if end < start:
        return ""
    return text[start:end + 1]


def unwrap_single_key_list(value: Any) -> Any:
    """
    Some providers wrap an array under one synthetic key ({"pages": [...]})
    when forced into JSON-object mode. Return the inner list in that case.
    """
    if isinstance(value, dict) and len(value) == 1:
        inner = next(iter(value.values()))
        if isinstance(inner, list):
            return inner
    return value
