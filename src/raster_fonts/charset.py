from __future__ import annotations

from typing import Dict, List

DEFAULT_CHARSET = "20-7e"

MAX_CODE_POINT = 0x10FFFF


def _parse_code_point(token: str, charset: str) -> int:
    digits = token.strip()
    if digits[:2].lower() == "u+":
        digits = digits[2:]
    try:
        value = int(digits, 16)
    except ValueError:
        raise ValueError(f"invalid code point {token!r} in charset {charset!r}") from None
    if not 0 <= value <= MAX_CODE_POINT:
        raise ValueError(f"code point {token!r} is outside the Unicode range")
    if 0xD800 <= value <= 0xDFFF:
        raise ValueError(f"code point {token!r} is a surrogate")
    return value


def parse_charset(text: str) -> List[str]:
    """Parse comma separated hex code points and ranges such as ``20-7e,a0``.

    Returns characters in the order given, each at most once.
    """
    seen: Dict[str, None] = {}
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start_text, end_text = part.split("-", 1)
            start = _parse_code_point(start_text, text)
            end = _parse_code_point(end_text, text)
            if end < start:
                raise ValueError(f"range {part!r} ends before it starts")
            code_points = range(start, end + 1)
        else:
            code_point = _parse_code_point(part, text)
            code_points = range(code_point, code_point + 1)
        for code_point in code_points:
            if 0xD800 <= code_point <= 0xDFFF:
                continue
            seen.setdefault(chr(code_point), None)

    if not seen:
        raise ValueError(f"charset {text!r} selects no characters")
    return list(seen)
