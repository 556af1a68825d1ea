"""
Value rendering shared by the structured-text codec and the report compiler.

Every field either exporter reads goes through these helpers, so an absent
value always renders as its literal default and never as an empty string.
"""

import re
import unicodedata
from typing import Any, Dict, Iterable, Optional

NOT_SPECIFIED = "Not specified"

_TRUE_TOKENS = {"yes", "true", "y", "1", "on"}
_FALSE_TOKENS = {"no", "false", "n", "0", "off"}


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def render_value(value: Any, default: str = NOT_SPECIFIED) -> str:
    """Render a scalar; blank values render as ``default``"""
    if is_blank(value):
        return default
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_flag(value: Any) -> Optional[bool]:
    """Booleans and yes/no style strings as a bool, None when unknown"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_TOKENS:
            return True
        if lowered in _FALSE_TOKENS:
            return False
    return None


def render_bool(value: Any, default: str = "No") -> str:
    """
    Normalize booleans and yes/no strings to ``Yes``/``No``.

    Other free text (e.g. a gas fill of "argon") is rendered as-is.
    """
    flag = parse_flag(value)
    if flag is None:
        return render_value(value, default)
    return "Yes" if flag else "No"


def render_list(values: Optional[Iterable[Any]], default: str = NOT_SPECIFIED, separator: str = ",") -> str:
    """Comma-join a string set in insertion order; empty sets render ``default``"""
    if values is None or isinstance(values, str):
        return render_value(values, default)
    items = [str(item).strip() for item in values if not is_blank(item)]
    if not items:
        return default
    return separator.join(items)


def map_vocabulary(value: Any, vocabulary: Dict[str, str], default: str = NOT_SPECIFIED) -> str:
    """
    Translate a stored code through a lookup table.

    Codes missing from the table pass through unchanged.
    """
    if is_blank(value):
        return default
    text = str(value).strip()
    return vocabulary.get(text, text)


def ascii_safe(text: str) -> str:
    """Fold to printable ASCII on a single line"""
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    folded = re.sub(r"[\r\n\t]+", " ", folded)
    return "".join(ch for ch in folded if 32 <= ord(ch) < 127)


def humanize(key: str) -> str:
    """Turn a snake_case code or CamelCase key into words ("hot_tub" -> "hot tub")"""
    if "_" in key or key.islower():
        return key.replace("_", " ")
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", " ", key)
