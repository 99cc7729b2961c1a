"""
Query / form encoding helpers.

Keys are always emitted in alphabetical order so that encoded strings,
debug logs and tests are reproducible.

Policy: query parameters always go to the URL (for every method);
form data always goes to the body.
"""

from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl, quote_plus


def stringify(value: Any) -> str:
    """
    Текстовое представление значения для заголовков, query и form.

    Examples:
        >>> stringify(1)
        '1'
        >>> stringify(True)
        'true'
        >>> stringify(None)
        ''
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def encode_params(params: Optional[Mapping[str, Any]]) -> str:
    """
    Serialize a key->value mapping into a URL-encoded string.

    Both keys and values are percent-encoded with query escaping
    (space becomes ``+``). Keys are sorted alphabetically.

    Args:
        params: Mapping to encode (values are stringified)

    Returns:
        ``key=value&key=value`` string, empty for an empty mapping

    Examples:
        >>> encode_params({"b": "2", "a": "x y"})
        'a=x+y&b=2'
    """
    if not params:
        return ""
    parts = []
    for key in sorted(params, key=str):
        parts.append(f"{quote_plus(str(key))}={quote_plus(stringify(params[key]))}")
    return "&".join(parts)


def merge_params(
    defaults: Optional[Mapping[str, Any]],
    overrides: Optional[Mapping[str, Any]]
) -> Dict[str, str]:
    """
    Merge client-level defaults with request-level parameters.

    Request-level values win on key collision.
    """
    merged: Dict[str, str] = {}
    for source in (defaults, overrides):
        if source:
            for key, value in source.items():
                merged[str(key)] = stringify(value)
    return merged


def append_query(url: str, encoded: str) -> str:
    """
    Append an encoded query string to a URL.

    Uses ``&`` when the URL already carries a query, ``?`` otherwise.
    A fragment, if present, stays at the end.

    Examples:
        >>> append_query("https://a.com/x", "page=1")
        'https://a.com/x?page=1'
        >>> append_query("https://a.com/x?q=1", "page=1")
        'https://a.com/x?q=1&page=1'
    """
    if not encoded:
        return url

    url, sep, fragment = url.partition("#")
    if "?" in url:
        if not url.endswith(("?", "&")):
            url += "&"
    else:
        url += "?"
    url += encoded
    return url + sep + fragment


def parse_query_string(query: str) -> Dict[str, str]:
    """
    Parse ``a=1&b=2`` into a dict, keeping the first value per key.

    Raises:
        ValueError: If the string is not a valid query string
    """
    result: Dict[str, str] = {}
    pairs = parse_qsl(query.strip(), keep_blank_values=True, strict_parsing=True)
    for key, value in pairs:
        result.setdefault(key, value)
    return result
