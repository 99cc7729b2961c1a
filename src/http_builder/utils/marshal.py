"""
Default marshal / unmarshal functions for request and response bodies.

Clients can swap any of these via ``Client.set_json_marshal`` and friends;
the signatures are the contract:

    json_marshal(value) -> bytes
    json_unmarshal(data: bytes) -> Any
    xml_marshal(value) -> bytes
    xml_unmarshal(data: bytes) -> dict
"""

import dataclasses
import json
import xml.etree.ElementTree as ET
from typing import Any, Dict, Mapping, Optional


def is_record(value: Any) -> bool:
    """
    True for structured record values: dataclass instances, NamedTuples and
    plain objects carrying attributes in ``__dict__``.
    """
    if isinstance(value, type):
        return False
    if dataclasses.is_dataclass(value):
        return True
    if isinstance(value, tuple) and hasattr(value, "_asdict"):
        return True
    return hasattr(value, "__dict__") and not callable(value)


def record_to_dict(value: Any) -> Dict[str, Any]:
    """Convert a record value into a plain dict (fields in declaration order)."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, tuple) and hasattr(value, "_asdict"):
        return dict(value._asdict())
    return {k: v for k, v in vars(value).items() if not k.startswith("_")}


def _json_default(value: Any) -> Any:
    if is_record(value):
        return record_to_dict(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _canonical(value: Any) -> Any:
    """Mapping keys sorted, record fields kept in declaration order."""
    if is_record(value):
        if dataclasses.is_dataclass(value):
            fields = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        else:
            fields = record_to_dict(value)
        return {key: _canonical(item) for key, item in fields.items()}
    if isinstance(value, Mapping):
        return {key: _canonical(value[key]) for key in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [_canonical(item) for item in value]
    return value


def json_marshal(value: Any) -> bytes:
    """
    Compact canonical JSON.

    Ключи mapping'ов сортируются, поля records (dataclass, NamedTuple)
    идут в порядке объявления. Одинаковые данные дают одинаковые байты.

    Examples:
        >>> json_marshal({"name": "John", "age": 30})
        b'{"age":30,"name":"John"}'
    """
    return json.dumps(
        _canonical(value),
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    ).encode("utf-8")


def json_unmarshal(data: bytes) -> Any:
    """Decode JSON bytes (or text)."""
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8")
    return json.loads(data)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# XML
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _append_value(parent: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, (list, tuple)) and not hasattr(value, "_asdict"):
        for item in value:
            _append_value(parent, tag, item)
        return
    child = ET.SubElement(parent, tag)
    _fill_element(child, value)


def _fill_element(element: ET.Element, value: Any) -> None:
    if is_record(value):
        value = record_to_dict(value)
    if isinstance(value, dict):
        for key, item in value.items():
            _append_value(element, str(key), item)
    elif value is None:
        return
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = str(value)


def xml_marshal(value: Any, root: Optional[str] = None) -> bytes:
    """
    Encode a record or mapping as XML.

    The root element is named after ``root`` if given, otherwise after the
    record's class name; plain mappings with a single key use that key.

    Examples:
        >>> xml_marshal({"user": {"name": "John"}})
        b'<user><name>John</name></user>'
    """
    if root is None:
        if is_record(value):
            root = type(value).__name__
        elif isinstance(value, dict) and len(value) == 1:
            root, value = next(iter(value.items()))
        else:
            root = "root"
    element = ET.Element(str(root))
    _fill_element(element, value)
    return ET.tostring(element, encoding="utf-8", xml_declaration=False)


def _strip_ns(tag: str) -> str:
    """Remove namespace URI prefix: ``{http://...}Name`` -> ``Name``."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def _element_to_value(element: ET.Element) -> Any:
    children = list(element)
    if not children and not element.attrib:
        text = (element.text or "").strip()
        return text or None

    result: Dict[str, Any] = {}
    for name, attr in element.attrib.items():
        if name.startswith("xmlns") or name.startswith("{"):
            continue
        result[f"@{name}"] = attr
    for child in children:
        tag = _strip_ns(child.tag)
        value = _element_to_value(child)
        if tag in result:
            existing = result[tag]
            if not isinstance(existing, list):
                result[tag] = [existing]
            result[tag].append(value)
        else:
            result[tag] = value
    text = (element.text or "").strip()
    if text:
        result["#text"] = text
    return result


def xml_to_dict(data: bytes) -> Dict[str, Any]:
    """
    Convert XML bytes into a JSON-compatible dict keyed by the root tag.

    Raises:
        ET.ParseError: If the data is not well-formed XML
    """
    root = ET.fromstring(data)
    return {_strip_ns(root.tag): _element_to_value(root)}


def xml_unmarshal(data: bytes) -> Dict[str, Any]:
    """Default XML unmarshal: same as :func:`xml_to_dict`."""
    return xml_to_dict(data)
