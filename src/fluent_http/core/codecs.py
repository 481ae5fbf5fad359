"""
Default JSON and XML codecs.

Codec contract (pluggable per client):

    marshal(value) -> bytes
    unmarshal(data: bytes, target) -> decoded object

A decode ``target`` is either:
- a type (pydantic model, dataclass, ``Dict[str, Any]``, ``List[User]``, ...):
  the decoded data is validated into a new instance via ``pydantic.TypeAdapter``
- a ``dict`` / ``list`` instance: filled in place
- a pydantic model or dataclass instance: its fields are updated in place
- ``None``: the plain decoded data is returned
"""

import dataclasses
import json
import xml.etree.ElementTree as ET
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Optional

import defusedxml.ElementTree as DefusedET
from pydantic import BaseModel, TypeAdapter

Marshal = Callable[[Any], bytes]
Unmarshal = Callable[[bytes, Any], Any]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TARGETS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@lru_cache(maxsize=256)
def _adapter_for(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def _to_plain(value: Any) -> Any:
    """Pydantic models and dataclasses to plain dicts; other values as-is."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    return value


def coerce_to_target(data: Any, target: Any) -> Any:
    """
    Put decoded data into ``target``.

    Returns:
        The populated object (the target itself for in-place targets)

    Raises:
        TypeError, ValueError, pydantic.ValidationError: On shape mismatch
    """
    if target is None:
        return data

    if isinstance(target, dict):
        if not isinstance(data, Mapping):
            raise TypeError(f"cannot decode {type(data).__name__} into a dict")
        target.update(data)
        return target

    if isinstance(target, list):
        if not isinstance(data, list):
            raise TypeError(f"cannot decode {type(data).__name__} into a list")
        target[:] = data
        return target

    if isinstance(target, BaseModel) or (
        dataclasses.is_dataclass(target) and not isinstance(target, type)
    ):
        validated = _adapter_for(type(target)).validate_python(data)
        for name in _field_names(target):
            object.__setattr__(target, name, getattr(validated, name))
        return target

    return _adapter_for(target).validate_python(data)


def _field_names(instance: Any) -> List[str]:
    if isinstance(instance, BaseModel):
        return list(type(instance).model_fields)
    return [f.name for f in dataclasses.fields(instance)]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# JSON
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _json_default(value: Any) -> Any:
    plain = _to_plain(value)
    if plain is value:
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
    return plain


def json_marshal(value: Any) -> bytes:
    """Compact UTF-8 JSON."""
    return json.dumps(
        _to_plain(value),
        default=_json_default,
        separators=(',', ':'),
        ensure_ascii=False,
    ).encode('utf-8')


def json_unmarshal(data: bytes, target: Any = None) -> Any:
    """Parse JSON and coerce it into ``target``."""
    return coerce_to_target(json.loads(data), target)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# XML
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#
# Mapping <-> element convention:
#   "@name" -> attribute, "#text" -> element text,
#   list value -> repeated child elements.

def _fill_element(element: ET.Element, content: Any) -> None:
    content = _to_plain(content)
    if isinstance(content, Mapping):
        for key, value in content.items():
            if key.startswith('@'):
                element.set(key[1:], str(value))
            elif key == '#text':
                element.text = str(value)
            elif isinstance(value, list):
                for item in value:
                    _fill_element(ET.SubElement(element, key), item)
            else:
                _fill_element(ET.SubElement(element, key), value)
    elif content is None:
        return
    elif isinstance(content, bool):
        element.text = 'true' if content else 'false'
    else:
        element.text = str(content)


def xml_marshal(value: Any) -> bytes:
    """
    Serialize to XML bytes.

    Accepts an ``ET.Element``, a single-key mapping ``{root_tag: content}``,
    or a pydantic model / dataclass (root tag = class name).

    Example:
        >>> xml_marshal({"user": {"@id": "1", "name": "John"}})
        b'<user id="1"><name>John</name></user>'
    """
    if isinstance(value, ET.Element):
        return ET.tostring(value, encoding='utf-8')

    if isinstance(value, BaseModel) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    ):
        root_tag, content = type(value).__name__, _to_plain(value)
    elif isinstance(value, Mapping) and len(value) == 1:
        root_tag, content = next(iter(value.items()))
    else:
        raise TypeError(
            f"cannot marshal {type(value).__name__} to XML: "
            "expected Element, single-root mapping, model or dataclass"
        )

    root = ET.Element(root_tag)
    _fill_element(root, content)
    return ET.tostring(root, encoding='utf-8')


def element_to_data(element: ET.Element) -> Any:
    """
    Element content to plain data (the element's own tag is dropped).

    Leaf elements without attributes become their text.
    """
    data: Dict[str, Any] = {f"@{k}": v for k, v in element.attrib.items()}

    for child in element:
        value = element_to_data(child)
        if child.tag in data:
            existing = data[child.tag]
            if not isinstance(existing, list):
                data[child.tag] = existing = [existing]
            existing.append(value)
        else:
            data[child.tag] = value

    text = (element.text or '').strip()
    if not data:
        return text
    if text:
        data['#text'] = text
    return data


def xml_unmarshal(data: bytes, target: Any = None) -> Any:
    """
    Parse XML (via defusedxml) and coerce the root element's content into
    ``target``.

    Example:
        >>> xml_unmarshal(b"<user><name>John</name><age>30</age></user>")
        {'name': 'John', 'age': '30'}
    """
    root = DefusedET.fromstring(data)
    return coerce_to_target(element_to_data(root), target)


def unmarshal_for_content_type(
    content_type: Optional[str],
    json_decoder: Unmarshal,
    xml_decoder: Unmarshal,
) -> Unmarshal:
    """
    Pick a decoder by Content-Type substring; JSON is the fallback.
    """
    content_type = content_type or ''
    if 'application/json' in content_type:
        return json_decoder
    if 'application/xml' in content_type or 'text/xml' in content_type:
        return xml_decoder
    return json_decoder
