"""
Utility functions for multi-valued containers.

Headers, query params and form data are stored as ``key -> [values]``
so that values from the client and the request can be merged additively.
Headers use ``requests.structures.CaseInsensitiveDict``; query params and
form data use plain insertion-ordered dicts.
"""

from typing import Dict, Iterable, List, Mapping, MutableMapping, Tuple, TypeVar
from urllib.parse import parse_qsl

from requests.structures import CaseInsensitiveDict

Values = Dict[str, List[str]]
M = TypeVar('M', bound=MutableMapping)


def new_headers() -> 'CaseInsensitiveDict[List[str]]':
    """Empty case-insensitive header multimap."""
    return CaseInsensitiveDict()


def canonical_header_key(key: str) -> str:
    """
    Canonical MIME header form: first letter and letters after '-' upper-cased.

    Examples:
        >>> canonical_header_key("x-api-key")
        'X-Api-Key'
        >>> canonical_header_key("content-TYPE")
        'Content-Type'
    """
    if not key or ' ' in key:
        return key
    return '-'.join(part[:1].upper() + part[1:].lower() for part in key.split('-'))


def set_value(values: MutableMapping[str, List[str]], key: str, value: str) -> None:
    """Replace all values of ``key`` with a single value."""
    values[key] = [str(value)]


def add_value(values: MutableMapping[str, List[str]], key: str, value: str) -> None:
    """Append a value to ``key`` keeping the existing ones."""
    if key in values:
        values[key].append(str(value))
    else:
        values[key] = [str(value)]


def copy_values(values: M) -> M:
    """
    Deep copy of a multimap: new container and new value lists.

    The container type is preserved, so a CaseInsensitiveDict stays
    case-insensitive.
    """
    return type(values)((key, list(vals)) for key, vals in values.items())


def merge_values(*sources: Mapping[str, Iterable[str]]) -> Values:
    """
    Additive merge of several multimaps.

    Keys keep first-seen order; each key collects the values of every
    source in source order. Nothing is deduplicated.

    Example:
        >>> merge_values({"a": ["1"]}, {"a": ["2"], "b": ["x"]})
        {'a': ['1', '2'], 'b': ['x']}
    """
    merged: Values = {}
    for source in sources:
        for key, vals in source.items():
            merged.setdefault(key, []).extend(vals)
    return merged


def merge_headers(*sources: Mapping[str, Iterable[str]]) -> 'CaseInsensitiveDict[List[str]]':
    """
    Additive merge of header multimaps, matching keys case-insensitively.

    A key keeps the spelling of its first occurrence.
    """
    merged = new_headers()
    for source in sources:
        for key, vals in source.items():
            for value in vals:
                add_value(merged, key, value)
    return merged


def flatten_headers(headers: Mapping[str, Iterable[str]]) -> Dict[str, str]:
    """Header multimap to wire form: multiple values joined with ", "."""
    return {key: ", ".join(vals) for key, vals in headers.items()}


def parse_query(query: str) -> Values:
    """Parse a query string into a multimap, keeping blank values."""
    parsed: Values = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        parsed.setdefault(key, []).append(value)
    return parsed


def flatten_values(values: Mapping[str, Iterable[str]]) -> List[Tuple[str, str]]:
    """Multimap to a list of (key, value) pairs in stored order."""
    return [(key, value) for key, vals in values.items() for value in vals]
