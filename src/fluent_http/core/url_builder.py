"""
URL construction: base URL, path placeholders and merged query parameters.
"""

from typing import Iterable, Mapping, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from .exceptions import URLParseError
from .utils import merge_values, parse_query


def join_base_url(raw_url: str, base_url: str) -> str:
    """
    Prefix a relative URL with the client's base URL.

    Anything starting with "http" is treated as absolute.

    Examples:
        >>> join_base_url("/users", "https://api.example.com")
        'https://api.example.com/users'
        >>> join_base_url("https://other.com/x", "https://api.example.com")
        'https://other.com/x'
    """
    if raw_url.startswith("http") or not base_url:
        return raw_url
    return f"{base_url}/{raw_url.lstrip('/')}"


def substitute_path_params(url: str, path_params: Mapping[str, str]) -> str:
    """
    Replace ``{key}`` placeholders verbatim (values are not escaped).

    Placeholders without a matching key are left untouched.
    """
    for key, value in path_params.items():
        url = url.replace("{" + key + "}", str(value))
    return url


def build_url(
    raw_url: str,
    path_params: Optional[Mapping[str, str]] = None,
    query_params: Optional[Mapping[str, Iterable[str]]] = None,
    base_url: str = "",
    client_path_params: Optional[Mapping[str, str]] = None,
    client_query_params: Optional[Mapping[str, Iterable[str]]] = None,
) -> str:
    """
    Build the final absolute URL for a request.

    Args:
        raw_url: Request URL, absolute or relative to ``base_url``
        path_params: Request-level path params (win on key collision)
        query_params: Request-level query params (multimap)
        base_url: Client base URL
        client_path_params: Client-level path params
        client_query_params: Client-level query params (multimap)

    Returns:
        Final URL string

    Raises:
        URLParseError: If the resulting URL cannot be parsed

    Query values are additive: values already in ``raw_url`` come first,
    then client values, then request values.

    Example:
        >>> build_url(
        ...     "/users/{id}",
        ...     path_params={"id": "42"},
        ...     query_params={"a": ["2"]},
        ...     base_url="https://api.example.com",
        ...     client_query_params={"a": ["1"]},
        ... )
        'https://api.example.com/users/42?a=1&a=2'
    """
    final_url = join_base_url(raw_url, base_url)

    merged_path = dict(client_path_params or {})
    merged_path.update(path_params or {})
    final_url = substitute_path_params(final_url, merged_path)

    try:
        parts = urlsplit(final_url)
        # urlsplit ленив: невалидный порт всплывает только при обращении
        parts.port
    except ValueError as e:
        raise URLParseError(f"Failed to parse URL: {e}", url=final_url) from e

    query = merge_values(
        parse_query(parts.query),
        client_query_params or {},
        query_params or {},
    )

    return urlunsplit(parts._replace(query=urlencode(query, doseq=True)))
