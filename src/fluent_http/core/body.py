"""
Request body model and encoder.

A request body is a tagged value: exactly one ``BodyKind`` plus its payload.
``encode_body`` turns it (or, when there is no body, the merged form data)
into wire bytes and an optional Content-Type hint.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import IO, Any, Iterable, Mapping, Optional, Union
from urllib.parse import urlencode

from .codecs import Marshal
from .exceptions import EncodeError

logger = logging.getLogger(__name__)

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_XML = "application/xml"
CONTENT_TYPE_FORM = "application/x-www-form-urlencoded"


class BodyKind(str, Enum):
    """Body variants."""
    BYTES = "bytes"
    STRING = "string"
    STREAM = "stream"
    JSON = "json"
    XML = "xml"


@dataclass(frozen=True)
class Body:
    """
    Tagged request payload.

    Attributes:
        kind: Variant tag
        payload: bytes, str, file-like object, or a value for the JSON/XML codec
    """
    kind: BodyKind
    payload: Any

    @classmethod
    def infer(cls, value: Any) -> 'Body':
        """
        Pick the variant from the payload type.

        bytes/bytearray -> BYTES, str -> STRING, object with ``read()`` ->
        STREAM, anything else -> JSON.
        """
        if isinstance(value, (bytes, bytearray)):
            return cls(BodyKind.BYTES, bytes(value))
        if isinstance(value, str):
            return cls(BodyKind.STRING, value)
        if hasattr(value, 'read'):
            return cls(BodyKind.STREAM, value)
        return cls(BodyKind.JSON, value)


@dataclass(frozen=True)
class EncodedBody:
    """
    Encoder output.

    Attributes:
        data: Wire payload (bytes or an unread stream), None for no body
        content_type: Content-Type hint, None when the encoder has no opinion
    """
    data: Union[bytes, IO, None] = None
    content_type: Optional[str] = None

    @property
    def size(self) -> Optional[int]:
        """Payload size in bytes, None for streams."""
        if isinstance(self.data, bytes):
            return len(self.data)
        if self.data is None:
            return 0
        return None


NO_BODY = EncodedBody()


def encode_body(
    body: Optional[Body],
    form_data: Mapping[str, Iterable[str]],
    json_marshal: Marshal,
    xml_marshal: Marshal,
) -> EncodedBody:
    """
    Encode a request body.

    Args:
        body: Tagged body or None
        form_data: Merged form data (client values first, then request values)
        json_marshal: JSON encoder
        xml_marshal: XML encoder

    Returns:
        EncodedBody with payload and Content-Type hint

    Raises:
        EncodeError: If the JSON/XML encoder fails

    An explicit body always wins over form data; the form data is then
    ignored and a warning is logged.
    """
    if body is None:
        if form_data:
            encoded = urlencode(
                [(k, v) for k, vals in form_data.items() for v in vals]
            )
            return EncodedBody(encoded.encode('utf-8'), CONTENT_TYPE_FORM)
        return NO_BODY

    if form_data:
        logger.warning(
            "Both body (%s) and form data are set; form data is ignored",
            body.kind.value,
        )

    if body.kind is BodyKind.JSON:
        return EncodedBody(_marshal(json_marshal, body), CONTENT_TYPE_JSON)

    if body.kind is BodyKind.XML:
        return EncodedBody(_marshal(xml_marshal, body), CONTENT_TYPE_XML)

    if body.kind is BodyKind.BYTES:
        return EncodedBody(bytes(body.payload))

    if body.kind is BodyKind.STRING:
        return EncodedBody(body.payload.encode('utf-8'))

    # STREAM: отдаём как есть, транспорт прочитает сам
    return EncodedBody(body.payload)


def _marshal(marshal: Marshal, body: Body) -> bytes:
    try:
        data = marshal(body.payload)
    except Exception as e:
        raise EncodeError(
            f"Failed to marshal {body.kind.value.upper()} body: {e}",
            body_kind=body.kind.value,
        ) from e
    if isinstance(data, str):
        data = data.encode('utf-8')
    return data
