import base64
import binascii
import logging
import re

from chunkflow.const import INLINE_REFERENCE_PREFIX, OUTPUT_MIME_TYPE

logger = logging.getLogger(__name__)

DATA_URI_PREFIX_PATTERN = re.compile(r"^data:[\w.+-]*/?[\w.+-]*(;[\w.+-]+=[\w.+-]+)*;base64,", re.IGNORECASE)


def is_data_uri(value: str) -> bool:
    """
    Check if a string carries an explicit data-URI prefix.

    Args:
        value (str): The string to check.

    Returns:
        bool: True if the string starts with ``data:``.
    """
    return value[: len(INLINE_REFERENCE_PREFIX)].lower() == INLINE_REFERENCE_PREFIX


def strip_data_uri_prefix(value: str) -> str:
    """Remove a leading ``data:<mime>;base64,`` marker, if any."""
    return DATA_URI_PREFIX_PATTERN.sub("", value, count=1)


def decode_base64_payload(payload: str) -> bytes:
    """
    Decode an inline base64 payload, with or without a data-URI prefix.

    URL-safe alphabets and missing padding are accepted.

    Args:
        payload (str): The encoded payload.

    Returns:
        bytes: The decoded bytes.

    Raises:
        ValueError: If the payload is not valid base64 or decodes to nothing.
    """
    encoded = "".join(strip_data_uri_prefix(payload.strip()).split())
    # Handle URL-safe base64 encoding (replace - with + and _ with /)
    encoded = encoded.replace("-", "+").replace("_", "/")

    # Add padding if necessary
    missing_padding = len(encoded) % 4
    if missing_padding:
        encoded += "=" * (4 - missing_padding)

    try:
        decoded = base64.b64decode(encoded, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e

    if not decoded:
        raise ValueError("Base64 payload is empty")
    return decoded


def encode_data_uri(data: bytes, mime_type: str = OUTPUT_MIME_TYPE) -> str:
    """
    Encode bytes as a base64 data URI.

    Args:
        data (bytes): Raw content.
        mime_type (str): MIME type placed in the URI header.

    Returns:
        str: ``data:<mime_type>;base64,<payload>``.
    """
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
