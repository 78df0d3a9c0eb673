"""Decode realtime frames into protocol messages.

Decoding is pure: no I/O, no blocking, and the same input always yields an
equal result. Failures raise ``DecodeError`` carrying the original text so the
receive loop can log the frame and move on.
"""

from __future__ import annotations

from pydantic import TypeAdapter, ValidationError

from logger_bot.models.protocol import ProtocolMessage
from logger_bot.utils.async_helpers import DecodeError

_adapter: TypeAdapter[ProtocolMessage] = TypeAdapter(ProtocolMessage)

# Truncate long frames in error messages; the full text stays on the error
_REASON_LIMIT = 200


def decode(raw: str | bytes) -> ProtocolMessage:
    """Decode one frame.

    Args:
        raw: Frame text. Bytes are accepted and must be UTF-8.

    Returns:
        A ``Hello``, ``Disconnect`` or ``EventEnvelope``.

    Raises:
        DecodeError: If the text is not well-formed JSON, the top-level
            ``type`` is missing or unrecognized, or a known frame is missing
            required fields.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(repr(raw), f"frame is not valid UTF-8: {e}") from e

    try:
        return _adapter.validate_json(raw)
    except ValidationError as e:
        raise DecodeError(raw, _summarize(e)) from e


def _summarize(error: ValidationError) -> str:
    """Return a compact one-line description of a validation failure."""
    details = error.errors(include_url=False, include_input=False)
    if not details:
        return str(error)[:_REASON_LIMIT]

    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid frame")
    summary = f"{location}: {message}" if location else message
    if len(details) > 1:
        summary += f" (+{len(details) - 1} more)"
    return summary[:_REASON_LIMIT]
