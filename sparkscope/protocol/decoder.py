# sparkscope/protocol/decoder.py
from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from sparkscope.core.errors import EnvelopeError
from .events import EVENT_TYPES, EventKind, SparkEvent

ENVELOPE_TYPE = "fromscala"
OPEN_HANDSHAKE = {"msgtype": "openfromfrontend"}


def parse_envelope(raw: Any) -> Mapping[str, Any]:
    """
    Normalise an inbound channel message into the outer envelope mapping.

    Accepts an already-parsed mapping or a JSON str/bytes document.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise EnvelopeError("Envelope is not valid UTF-8.", hint=str(e)) from None

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise EnvelopeError("Envelope is not valid JSON.", hint=str(e)) from None

    if not isinstance(raw, Mapping):
        raise EnvelopeError(
            "Envelope must be a JSON object.",
            details={"type": type(raw).__name__},
        )
    return raw


def decode_event(raw: Any) -> Optional[SparkEvent]:
    """
    Decode one channel message into a typed event.

    Returns None for well-formed messages that carry nothing to route:
    outer envelopes other than ``fromscala`` and unknown inner tags.
    Raises EnvelopeError for anything malformed.
    """
    envelope = parse_envelope(raw)

    outer = envelope.get("msgtype")
    if not outer:
        raise EnvelopeError("Envelope has no msgtype.", details={"keys": sorted(map(str, envelope))})
    if outer != ENVELOPE_TYPE:
        return None

    inner_raw = envelope.get("msg")
    if isinstance(inner_raw, Mapping):
        data = inner_raw
    else:
        if not isinstance(inner_raw, (str, bytes, bytearray)):
            raise EnvelopeError("Envelope msg must be a JSON string.", details={"type": type(inner_raw).__name__})
        try:
            data = json.loads(inner_raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise EnvelopeError("Envelope msg is not valid JSON.", hint=str(e)) from None
        if not isinstance(data, Mapping):
            raise EnvelopeError("Envelope msg must decode to a JSON object.")

    tag = data.get("msgtype")
    if not tag:
        raise EnvelopeError("Event payload has no msgtype.")

    try:
        kind = EventKind(tag)
    except ValueError:
        return None

    event_cls = EVENT_TYPES[kind]
    try:
        return event_cls.from_payload(data)
    except KeyError as e:
        raise EnvelopeError(
            f"Event {tag} is missing required field {e.args[0]!r}.",
            details={"msgtype": tag},
        ) from None
    except (TypeError, ValueError) as e:
        raise EnvelopeError(
            f"Event {tag} has an invalid field.",
            hint=str(e),
            details={"msgtype": tag},
        ) from None


def encode_envelope(event_payload: Mapping[str, Any]) -> dict:
    """Wrap an inner event payload the way the kernel-side listener does."""
    return {"msgtype": ENVELOPE_TYPE, "msg": json.dumps(dict(event_payload))}
