import re
import json
import base64
import binascii
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .constants import MIRROR_SUFFIX, TOPIC_ATTRIBUTES, DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT

# "<tenant>-users-<scope>-<type>" topics carry their message type as suffix
TYPE_FROM_TOPIC = re.compile(r"[^-]+-users-[^-]+-(.+)")
LEADING_INT = re.compile(r"\s*([+-]?\d+)")
NON_BASE64 = re.compile(r"[^A-Za-z0-9+/]")
URLSAFE_TO_STD = str.maketrans("-_", "+/")

def now_ts() -> str:
    return datetime.now(timezone.utc).isoformat()

# -------------- Naming --------------
def short_name(resource: str) -> str:
    ''' "projects/p/topics/orders" -> "orders" '''
    parts = resource.split("/")
    return parts[-1] or resource

def mirror_subscription(topic: str) -> str:
    return f"{topic}{MIRROR_SUFFIX}"

def topic_from_subscription(subscription: str) -> str:
    if subscription.endswith(MIRROR_SUFFIX):
        return subscription[:-len(MIRROR_SUFFIX)]
    return subscription

def derive_type_from_topic(topic: str) -> str:
    m = TYPE_FROM_TOPIC.fullmatch(topic)
    return m.group(1) if m else topic

# -------------- Wire payloads --------------
def _reject_constant(name: str):
    # NaN and Infinity are not JSON
    raise ValueError(f"invalid JSON constant {name}")

def b64decode_lenient(data: Any) -> bytes:
    ''' Decode standard or url-safe base64, skipping stray characters and missing padding.'''
    if not isinstance(data, str):
        return b""
    cleaned = NON_BASE64.sub("", data.translate(URLSAFE_TO_STD))
    if len(cleaned) % 4 == 1:
        # a lone trailing sextet carries no full byte
        cleaned = cleaned[:-1]
    return base64.b64decode(cleaned + "=" * (-len(cleaned) % 4))

def decode_wire_data(data: Any) -> Tuple[Any, str]:
    '''
    Decode a base64 wire payload.

    Returns (parsed, raw): raw is the UTF-8 text of whatever part of the
    payload decodes (empty for a non-string payload), parsed is the JSON value
    of raw or raw itself when it is not strict JSON.
    '''
    try:
        raw = b64decode_lenient(data).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError, TypeError):
        raw = ""
    try:
        parsed = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        parsed = raw
    return parsed, raw

def encode_wire_data(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")

def to_json(value: Any) -> str:
    # compact, non-ascii kept as is
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))

def make_envelope(message_type: str, payload: Any) -> dict:
    return {"body": {"type": message_type, "payload": payload}, "properties": {}, "headers": {}}

def normalize_attributes(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v if isinstance(v, str) else to_json(v) for k, v in value.items()}

def topic_hint(attributes: Dict[str, str], subscription: str) -> str:
    for key in TOPIC_ATTRIBUTES:
        if attributes.get(key):
            return attributes[key]
    return topic_from_subscription(subscription)

# Mirrored messages are kept as plain dicts, serialized as is by the API
def make_mirrored_message(message_id: str, subscription: str, publish_time: Optional[str],
                          attributes: Dict[str, str], data: Any, raw: str,
                          received_at: str, topic: Optional[str]) -> dict:
    return {
        "id": message_id,
        "subscription": subscription,
        "publishTime": publish_time,
        "attributes": attributes,
        "data": data,
        "raw": raw,
        "receivedAt": received_at,
        "topic": topic,
    }

def make_error(code: str, details: Any = None) -> dict:
    err = {"error": code}
    if details is not None:
        err["details"] = details
    return err

# -------------- Query --------------
def parse_limit(value: Optional[str]) -> int:
    ''' Integer prefix of value clamped to [1, MAX_QUERY_LIMIT]; default when absent or unparseable.'''
    m = LEADING_INT.match(value or "")
    limit = int(m.group(1)) if m else DEFAULT_QUERY_LIMIT
    return max(1, min(MAX_QUERY_LIMIT, limit))

def searchable_text(msg: dict) -> str:
    return (msg.get("raw") or to_json(msg.get("data") or {})).lower()

def filter_messages(messages: List[dict], subscription: Optional[str] = None,
                    q: Optional[str] = None, limit: int = DEFAULT_QUERY_LIMIT) -> List[dict]:
    ''' Newest first; subscription is a case-sensitive substring, q a case-insensitive one.'''
    items = list(reversed(messages))
    if subscription:
        items = [m for m in items if subscription in (m.get("subscription") or "")]
    if q:
        needle = q.lower()
        items = [m for m in items if needle in searchable_text(m)]
    return items[:limit]
