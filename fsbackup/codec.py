"""Conversion between Firestore REST field values and plain JSON values.

Firestore's REST API wraps every value in a single-key object naming its
type, e.g. ``{"stringValue": "abc"}`` or ``{"mapValue": {"fields": {...}}}``.
A backup file holds the plain form; these functions translate both ways.

Known limitations of the plain form:

+ Any string shaped exactly like ``2023-10-27T10:00:00.000Z`` is written back
  as a timestamp, whether or not it was one originally.
+ A float without a fractional part (``3.0``) is written back as an integer,
  unless it lies outside the 64-bit integer range (``1e20`` stays a double).
"""
import re
import logging
from typing import Any, Dict, List

LOGGER = logging.getLogger(__name__)

TIMESTAMP_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z")
DOC_ID_FIELD = "docId"
INT64_LIMIT = 2 ** 63

_VERBATIM_TAGS = (
    "stringValue", "doubleValue", "booleanValue", "timestampValue"
)
_NULL_TAGS = ("nullValue", "undefinedValue")


def decode_field(field: Dict) -> Any:
    """Turn one Firestore field value into a plain value.

    Never raises; anything unrecognized is logged and becomes ``None``.
    """
    if not isinstance(field, dict) or not field:
        LOGGER.warning("Unexpected Firestore field value: %r", field)
        return None
    # The value type is the object's only key
    tag = next(iter(field))
    value = field[tag]
    if tag in _VERBATIM_TAGS:
        return value
    if tag == "integerValue":
        try:
            return int(value)
        except (TypeError, ValueError):
            LOGGER.warning("Malformed integerValue: %r", value)
            return None
    if tag in _NULL_TAGS:
        return None
    if tag == "arrayValue":
        return [decode_field(item) for item in (value or {}).get("values", [])]
    if tag == "mapValue":
        return decode_fields((value or {}).get("fields", {}))
    LOGGER.warning("Unrecognized Firestore field type: %s", tag)
    return None


def encode_value(value: Any) -> Dict:
    """Turn a plain value into a Firestore field value.

    Never raises; unsupported types are logged and written as null.
    """
    if value is None:
        return {"nullValue": None}
    # bool is a subclass of int, so it has to go first
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        # Firestore REST API requires integers to be sent as strings
        return {"integerValue": str(value)}
    if isinstance(value, float):
        # Outside int64 an integral float stays a double
        if value.is_integer() and abs(value) < INT64_LIMIT:
            return {"integerValue": str(int(value))}
        return {"doubleValue": value}
    if isinstance(value, str):
        if TIMESTAMP_PATTERN.fullmatch(value):
            return {"timestampValue": value}
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(x) for x in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    LOGGER.warning("Unsupported data type encountered: %s",
                   type(value).__name__)
    return {"nullValue": None}


def decode_fields(fields: Dict) -> Dict[str, Any]:
    return {key: decode_field(item) for key, item in (fields or {}).items()}


def encode_fields(document: Dict[str, Any]) -> Dict[str, Dict]:
    return {str(key): encode_value(item) for key, item in document.items()}


def document_id(name: str) -> str:
    """Last segment of a document resource name."""
    return name.rstrip("/").split("/")[-1]


def decode_document(raw: Dict) -> Dict[str, Any]:
    """Decode a REST ``Document`` and tag it with its ``docId``."""
    doc = decode_fields(raw.get("fields"))
    doc[DOC_ID_FIELD] = document_id(raw["name"])
    return doc


def decode_documents(raws: List[Dict]) -> List[Dict[str, Any]]:
    return [decode_document(raw) for raw in raws]
