"""
Serialization Utilities

This module converts engine records into plain data for the store and the
reporting collaborator: enums become their values, datetimes and dates become
ISO strings, nested dataclasses become dictionaries.
"""

import json
import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from dataclasses import is_dataclass, fields


class SerializationFormat(Enum):
    """Supported serialization formats."""
    JSON = "json"
    DICT = "dict"


def serialize(
    obj: Any,
    format: SerializationFormat = SerializationFormat.DICT,
    exclude_none: bool = False
) -> Union[Dict[str, Any], List[Any], Any]:
    """
    Serialize an object to the specified format.

    Args:
        obj: The object to serialize
        format: Output format (JSON string or Python data)
        exclude_none: Whether to drop None values from mappings

    Returns:
        Serialized object as plain Python data or a JSON string
    """
    if format == SerializationFormat.JSON:
        return json.dumps(serialize(obj, SerializationFormat.DICT, exclude_none), ensure_ascii=False)

    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()

    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, (list, tuple)):
        return [serialize(item, SerializationFormat.DICT, exclude_none) for item in obj]

    if isinstance(obj, dict):
        result = {}
        for key, value in obj.items():
            if exclude_none and value is None:
                continue
            key = key.value if isinstance(key, Enum) else key
            result[key] = serialize(value, SerializationFormat.DICT, exclude_none)
        return result

    # Objects that know how to serialize themselves
    if hasattr(obj, 'to_dict') and callable(getattr(obj, 'to_dict')):
        return serialize(obj.to_dict(), SerializationFormat.DICT, exclude_none)

    # Shallow field walk keeps nested to_dict() overrides in effect
    if is_dataclass(obj):
        return serialize(
            {f.name: getattr(obj, f.name) for f in fields(obj)},
            SerializationFormat.DICT,
            exclude_none
        )

    return str(obj)


def to_json(obj: Any, pretty: bool = False, exclude_none: bool = False) -> str:
    """
    Serialize an object to a JSON string.

    Args:
        obj: The object to serialize
        pretty: Whether to format the JSON with indentation
        exclude_none: Whether to exclude None values

    Returns:
        JSON string representation
    """
    indent = 2 if pretty else None
    dict_data = serialize(obj, SerializationFormat.DICT, exclude_none)
    return json.dumps(dict_data, indent=indent, ensure_ascii=False, default=str)


def parse_datetime(value: Optional[Union[str, datetime.datetime]]) -> Optional[datetime.datetime]:
    """Parse an ISO string (or pass through a datetime); None stays None."""
    if value is None or isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.fromisoformat(value)


def parse_date(value: Optional[Union[str, datetime.date]]) -> Optional[datetime.date]:
    """Parse an ISO ``YYYY-MM-DD`` string (or pass through a date)."""
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(value[:10])


class SerializableMixin:
    """
    Mixin that provides serialization capabilities to a record.

    Classes using this mixin must define ``__serializable_fields__``, the list
    of attribute names included in ``to_dict()``. Deserialization is left to
    each record's ``from_dict`` since enum and datetime parsing differ per
    record.
    """

    __serializable_fields__: List[str] = []

    def to_dict(self) -> Dict[str, Any]:
        """Convert the object to a dictionary."""
        result = {}
        for field_name in self.__serializable_fields__:
            if hasattr(self, field_name):
                result[field_name] = serialize(getattr(self, field_name), SerializationFormat.DICT)
        return result

    def to_json(self, pretty: bool = False) -> str:
        """Convert the object to a JSON string."""
        return to_json(self.to_dict(), pretty)
