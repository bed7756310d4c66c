"""
Typed record-store field values.

WHAT: Tagged union of the value shapes a store field may hold
WHY: Decode each field once at the adapter boundary, against its declared kind
HOW: Frozen dataclasses per shape, one decoder that rejects any other shape
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union

from ..utils.exceptions import FieldShapeError


class FieldKind(str, Enum):
    """Declared kind of a mapped store field."""
    TEXT = "text"
    NUMBER = "number"
    OPTION = "option"  # single select
    LINKS = "links"  # linked records
    LOOKUP = "lookup"  # text, or lookup/rollup array of texts


@dataclass(frozen=True)
class TextValue:
    text: str


@dataclass(frozen=True)
class NumberValue:
    number: Decimal


@dataclass(frozen=True)
class OptionValue:
    name: str


@dataclass(frozen=True)
class LinksValue:
    record_ids: tuple[str, ...]

    @property
    def first(self) -> Optional[str]:
        return self.record_ids[0] if self.record_ids else None


@dataclass(frozen=True)
class LookupValue:
    texts: tuple[str, ...]

    @property
    def text(self) -> str:
        return ", ".join(self.texts)


FieldValue = Union[TextValue, NumberValue, OptionValue, LinksValue, LookupValue]


def decode_field(field: str, kind: FieldKind, raw: Any) -> Optional[FieldValue]:
    """
    Decode a raw JSON value into the FieldValue for its declared kind.

    The store omits empty fields, so a missing value (None) decodes to None
    for every kind.

    Args:
        field: Field name (for error reporting)
        kind: Declared kind from the store schema
        raw: Value as returned by the store API

    Returns:
        Decoded FieldValue, or None when the field is empty

    Raises:
        FieldShapeError: If the value does not have the shape of its kind
    """
    if raw is None:
        return None

    if kind is FieldKind.TEXT:
        if isinstance(raw, str):
            return TextValue(raw.strip())
        raise FieldShapeError(field, "text", raw)

    if kind is FieldKind.NUMBER:
        # bool is an int subclass; a checkbox is never a number
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            return NumberValue(Decimal(str(raw)))
        raise FieldShapeError(field, "number", raw)

    if kind is FieldKind.OPTION:
        # Single selects come back as the option name, or as an option object
        # when the API is asked for expanded cell values
        if isinstance(raw, str):
            return OptionValue(raw.strip())
        if isinstance(raw, dict) and isinstance(raw.get("name"), str):
            return OptionValue(raw["name"].strip())
        raise FieldShapeError(field, "single select", raw)

    if kind is FieldKind.LINKS:
        if not isinstance(raw, list):
            raise FieldShapeError(field, "linked records", raw)
        ids = []
        for item in raw:
            if isinstance(item, str):
                ids.append(item)
            elif isinstance(item, dict) and isinstance(item.get("id"), str):
                ids.append(item["id"])
            else:
                raise FieldShapeError(field, "linked records", raw)
        return LinksValue(tuple(ids))

    if kind is FieldKind.LOOKUP:
        items = raw if isinstance(raw, list) else [raw]
        texts = []
        for item in items:
            text = _lookup_text(item)
            if text is None:
                raise FieldShapeError(field, "text or lookup", raw)
            if text:
                texts.append(text)
        return LookupValue(tuple(texts))

    raise FieldShapeError(field, kind.value, raw)


def _lookup_text(item: Any) -> Optional[str]:
    """Text of one lookup element (string, number or named object); None if unusable."""
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, (int, float)) and not isinstance(item, bool):
        return str(item)
    if isinstance(item, dict) and isinstance(item.get("name"), str):
        return item["name"].strip()
    return None


def text_of(value: Optional[FieldValue]) -> str:
    """Text of a TEXT, OPTION or LOOKUP value; empty string when absent."""
    if value is None:
        return ""
    if isinstance(value, (TextValue, LookupValue)):
        return value.text
    if isinstance(value, OptionValue):
        return value.name
    raise TypeError(f"Not a textual field value: {value!r}")


def number_of(value: Optional[FieldValue], default: Decimal = Decimal("0")) -> Decimal:
    """Number of a NUMBER value; default when absent."""
    if value is None:
        return default
    if isinstance(value, NumberValue):
        return value.number
    raise TypeError(f"Not a numeric field value: {value!r}")


def first_link_of(value: Optional[FieldValue]) -> Optional[str]:
    """First linked record id of a LINKS value; None when absent or empty."""
    if value is None:
        return None
    if isinstance(value, LinksValue):
        return value.first
    raise TypeError(f"Not a linked-records field value: {value!r}")
