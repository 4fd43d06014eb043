"""
Typed model for the JSON rendering of Soroban contract values.

The node returns contract storage as JSON objects with exactly one key naming
the variant, e.g. ``{"string": "Website"}``, ``{"i128": {"hi": 0, "lo": 5}}``
or ``{"map": [{"key": {"symbol": "title"}, "val": {...}}]}``. Those objects are
parsed once into the frozen dataclasses below and every consumer dispatches on
the class instead of probing keys.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

logger = logging.getLogger('escrow_app')

TWO_POW_64 = 1 << 64

KNOWN_TAGS = ("bool", "string", "symbol", "address", "u32", "i128", "vec", "map")


@dataclass(frozen=True)
class BoolValue:
    value: bool


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class SymbolValue:
    value: str


@dataclass(frozen=True)
class AddressValue:
    value: str


@dataclass(frozen=True)
class U32Value:
    value: int


@dataclass(frozen=True)
class I128Value:
    # Wire payload, either {"hi": .., "lo": ..} or a decimal string
    raw: Any


@dataclass(frozen=True)
class VecValue:
    items: Tuple["TaggedValue", ...]


@dataclass(frozen=True)
class MapEntry:
    key: Optional[str]
    val: "TaggedValue"


@dataclass(frozen=True)
class MapValue:
    entries: Tuple[MapEntry, ...]

    def get(self, key):
        for entry in self.entries:
            if entry.key == key:
                return entry.val
        return None


@dataclass(frozen=True)
class AbsentValue:
    pass


@dataclass(frozen=True)
class OpaqueValue:
    tag: str
    payload: Any


TaggedValue = Union[BoolValue, StringValue, SymbolValue, AddressValue, U32Value, I128Value, VecValue, MapValue,
                    AbsentValue, OpaqueValue]

# An escrow's storage tree: ordered (symbol, value) pairs
EscrowMap = Tuple[MapEntry, ...]

ABSENT = AbsentValue()


def parse_tagged_value(obj) -> TaggedValue:
    """Parse one JSON value object. Never raises; unknown shapes become AbsentValue or OpaqueValue."""
    if not isinstance(obj, dict) or not obj:
        return ABSENT

    if len(obj) != 1:
        logger.debug(f"Tagged value with {len(obj)} keys, expected exactly one: {list(obj)}")
        return ABSENT

    tag, payload = next(iter(obj.items()))

    if tag == "bool" and isinstance(payload, bool):
        return BoolValue(payload)
    if tag == "string" and isinstance(payload, str):
        return StringValue(payload)
    if tag == "symbol" and isinstance(payload, str):
        return SymbolValue(payload)
    if tag == "address" and isinstance(payload, str):
        return AddressValue(payload)
    if tag == "u32" and isinstance(payload, int) and not isinstance(payload, bool):
        return U32Value(payload)
    if tag == "i128":
        return I128Value(payload)
    if tag == "vec":
        if not isinstance(payload, list):
            return ABSENT
        return VecValue(tuple(parse_tagged_value(item) for item in payload))
    if tag == "map":
        if not isinstance(payload, list):
            return ABSENT
        return MapValue(parse_map_entries(payload))

    if tag in KNOWN_TAGS:
        # Known variant with a payload of the wrong type
        return ABSENT
    return OpaqueValue(tag, payload)


def parse_map_entries(entries) -> Tuple[MapEntry, ...]:
    parsed = []
    for entry in entries or ():
        if not isinstance(entry, dict):
            continue
        key = parse_tagged_value(entry.get("key"))
        parsed.append(MapEntry(key=key.value if isinstance(key, SymbolValue) else None,
                               val=parse_tagged_value(entry.get("val"))))
    return tuple(parsed)


def find_entry(data, key) -> Optional[TaggedValue]:
    """Value of the first entry named ``key`` in an EscrowMap or MapValue, or None."""
    if data is None:
        return None
    entries = data.entries if isinstance(data, MapValue) else data
    for entry in entries:
        if entry.key == key:
            return entry.val
    return None


def i128_to_int_flexible(value) -> Optional[int]:
    """
    Decode a 128-bit integer from either wire encoding.

    ``{"hi": h, "lo": l}`` combines as ``h * 2**64 + l``; a decimal string is
    parsed directly. Any other
    shape, or a part that does not parse, returns None.
    """
    if not isinstance(value, I128Value):
        return None

    raw = value.raw
    if isinstance(raw, dict):
        hi, lo = raw.get("hi"), raw.get("lo")
        if hi is None or lo is None:
            return None
        try:
            return int(str(hi)) * TWO_POW_64 + int(str(lo))
        except ValueError:
            return None

    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None

    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw

    return None


def to_json(value):
    """Render a TaggedValue back to plain JSON types, for the raw storage endpoint."""
    if isinstance(value, (BoolValue, StringValue, SymbolValue, AddressValue, U32Value)):
        return value.value
    if isinstance(value, I128Value):
        decoded = i128_to_int_flexible(value)
        return str(decoded) if decoded is not None else None
    if isinstance(value, VecValue):
        return [to_json(item) for item in value.items]
    if isinstance(value, MapValue):
        return escrow_map_to_json(value.entries)
    if isinstance(value, OpaqueValue):
        return {value.tag: value.payload}
    return None


def escrow_map_to_json(entries):
    return {entry.key: to_json(entry.val) for entry in entries if entry.key is not None}
