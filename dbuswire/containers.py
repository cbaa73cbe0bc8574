"""Convenient constructors for container parameters."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Tuple, Union

from dbuswire.errors import MarshalError
from dbuswire.params import (
    Array,
    Base,
    ConversionError,
    ConversionErrorKind,
    Dict,
    Param,
    Struct,
    Variant,
    to_param,
)
from dbuswire.signature import (
    BaseType,
    SignatureError,
    SignatureErrorKind,
    SignatureType,
    parse_description,
)
from dbuswire.validation import ValidationError, validate_array, validate_dict

Entries = Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]]]


def _single_type(sig: str) -> SignatureType:
    """Parse ``sig``, which must describe exactly one complete type."""
    try:
        types = parse_description(sig)
    except SignatureError as err:
        raise MarshalError.from_validation(err) from None
    if len(types) != 1:
        raise MarshalError.from_validation(
            SignatureError(SignatureErrorKind.TOO_MANY_TYPES)
        )
    return types[0]


def _base_type(sig: str) -> BaseType:
    typ = _single_type(sig)
    if not isinstance(typ, BaseType):
        raise MarshalError.from_validation(
            SignatureError(SignatureErrorKind.SHOULD_BE_BASE_TYPE)
        )
    return typ


def _pairs(mapping: Entries) -> Iterable[Tuple[Any, Any]]:
    if isinstance(mapping, Mapping):
        return mapping.items()
    return mapping


def make_struct(elements: Iterable[Any]) -> Struct:
    """Build a struct from the given values."""
    return Struct(list(elements))


def make_variant(element: Any) -> Variant:
    """Wrap a value in a variant carrying its signature."""
    param = to_param(element)
    return Variant(param, param.sig())


def make_array(element_sig: str, elements: Iterable[Any]) -> Array:
    """Build an array whose element type is given as a signature string."""
    return make_array_with_sig(_single_type(element_sig), elements)


def make_array_with_sig(element_sig: SignatureType, elements: Iterable[Any]) -> Array:
    """Build an array with a parsed element type, checking every element."""
    array = Array(element_sig, list(elements))
    try:
        validate_array(array.values, array.element_sig)
    except ValidationError as err:
        raise MarshalError.from_validation(err) from None
    return array


def make_dict(key_sig: str, val_sig: str, mapping: Entries) -> Dict:
    """Build a dict whose key and value types are given as signature strings."""
    value_sig = _single_type(val_sig)
    key = _base_type(key_sig)
    return make_dict_with_sig(key, value_sig, mapping)


def make_dict_with_sig(
    key_sig: BaseType, value_sig: SignatureType, mapping: Entries
) -> Dict:
    """Build a dict with parsed key and value types, checking every entry."""
    result = Dict(key_sig, value_sig, dict(_pairs(mapping)))
    try:
        validate_dict(result.entries, result.key_sig, result.value_sig)
    except ValidationError as err:
        raise MarshalError.from_validation(err) from None
    return result


def array_from_params(params: Iterable[Any]) -> Array:
    """Build an array typed after its first element; it must not be empty."""
    values = [to_param(p) for p in params]
    if not values:
        raise ConversionError(ConversionErrorKind.EMPTY_ARRAY)
    array = Array(values[0].sig(), values)
    try:
        validate_array(array.values, array.element_sig)
    except ValidationError as err:
        raise ConversionError(ConversionErrorKind.VALIDATION, err) from None
    return array


def dict_from_mapping(mapping: Entries) -> Dict:
    """Build a dict typed after its first entry; it must not be empty."""
    entries: dict = {}
    for key, value in _pairs(mapping):
        key_param = to_param(key)
        if not isinstance(key_param, Base):
            raise ConversionError(
                ConversionErrorKind.VALIDATION,
                ValidationError.from_signature_error(
                    SignatureError(SignatureErrorKind.SHOULD_BE_BASE_TYPE)
                ),
            )
        entries[key_param] = to_param(value)
    if not entries:
        raise ConversionError(ConversionErrorKind.EMPTY_DICT)
    first_key, first_value = next(iter(entries.items()))
    value_param: Param = first_value
    result = Dict(first_key.sig(), value_param.sig(), entries)
    try:
        validate_dict(result.entries, result.key_sig, result.value_sig)
    except ValidationError as err:
        raise ConversionError(ConversionErrorKind.VALIDATION, err) from None
    return result