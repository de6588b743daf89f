from dataclasses import fields, is_dataclass
from enum import Enum
from functools import lru_cache
from typing import Union, get_type_hints, get_origin, get_args
import types

from caseformat.errors import DomainError


def coerce_enum(enum_class, value, name):
    """
    Return ``value`` as a member of ``enum_class``.

    Members pass through, integer codes and string tokens are looked up.
    Anything else raises DomainError.
    """
    if isinstance(value, enum_class):
        return value
    if isinstance(value, str):
        try:
            return enum_class.from_token(value)
        except KeyError:
            pass
    elif isinstance(value, int) and not isinstance(value, bool):
        try:
            return enum_class(value)
        except ValueError:
            pass
    raise DomainError(f"{name} must be one of {enum_class.tokens()}, got {value!r}")


@lru_cache(maxsize=None)
def field_types(record_class):
    """
    Map field names of a record class to the declared type, in declaration order.
    ``X | None`` is unwrapped to ``(X, True)``, any other type to ``(type, False)``.
    """
    hints = get_type_hints(record_class)
    out = {}
    for f in fields(record_class):
        hint = hints[f.name]
        nullable = False
        if get_origin(hint) in (types.UnionType, Union):
            args = [a for a in get_args(hint) if a is not type(None)]
            nullable = len(args) != len(get_args(hint))
            hint = args[0]
        out[f.name] = (hint, nullable)
    return out


def optional_fields(record_class):
    """Names of all fields that belong to an optional column group."""
    return {name for group in record_class.optional_groups.values() for name in group}


def convert_class_instance_to_dictionary(instance: object, excluded_attributes=None):
    """
    Field-named dictionary of a record. None values are dropped, enums are
    written as their tokens and tuples as lists.
    """
    if excluded_attributes is None:
        excluded_attributes = []

    if not is_dataclass(instance):
        raise TypeError(f"expected a dataclass instance, got {type(instance).__name__}")

    dicty = {f.name: getattr(instance, f.name) for f in fields(instance)}

    # Filter out some attributes inputted into the function.
    dicty = {key: value for key, value in dicty.items() if key not in excluded_attributes}

    # Filter out None values, absent optional columns are not written
    dicty = {key: value for key, value in dicty.items() if value is not None}

    dicty = {key: (value.token if isinstance(value, Enum) else value) for key, value in dicty.items()}
    dicty = {key: (list(value) if isinstance(value, tuple) else value) for key, value in dicty.items()}

    return dicty
