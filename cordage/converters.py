"""
Cordage type conversion registry.

Scope
- Converters: an explicit, copyable registry mapping declared types to
  string → value converters (and value → string formatters for round trips).
  Registries are plain objects handed to the engine through its configuration;
  nothing is process-wide.

Built-ins
- numbers: int, float, complex, decimal.Decimal, fractions.Fraction
- bool: "true"/"false" only (case-insensitive); anything else fails
- char: exactly one character (str subclass marker)
- text/bytes: str, bytes (utf-8)
- paths: pathlib.Path, pathlib.PurePath
- structured: uuid.UUID, re.Pattern, urllib.parse.SplitResult (URIs),
  codecs.CodecInfo (charsets), ipaddress.IPv4Address/IPv6Address
- time: datetime.date ("YYYY-MM-DD"), datetime.time ("HH:MM[:SS[.fff]]"),
  datetime.datetime (ISO-8601)

Lookup order
- registered type → enum.Enum subclass (case-sensitive member name) → the type
  itself when it is a concrete callable (a class acts as its own converter).
- Abstract classes and non-callables raise MissingConverterError.

Failures
- convert() wraps any converter exception into ConversionError naming the raw
  value, the type and, when given, the owning argument and the index within a
  multi-value list.
"""
import builtins
import codecs
import datetime
import decimal
import enum
import fractions
import inspect
import ipaddress
import pathlib
import re
import urllib.parse
import uuid

from .faults import ConversionError, MissingConverterError
from .utils import Unset, ordinal


class char(str):
    """
    Single-character string (marker type for one-character arguments).
    """
    __slots__ = ()

    def __new__(cls, value=""):
        if len(value) != 1:
            raise ValueError("expected a single character, got %r" % value)
        return super().__new__(cls, value)


def _boolean(value):
    match value.lower():
        case "true":
            return True
        case "false":
            return False
        case _:
            raise ValueError("expected 'true' or 'false', got %r" % value)


def _date(value):
    return datetime.datetime.strptime(value, "%Y-%m-%d").date()


def _time(value):
    for format in ("%H:%M", "%H:%M:%S", "%H:%M:%S.%f", "%H:%M:%S,%f"):
        try:
            return datetime.datetime.strptime(value, format).time()
        except ValueError:
            continue
    raise ValueError("expected 'HH:MM[:SS[.fff]]', got %r" % value)


def _uri(value):
    result = urllib.parse.urlsplit(value)
    result.port  # validates the port component (raises ValueError)
    return result


_BUILTINS = {
    str: (str, str),
    int: (int, str),
    float: (float, str),
    complex: (complex, str),
    decimal.Decimal: (decimal.Decimal, str),
    fractions.Fraction: (fractions.Fraction, str),
    bool: (_boolean, lambda value: str(value).lower()),
    char: (char, str),
    bytes: (lambda value: value.encode("utf-8"), lambda value: value.decode("utf-8")),
    pathlib.Path: (pathlib.Path, str),
    pathlib.PurePath: (pathlib.PurePath, str),
    uuid.UUID: (uuid.UUID, str),
    re.Pattern: (re.compile, lambda value: value.pattern),
    datetime.date: (_date, lambda value: value.isoformat()),
    datetime.time: (_time, lambda value: value.isoformat()),
    datetime.datetime: (datetime.datetime.fromisoformat, lambda value: value.isoformat()),
    ipaddress.IPv4Address: (ipaddress.IPv4Address, str),
    ipaddress.IPv6Address: (ipaddress.IPv6Address, str),
    urllib.parse.SplitResult: (_uri, lambda value: value.geturl()),
    codecs.CodecInfo: (codecs.lookup, lambda value: value.name),
}


def _typename(type):
    return getattr(type, "__name__", None) or repr(type)


class Converters:
    """
    Registry of converters keyed by declared type.

    Each instance starts from a copy of the built-ins; register() overrides
    entries for this registry only.

    Example
        >>> registry = Converters({int: lambda value: int(value, 0)})
        >>> registry.convert(int, "0x10")
        16
    """

    def __init__(self, mapping=Unset, /):
        self._converters = {type: pair[0] for type, pair in _BUILTINS.items()}
        self._formatters = {type: pair[1] for type, pair in _BUILTINS.items()}
        if mapping is not Unset:
            for type, converter in dict(mapping).items():
                self.register(type, converter)

    def register(self, type, converter, /, formatter=str):
        """
        Register (or override) the converter used for a declared type.

        Returns the registry itself so registrations can be chained.
        """
        if not callable(converter):
            raise TypeError("register() converter must be callable")
        if not callable(formatter):
            raise TypeError("register() formatter must be callable")
        self._converters[type] = converter
        self._formatters[type] = formatter
        return self

    def lookup(self, type, /):
        """
        Return the converter callable for a declared type.

        Raises
        - MissingConverterError: abstract classes and non-callable types.
        """
        try:
            return self._converters[type]
        except (KeyError, TypeError):
            pass

        if isinstance(type, builtins.type):
            if issubclass(type, enum.Enum):
                def enumeration(value):
                    try:
                        return type[value]
                    except KeyError:
                        raise ValueError("%r is not one of %s" % (
                            value, ", ".join(member.name for member in type)
                        )) from None
                return enumeration
            if not inspect.isabstract(type):
                return type
        elif callable(type):
            return type

        raise MissingConverterError(
            "no converter is registered for type %s" % _typename(type),
            title="missing converter",
            hint="register one with Converters.register(%s, converter)" % _typename(type),
            type=type,
        )

    def convert(self, type, value, /, argument=Unset, index=Unset, position=Unset):
        """
        Convert a raw string to the declared type.

        Context (all optional, used for the message only)
        - argument: the owning OptionSpec/PositionalSpec.
        - index: zero-based index within a multi-value list.
        - position: zero-based position of the token on the command line.

        Raises
        - ConversionError: when the converter rejects the value.
        - MissingConverterError: when no converter can be found.
        """
        converter = self.lookup(type)
        try:
            return converter(value)
        except Exception as exception:
            message = "invalid value %r" % value
            if argument is not Unset:
                message += " for %s" % argument.describe()
            if position is not Unset:
                message += " at %s position" % ordinal(position + 1)
            if index is not Unset:
                message += " (value index %d)" % index
            message += ": cannot convert to %s" % _typename(type)
            raise ConversionError(
                message,
                title="invalid value",
                hint=str(exception) or "use a valid %s" % _typename(type),
                value=value,
                type=type,
                argument=argument,
                index=index,
                position=position,
                exception=exception,
            ) from exception

    def format(self, type, value, /):
        """
        Render a typed value back to the string form its converter accepts.
        """
        try:
            formatter = self._formatters[type]
        except (KeyError, TypeError):
            pass
        else:
            return formatter(value)
        if isinstance(value, enum.Enum):
            return value.name
        return str(value)

    def copy(self):
        clone = Converters()
        clone._converters = dict(self._converters)
        clone._formatters = dict(self._formatters)
        return clone

    def __contains__(self, type):
        try:
            return type in self._converters
        except TypeError:
            return False


__all__ = (
    "Converters",
    "char",
)
