"""
Cordage parse results.

Overview
- Match(index, entity): one entry of the ordered match trace; index is the
  zero-based argv position, entity is the CommandSpec, OptionSpec or
  PositionalSpec the token matched, or UNMATCHED.
- ParseResult: per-invocation result. Borrows the command tree read-only and
  owns its bound-value storage; never mutated after the engine returns it.

Lookup
- result[argument] → bound value, else converted default, else an empty
  container (multi-value), False (boolean scalar) or None.
- argument in result → whether the argument was bound on the command line.
- result.value("--name") / result.value("<label>") → lookup by name.
"""
import functools
from types import MappingProxyType
from typing import NamedTuple, final

from .utils import mirror


@final
class UnmatchedType:
    """
    Sentinel entity recorded in the trace for tokens nothing claimed.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __repr__(self):
        return "UNMATCHED"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnmatchedType' is not an acceptable base type")


UNMATCHED = UnmatchedType()


class Match(NamedTuple):
    index: int
    entity: object


def _empty(argument):
    if argument.multi:
        return argument.container()
    if argument.boolean:
        return False
    return None


class ParseResult:
    """
    Ordered match trace plus typed values keyed by argument identity.
    """
    command = mirror("command")
    matches = mirror("matches")
    values = mirror("values")
    defaults = mirror("defaults")
    subcommand = mirror("subcommand")
    unmatched = mirror("unmatched")
    help_requested = mirror("help_requested")

    def __init__(self, command, /, matches=(), values=None, defaults=None, subcommand=None, unmatched=(), help_requested=False):
        self._command = command
        self._matches = tuple(matches)
        self._values = MappingProxyType(dict(values or {}))
        self._defaults = MappingProxyType(dict(defaults or {}))
        self._subcommand = subcommand
        self._unmatched = tuple(unmatched)
        self._help_requested = bool(help_requested)

    def _owns(self, argument):
        return any(argument is candidate for candidate in self._command.arguments)

    def __getitem__(self, argument):
        if not self._owns(argument):
            raise KeyError(argument)
        try:
            return self._values[argument]
        except KeyError:
            pass
        try:
            return self._defaults[argument]
        except KeyError:
            return _empty(argument)

    def get(self, argument, default=None, /):
        """Bound value or converted default of an argument, else `default`."""
        try:
            return self._values[argument]
        except (KeyError, TypeError):
            pass
        try:
            return self._defaults[argument]
        except (KeyError, TypeError):
            return default

    def __contains__(self, argument):
        try:
            return argument in self._values
        except TypeError:
            return False

    def value(self, name, /):
        """
        Look an argument up by option name or positional label and return
        result[argument].
        """
        if (argument := self._command.lookup(name)) is None:
            for positional in self._command.positionals:
                if positional.label == name:
                    argument = positional
                    break
            else:
                raise KeyError(name)
        return self[argument]

    @property
    def trace(self):
        """Matches of this scope followed by those of every nested subcommand."""
        trace = list(self._matches)
        if self._subcommand is not None:
            trace.extend(self._subcommand.trace)
        return tuple(trace)

    @property
    def leaf(self):
        """Deepest subcommand result (self when no subcommand matched)."""
        result = self
        while result._subcommand is not None:
            result = result._subcommand
        return result

    def __rich_repr__(self):
        yield "command", self._command.name
        yield "values", {
            getattr(argument, "name", None) or argument.label: value
            for argument, value in self._values.items()
        }
        if self._subcommand is not None:
            yield "subcommand", self._subcommand
        if self._unmatched:
            yield "unmatched", self._unmatched

    def __repr__(self):
        return "parse-result(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())


__all__ = (
    "Match",
    "ParseResult",
    "UNMATCHED",
    "UnmatchedType",
)
