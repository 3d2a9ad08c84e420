"""
Cordage command specifications and builder.

Overview
- CommandSpec: the addressable unit of parsing. An ordered collection of
  options and positionals plus an ordered map of subcommand name/alias →
  nested CommandSpec. Built once, immutable afterwards.
- CommandBuilder: fluent, single-use builder producing the same immutable
  tree from any host (metadata scanners, config loaders, plain code).

Construction-time checks (DefinitionError, raised eagerly)
- DuplicateOptionError: two option names collide within one command.
- DuplicateCommandError: two subcommands claim the same name or alias.
- IndexGapError: positional indices leave a gap (they must cover 0..k).
- ValueError: more than one help argument, a subcommand that already has a
  parent, or an argument already owned by another command.

Tree
- Parents own their children; children keep a weak back-reference (.parent).
- root/path walk that chain for routes in messages.

Quick example:
    >>> from cordage import CommandBuilder
    >>> remote = CommandBuilder("remote").option("-v", "--verbose", type=bool).build()
    >>> git = (
    ...     CommandBuilder("git")
    ...     .option("--git-dir")
    ...     .subcommand(remote)
    ...     .build()
    ... )
    >>> git.subcommands["remote"].parent is git
    True
"""
import functools
import logging
import operator
import re
import weakref
from types import MappingProxyType

from .arguments import OptionSpec, PositionalSpec
from .arities import Range
from .faults import DuplicateCommandError, DuplicateOptionError, IndexGapError
from .utils import *

logger = logging.getLogger(__name__)


class CommandType(type):
    """
    Metaclass giving command specs read-only properties and stable reprs.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens).
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_names(cls, metadata, /):
    """
    Internal: validate the command name, its aliases and the separator.
    """
    names = []
    for name in (metadata["name"], *metadata["aliases"]):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} name and aliases must be strings")
        elif not re.fullmatch(r"\S+", name):
            raise ValueError(f"{cls.__typename__} name {name!r} must be a non-empty string without spaces")
        elif name in names:
            raise ValueError(f"{cls.__typename__} aliases cannot repeat a name ({name!r})")
        names.append(name)
    metadata["aliases"] = tuple(names[1:])

    if not isinstance(separator := metadata["separator"], str):
        raise TypeError(f"{cls.__typename__} 'separator' must be a string")
    elif not re.fullmatch(r"\S+", separator):
        raise ValueError(f"{cls.__typename__} 'separator' must be a non-empty string without spaces")

    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    metadata["descr"] = coalesce(descr)


def _register_options(self, options):
    """
    Build the exact-name lookup table, rejecting any name collision.
    """
    for option in options:
        if not isinstance(option, OptionSpec):
            raise TypeError(f"{type(self).__typename__} options must be option specs (got {option!r})")
        for name in option.names:
            if (other := self._lookup.setdefault(name, option)) is not option:
                raise DuplicateOptionError(
                    "option name %r of command %r is declared by both %s and %s" % (
                        name, self._name, other.describe(), option.describe()
                    ),
                    title="duplicate option",
                    hint="rename one of the options or drop the alias %r" % name,
                    name=name,
                    arguments=(other, option),
                    command=self,
                )
        if option in self._options:
            raise DuplicateOptionError(
                "%s is registered twice in command %r" % (option.describe(), self._name),
                title="duplicate option",
                hint="register each option once",
                name=option.name,
                arguments=(option,),
                command=self,
            )
        self._options.append(option)
    self._folded = {name.casefold(): option for name, option in self._lookup.items()}


def _register_positionals(self, positionals):
    """
    Assign missing indices (next free slot) and check slot coverage.
    """
    slot = 0
    for positional in positionals:
        if not isinstance(positional, PositionalSpec):
            raise TypeError(f"{type(self).__typename__} positionals must be positional specs (got {positional!r})")
        if positional in self._positionals:
            raise ValueError(f"{positional.describe()} is registered twice in command {self._name!r}")
        if positional.index is Unset:
            if slot is None:
                raise ValueError(
                    f"cannot assign an index to {positional.describe()} after a variable positional; "
                    "declare 'index' explicitly"
                )
            if not positional.multi:
                positional._assign(Range(slot))
            elif positional.arity.variable:
                positional._assign(Range(slot, None))
            else:
                positional._assign(Range(slot, slot + max(positional.arity.max, 1) - 1))
        index = positional.index
        slot = None if index.variable else index.max + 1
        self._positionals.append(positional)

    covered = -1
    for positional in sorted(self._positionals, key=lambda positional: positional.index.min):
        if positional.index.min > covered + 1:
            raise IndexGapError(
                "command %r declares no positional parameter for index %d" % (self._name, covered + 1),
                title="positional index gap",
                hint="declare a positional with index %d or shift %s" % (covered + 1, positional.describe()),
                index=covered + 1,
                command=self,
            )
        covered = float("inf") if positional.index.variable else max(covered, positional.index.max)


def _register_subcommands(self, subcommands):
    """
    Map every subcommand name and alias to its node and adopt the node.
    """
    for child in subcommands:
        if isinstance(child, CommandBuilder):
            child = child.build()
        if not isinstance(child, CommandSpec):
            raise TypeError(f"{type(self).__typename__} subcommands must be command specs (got {child!r})")
        for name in child.names:
            if (other := self._subcommands.setdefault(name, child)) is not child:
                raise DuplicateCommandError(
                    "subcommand name %r of command %r is claimed by both %r and %r" % (
                        name, self._name, other.name, child.name
                    ),
                    title="duplicate command",
                    hint="rename one of the subcommands or drop the alias %r" % name,
                    name=name,
                    command=self,
                )
        _attach_to_parent(child, self)


def _attach_to_parent(self, parent):
    """
    Link a subcommand to its parent; a node can only have one parent.
    """
    if (current := self.parent) is not None and current is not parent:
        raise ValueError(f"{type(self).__typename__} {self.name!r} already belongs to {current.name!r}")
    self._parent = weakref.ref(parent)


class CommandSpec(metaclass=CommandType):
    """
    Immutable command model: options, positionals and subcommands.

    Properties
    - name, aliases, separator, allow_unmatched, descr: metadata.
    - options, positionals: ordered tuples of argument specs.
    - subcommands: read-only mapping of every subcommand name and alias.
    - parent: enclosing CommandSpec (weak reference) or None for the root.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "options",
        "positionals",
        "subcommands",
        "separator",
        "allow_unmatched",
        "descr",
    )

    __displayable__ = (
        "name",
        "aliases",
        "options",
        "positionals",
        "subcommands",
    )

    _parent = None

    def __init__(
            self,
            name,
            /,
            *aliases,
            options=(),
            positionals=(),
            subcommands=(),
            separator="=",
            allow_unmatched=False,
            descr=Unset,
    ):
        metadata = {
            "name": name,
            "aliases": aliases,
            "separator": separator,
            "allow_unmatched": bool(allow_unmatched),
            "descr": descr,
        }
        _sanitize_names(type(self), metadata)
        for key, object in metadata.items():
            setattr(self, "_" + key, object)

        self._options = []
        self._positionals = []
        self._subcommands = {}
        self._lookup = {}

        _register_options(self, options)
        _register_positionals(self, positionals)

        if len(helpers := [argument for argument in self.arguments if argument.help]) > 1:
            raise ValueError(
                f"command {self._name!r} can mark only one argument as 'help' "
                f"(got {', '.join(argument.describe() for argument in helpers)})"
            )

        _register_subcommands(self, subcommands)

        for argument in self.arguments:
            argument._attach(self)

        logger.debug(
            "built command %r (%d options, %d positionals, %d subcommands)",
            self._name, len(self._options), len(self._positionals), len(self.children)
        )

    @property
    def parent(self):
        return self._parent() if self._parent is not None else None

    @property
    def root(self):
        """
        Return the topmost command in the current command hierarchy.
        """
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this command as a tuple.
        """
        path = [command := self]
        while command.parent:
            path.append(command := command.parent)
        return tuple(reversed(path))

    @property
    def route(self):
        """Space-joined names from the root, as typed on a command line."""
        return " ".join(command.name for command in self.path)

    @property
    def names(self):
        return (self._name, *self._aliases)

    @property
    def arguments(self):
        return (*self._options, *self._positionals)

    @property
    def children(self):
        """Distinct subcommands in registration order (aliases folded)."""
        return tuple({id(child): child for child in self._subcommands.values()}.values())

    @property
    def switches(self):
        """Read-only mapping of every option name to its OptionSpec."""
        return MappingProxyType(self._lookup)

    @property
    def shorts(self):
        """Single-character option names ("-x") keyed by their character."""
        return {name[1]: option for name, option in self._lookup.items() if len(name) == 2 and name[0] == "-" != name[1]}

    def lookup(self, name, /, case_insensitive=False):
        """Return the option registered under an exact name, or None."""
        if case_insensitive:
            return self._lookup.get(name) or self._folded.get(name.casefold())
        return self._lookup.get(name)


class CommandBuilder:
    """
    Fluent, single-use builder for CommandSpec trees.

    Every mutator returns the builder; build() freezes it and returns the
    immutable CommandSpec. Nested builders passed to subcommand() are built
    on the fly.
    """

    def __init__(self, name, /, *aliases, separator="=", allow_unmatched=False, descr=Unset):
        self._name = name
        self._aliases = list(aliases)
        self._separator = separator
        self._allow_unmatched = allow_unmatched
        self._descr = descr
        self._options = []
        self._positionals = []
        self._subcommands = []
        self._built = Unset

    def _ensure(self):
        if self._built is not Unset:
            raise RuntimeError(f"command builder {self._name!r} was already built")

    def option(self, *names, **metadata):
        return self.add(OptionSpec(*names, **metadata))

    def positional(self, label=Unset, /, **metadata):
        return self.add(PositionalSpec(label, **metadata))

    def add(self, argument, /):
        self._ensure()
        match argument:
            case OptionSpec():
                self._options.append(argument)
            case PositionalSpec():
                self._positionals.append(argument)
            case _:
                raise TypeError(f"add() argument must be an option or positional spec (got {argument!r})")
        return self

    def subcommand(self, child, /):
        self._ensure()
        if not isinstance(child, CommandSpec | CommandBuilder):
            raise TypeError(f"subcommand() argument must be a command spec or builder (got {child!r})")
        self._subcommands.append(child)
        return self

    def alias(self, *names):
        self._ensure()
        self._aliases.extend(names)
        return self

    def build(self):
        """Freeze the builder and return the immutable CommandSpec."""
        self._ensure()
        self._built = CommandSpec(
            self._name,
            *self._aliases,
            options=self._options,
            positionals=self._positionals,
            subcommands=self._subcommands,
            separator=self._separator,
            allow_unmatched=self._allow_unmatched,
            descr=self._descr,
        )
        return self._built


__all__ = (
    # Public API surface for consumers of cordage.commands.
    "CommandSpec",
    "CommandBuilder",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del CommandType
