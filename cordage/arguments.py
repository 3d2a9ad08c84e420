r"""
Cordage argument specifications.

Overview
- Specs (a closed union, Argument = OptionSpec | PositionalSpec)
  • OptionSpec: named argument with one or more aliases (e.g., -o/--output).
  • PositionalSpec: argument bound by slot index rather than by name.
  An argument is either an option (names, no index) or a positional (index,
  no names); the two never mix, and the engine matches on the union
  exhaustively.

- Introspection & representation
  • ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes
    selected fields via read-only properties declared in __introspectable__.

Metadata (sanitized on construction, immutable afterwards)
- Shared
  • type: declared type. Scalars are any class or converter callable;
    containers are list/tuple/set/frozenset/dict (or their abstract
    counterparts), bare or parameterised (list[int], dict[str, float]).
  • element: element type of a container (a (key, value) pair for dict).
  • arity: Range | int | str ("0..1", "1..*", ...), defaulted from the type.
    Scalars never take more than one value.
  • required: bool; options default to False, positionals to arity.min > 0.
  • default: Unset | str, converted only when the argument is left unbound.
  • split: Unset | str | re.Pattern, splits every raw value before conversion.
  • label: Unset | str, shown in messages (defaults to "<typename>").
  • help: bool, marks the escape hatch that disables required validation.
  • descr/hidden: carried for external help renderers.
- OptionSpec only
  • names: ordered, duplicate-free, whitespace-free strings (at least one).
  • fallback: Unset | str, bound when an optional value is absent.
- PositionalSpec only
  • index: Unset | Range | int | str; the owning command assigns the next free
    slot when left unset.

Ownership
- An argument is owned by exactly one command; attaching it to a second one
  raises ValueError.

Quick example:
    >>> from cordage.arguments import OptionSpec, PositionalSpec
    >>> verbose = OptionSpec("-v", "--verbose", type=bool)
    >>> threads = OptionSpec("-t", "--threads", type=int, default="1")
    >>> files = PositionalSpec("FILE", type=list[str], arity="1..*")
"""
import collections.abc
import functools
import operator
import re
import typing
import weakref

from .arities import Range
from .utils import *


# Container classes an argument may declare, mapped onto the concrete
# container the engine materializes.
_CONTAINERS = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    dict: dict,
    collections.abc.Iterable: list,
    collections.abc.Collection: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
    collections.abc.Mapping: dict,
    collections.abc.MutableMapping: dict,
}


class ArgumentType(type):
    """
    Metaclass that turns specs into immutable, introspectable records.

    Responsibilities
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.
    - Provide stable, readable __repr__/__rich_repr__ implementations.

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


def _typename(object):
    return getattr(object, "__name__", None) or type(object).__name__


def _sanitize_type(cls, metadata, /):
    """
    Internal: resolve declared type, container and element type.

    - A container class (or alias such as list[int]) makes the argument
      multi-valued; its element type comes from 'element', the alias
      arguments, or str.
    - dict containers carry a (key, value) element pair.
    - Any other value must be callable (a class or a converter function).
    """
    type, element = metadata["type"], metadata["element"]
    origin = typing.get_origin(type) or type
    parameters = typing.get_args(type)

    try:
        container = _CONTAINERS.get(origin)
    except TypeError:  # unhashable
        container = None

    if container is None:
        if not callable(type):
            raise TypeError(f"{cls.__typename__} 'type' must be a class or a callable")
        if element is not Unset:
            raise TypeError(f"{cls.__typename__} 'element' is only allowed for container types")
        metadata["element"] = None
    elif container is dict:
        if element is Unset:
            element = parameters if len(parameters) == 2 else (str, str)
        if not isinstance(element, tuple) or len(element) != 2 or not all(map(callable, element)):
            raise TypeError(f"{cls.__typename__} dict 'element' must be a (key, value) pair of types")
        metadata["element"] = tuple(element)
    else:
        if element is Unset:
            element = parameters[0] if parameters else str
        if not callable(element):
            raise TypeError(f"{cls.__typename__} 'element' must be a class or a callable")
        metadata["element"] = element

    metadata["container"] = container
    metadata["multi"] = container is not None


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate metadata shared by options and positionals.

    Mutates the given metadata dict in place. Expects _sanitize_type() to have
    run first (arity defaults depend on the resolved container).
    """
    option = issubclass(cls, OptionSpec)

    # arity
    if (arity := metadata["arity"]) is Unset:
        arity = Range.default(metadata["type"], multi=metadata["multi"], option=option)
    else:
        arity = Range.parse(arity)
    if not metadata["multi"] and (arity.variable or arity.max > 1):
        raise ValueError(f"scalar {cls.__typename__} 'arity' cannot exceed one value (got {arity})")
    metadata["arity"] = arity

    # required
    if (required := metadata["required"]) is Unset:
        required = not option and arity.min > 0
    metadata["required"] = bool(required)

    # default
    if not isinstance(default := metadata["default"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'default' must be a string")
    metadata["default"] = coalesce(default)

    # split
    if not isinstance(split := metadata["split"], str | re.Pattern | Unset):
        raise TypeError(f"{cls.__typename__} 'split' must be a string or a compiled pattern")
    if isinstance(split, str):
        if not split:
            raise ValueError(f"{cls.__typename__} 'split' cannot be empty")
        split = re.compile(split)
    metadata["split"] = coalesce(split)

    # label
    if not isinstance(label := metadata["label"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'label' must be a string")
    elif isinstance(label, str) and not (label := label.strip()):
        raise ValueError(f"{cls.__typename__} 'label' cannot be empty")
    if label is Unset:
        if metadata["container"] is dict:
            label = "<%s=%s>" % tuple(map(_typename, metadata["element"]))
        elif metadata["multi"]:
            label = "<%s>" % _typename(metadata["element"])
        else:
            label = "<%s>" % _typename(metadata["type"])
    metadata["label"] = label

    # descr
    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _sanitize_names(cls, metadata, /):
    """
    Internal: validate option names (ordered, unique, whitespace-free).

    The literal end-of-options marker "--" is reserved and cannot be a name.
    """
    names = []
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not name:
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(r"\S+", name) or name == "--":
            raise ValueError(f"{cls.__typename__} name {name!r} is not a valid option name")
        elif name in names:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates ({name!r})")
        names.append(name)

    metadata["names"] = tuple(names)

    if not isinstance(fallback := metadata["fallback"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'fallback' must be a string")
    metadata["fallback"] = coalesce(fallback)


class _Owned:
    """
    Ownership plumbing shared by both argument kinds (weak back-reference).
    """
    _owner = None

    @property
    def owner(self):
        """The owning CommandSpec, or None while the argument is unattached."""
        return self._owner() if self._owner is not None else None

    @property
    def boolean(self):
        """Whether this is a scalar boolean (arity 0 means “named → True”)."""
        return not self._multi and self._type is bool

    def _attach(self, command):
        if (owner := self.owner) is not None and owner is not command:
            raise ValueError(f"{self.describe()} is already owned by command {owner.name!r}")
        self._owner = weakref.ref(command)


class OptionSpec[_T](_Owned, metaclass=ArgumentType):
    """
    Named argument specification.

    Names are matched exactly, via abbreviation or, for single-character
    names ("-x"), inside short-option clusters. Boolean scalars default to
    arity 0 and bind True when named.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes.
    """

    __introspectable__ = (
        "names",
        "type",
        "element",
        "container",
        "multi",
        "arity",
        "required",
        "default",
        "fallback",
        "split",
        "label",
        "help",
        "descr",
        "hidden",
    )

    __displayable__ = (
        "names",
        "type",
        "arity",
        "required",
        "default",
    )

    def __init__(
            self,
            *names,
            type=str,
            element=Unset,
            arity=Unset,
            required=Unset,
            default=Unset,
            fallback=Unset,
            split=Unset,
            label=Unset,
            help=False,
            descr=Unset,
            hidden=False,
    ):
        metadata = {
            "names": names,
            "type": type,
            "element": element,
            "arity": arity,
            "required": required,
            "default": default,
            "fallback": fallback,
            "split": split,
            "label": label,
            "help": bool(help),
            "descr": descr,
            "hidden": bool(hidden),
        }
        _sanitize_names(self.__class__, metadata)
        _sanitize_type(self.__class__, metadata)
        _sanitize_metadata(self.__class__, metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def name(self):
        """The longest alias, used to refer to this option in messages."""
        return max(self._names, key=len)

    def describe(self):
        return "option %r" % self.name


class PositionalSpec[_T](_Owned, metaclass=ArgumentType):
    """
    Positional argument specification (bound by slot index).

    The index selects which raw positional slots bind here; when left unset,
    the owning command assigns the next free slot (n for scalars, n..* for
    containers).
    """

    __introspectable__ = (
        "index",
        "type",
        "element",
        "container",
        "multi",
        "arity",
        "required",
        "default",
        "split",
        "label",
        "help",
        "descr",
        "hidden",
    )

    __displayable__ = (
        "label",
        "index",
        "type",
        "arity",
        "required",
        "default",
    )

    def __init__(
            self,
            label=Unset,
            /,
            *,
            index=Unset,
            type=str,
            element=Unset,
            arity=Unset,
            required=Unset,
            default=Unset,
            split=Unset,
            help=False,
            descr=Unset,
            hidden=False,
    ):
        metadata = {
            "index": index if index is Unset else Range.parse(index),
            "type": type,
            "element": element,
            "arity": arity,
            "required": required,
            "default": default,
            "split": split,
            "label": label,
            "help": bool(help),
            "descr": descr,
            "hidden": bool(hidden),
        }
        _sanitize_type(self.__class__, metadata)
        _sanitize_metadata(self.__class__, metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def describe(self):
        return "positional parameter at index %s (%s)" % (coalesce(self._index, "?"), self._label)

    def _assign(self, index):
        """Assign a slot range once, while the index is still unset."""
        if self._index is Unset:
            self._index = index


Argument = OptionSpec | PositionalSpec
"""
Closed union of argument specification kinds.
"""


__all__ = (
    # Public API surface for consumers of cordage.arguments.
    "OptionSpec",
    "PositionalSpec",
    "Argument",
)

# Remove the internal metaclass from the module namespace to avoid accidental
# exposure in docs, autocompletion, or star-imports. Not part of the public API.
del ArgumentType
