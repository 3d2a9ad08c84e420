"""
Cordage parse engine.

Scope
- parse(command, argv, config): the sole entry point. Walks the tokens left to
  right against a CommandSpec tree and returns a ParseResult, or raises a
  ParseError subclass. Nothing is committed on failure.
- Parser(config): the same operation bound to a Configuration.
- invoke(command, argv, config): shell flavour of parse(); faults are rendered
  through rich and the process exits with the fault status.
- Configuration: immutable knobs (converter registry, abbreviation, case
  sensitivity, overwrite policy, quote trimming) passed into every parse.

Token model
- Tokens is a cursor over the immutable argv tuple plus a small lookahead
  buffer of synthetic tokens (attached values "-f=x"/"-fx" and cluster remainders).
  Synthetic tokens are always values, never names.
- Subcommand dispatch hands the same cursor to a fresh interpreter; all
  per-parse state (bound values, matches, help flag) lives in that
  interpreter, never on the specs or the parser.

Algorithm (per command scope, until the tokens run out)
1. "--" ends option scanning: everything left becomes positional slots.
2. A subcommand name (exact, or abbreviated) validates the current scope and
   recurses; the parent stops collecting.
3. Options: "name<sep>value" splits into name + attached value; exact or
   abbreviated names are standalone options; "-abc" style tokens whose second
   character is a short option are clusters.
4. Anything else starts a positional run, which stops at the next "--",
   option or subcommand. Slots are numbered continuously across runs.
5. Validation (skipped when a help argument matched in this scope), default
   conversion and container materialization.

Tracing
- Every decision is logged at DEBUG on the "cordage.parsers" logger.
"""
import collections
import difflib
import logging
import re
import shlex
import sys
from collections.abc import Iterable

from . import abbreviations
from .arguments import OptionSpec, PositionalSpec
from .arities import Range
from .commands import CommandSpec
from .converters import Converters
from .faults import *
from .results import UNMATCHED, Match, ParseResult
from .utils import *

logger = logging.getLogger(__name__)


class Configuration:
    """
    Immutable parse configuration, safe to share between threads.

    Fields
    - converters: Converters registry (a fresh copy of the built-ins by default;
      a plain mapping of type → converter is accepted too).
    - abbreviate_options / abbreviate_subcommands: resolve unique chunk-prefix
      abbreviations of option / subcommand names.
    - case_insensitive: match option and subcommand names ignoring case.
    - overwrites: scalar options use last-wins when True; otherwise naming a
      scalar twice raises OverwrittenOptionError.
    - trim_quotes: strip one pair of surrounding double quotes from values.
    """
    converters = mirror("converters")
    abbreviate_options = mirror("abbreviate_options")
    abbreviate_subcommands = mirror("abbreviate_subcommands")
    case_insensitive = mirror("case_insensitive")
    overwrites = mirror("overwrites")
    trim_quotes = mirror("trim_quotes")

    def __init__(
            self,
            converters=Unset,
            /,
            *,
            abbreviate_options=True,
            abbreviate_subcommands=True,
            case_insensitive=False,
            overwrites=True,
            trim_quotes=True,
    ):
        if converters is Unset:
            converters = Converters()
        elif not isinstance(converters, Converters):
            converters = Converters(converters)
        self._converters = converters
        self._abbreviate_options = bool(abbreviate_options)
        self._abbreviate_subcommands = bool(abbreviate_subcommands)
        self._case_insensitive = bool(case_insensitive)
        self._overwrites = bool(overwrites)
        self._trim_quotes = bool(trim_quotes)

    def __replace__(self, *unused, **overrides):
        if unused:
            raise TypeError("replace() takes keyword arguments only")
        fields = {
            "abbreviate_options": self._abbreviate_options,
            "abbreviate_subcommands": self._abbreviate_subcommands,
            "case_insensitive": self._case_insensitive,
            "overwrites": self._overwrites,
            "trim_quotes": self._trim_quotes,
        } | overrides
        return type(self)(fields.pop("converters", self._converters), **fields)

    def replace(self, **overrides):
        """Return a copy with the given fields changed."""
        return self.__replace__(**overrides)

    def __repr__(self):
        return "configuration(%s)" % ", ".join("%s=%r" % pair for pair in (
            ("abbreviate_options", self._abbreviate_options),
            ("abbreviate_subcommands", self._abbreviate_subcommands),
            ("case_insensitive", self._case_insensitive),
            ("overwrites", self._overwrites),
            ("trim_quotes", self._trim_quotes),
        ))


class Tokens:
    """
    Cursor over an immutable token tuple with a lookahead buffer for
    synthetic tokens. Every token remembers its origin (argv position).
    """

    def __init__(self, argv, /):
        self._argv = tuple(argv)
        self._cursor = 0
        self._buffer = collections.deque()

    def __bool__(self):
        return bool(self._buffer) or self._cursor < len(self._argv)

    def __len__(self):
        return len(self._buffer) + len(self._argv) - self._cursor

    @property
    def synthetic(self):
        """Whether the next token was pushed back by the engine."""
        return bool(self._buffer)

    @property
    def origin(self):
        """Argv position of the next token."""
        return self._buffer[0][1] if self._buffer else self._cursor

    def peek(self):
        if self._buffer:
            return self._buffer[0][0]
        try:
            return self._argv[self._cursor]
        except IndexError:
            raise IndexError("peek from an exhausted token stream") from None

    def pop(self):
        if self._buffer:
            return self._buffer.popleft()[0]
        token = self.peek()
        self._cursor += 1
        return token

    def push(self, *tokens, origin):
        """Push synthetic tokens so that tokens[0] comes out next."""
        self._buffer.extendleft((token, origin) for token in reversed(tokens))


def _unquote(value):
    if len(value) > 1 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _where(origin):
    return "" if origin is Unset else " at %s position" % ordinal(origin + 1)


def _looks_like_option(token):
    return re.match(r"-{1,2}[^\W\d]", token) is not None


class _Interpreter:
    """
    Per-call, per-command parse state. Discarded once run() returns.
    """

    def __init__(self, config, command, tokens):
        self.config = config
        self.command = command
        self.tokens = tokens
        self.matches = []
        self.values = {}
        self.buckets = {}
        self.counts = collections.Counter()
        self.unmatched = []
        self.position = 0
        self.help = False

    # --- name resolution ---------------------------------------------------

    def _resolve(self, table, token, abbreviate):
        """
        exact → case-folded → abbreviated lookup of token in a name table.

        Raises AmbiguousAbbreviationError when several distinct entities match.
        """
        if (entity := table.get(token)) is not None:
            return entity
        if self.config.case_insensitive:
            for name, entity in table.items():
                if name.casefold() == token.casefold():
                    return entity
        if not abbreviate or not table:
            return None
        try:
            name = abbreviations.match(table.keys(), token, self.config.case_insensitive)
        except AmbiguousAbbreviationError as error:
            entities = {id(table[name]): table[name] for name in error.options["candidates"]}
            if len(entities) == 1:
                return next(iter(entities.values()))
            raise error.__replace__(command=self.command, index=self.tokens.origin) from None
        return table.get(name)

    def _option(self, token, abbreviate=True):
        return self._resolve(self.command.switches, token, abbreviate and self.config.abbreviate_options)

    def _subcommand(self, token, abbreviate=True):
        return self._resolve(self.command.subcommands, token, abbreviate and self.config.abbreviate_subcommands)

    def _short(self, character):
        shorts = self.command.shorts
        if (option := shorts.get(character)) is None and self.config.case_insensitive:
            option = shorts.get(character.swapcase())
        return option

    def _recognizable(self, token, abbreviate=True):
        """
        Whether a token stops value collection: "--", a subcommand, an option
        (exact, abbreviated, with an attached value, or a cluster).

        abbreviate=False only recognizes subcommands by their full names.
        """
        if token == "--":
            return True
        try:
            if self._subcommand(token, abbreviate) is not None or self._option(token) is not None:
                return True
            key, separator, _ = token.partition(self.command.separator)
            if separator and key and self._option(key) is not None:
                return True
        except AmbiguousAbbreviationError:
            return True
        return len(token) > 2 and token[0] == "-" and self._short(token[1]) is not None

    # --- main loop ---------------------------------------------------------

    def run(self):
        logger.debug("parsing %d token(s) for command %r", len(self.tokens), self.command.name)
        while self.tokens:
            if self.tokens.synthetic:
                self._positionals()
                continue

            token = self.tokens.peek()
            origin = self.tokens.origin
            logger.debug("processing token %r at %d", token, origin)

            if token == "--":
                self.tokens.pop()
                logger.debug("found end-of-options delimiter at %d, the rest is positional", origin)
                self._positionals(literal=True)
                break

            if (child := self._subcommand(token)) is not None:
                self.tokens.pop()
                return self._dispatch(child, origin)

            if not self._options(token, origin):
                self._positionals()

        return self._finish()

    def _dispatch(self, child, origin):
        logger.debug("found subcommand %r at %d", child.name, origin)
        self._validate()
        self.matches.append(Match(origin, child))
        nested = _Interpreter(self.config, child, self.tokens).run()
        return self._finish(subcommand=nested, validated=True)

    def _options(self, token, origin):
        """
        Handle a token that names an option (steps 3a-3c). Returns False when
        the token is not an option at all.
        """
        option, attached = None, Unset

        key, separator, value = token.partition(self.command.separator)
        if separator and key and self._option(token, abbreviate=False) is None:
            if (option := self._option(key)) is not None:
                attached = value

        if option is None:
            option = self._option(token)

        if option is not None:
            self.tokens.pop()
            if attached is not Unset:
                logger.debug("split %r into option %r and attached value %r", token, key, attached)
                self.tokens.push(attached, origin=origin)
            logger.debug("found %s at %d", option.describe(), origin)
            self._apply(option, origin, attached=attached is not Unset)
            return True

        if len(token) > 2 and token[0] == "-" and self._short(token[1]) is not None:
            self.tokens.pop()
            self._cluster(token, origin)
            return True

        return False

    def _cluster(self, token, origin):
        """
        Peel single-character options off a "-abc" token, one at a time.

        A non-empty remainder is offered to the peeled option as an attached
        value; when the option does not take it, the remainder goes back into
        the loop. A remainder that names no short option becomes a positional
        slot, or is rejected when the command declares no positionals.
        """
        logger.debug("splitting cluster %r at %d", token, origin)
        separator = self.command.separator
        remainder = token[1:]
        while remainder:
            if (option := self._short(remainder[0])) is None:
                break
            remainder = remainder[1:]
            attached = remainder.startswith(separator)
            if attached:
                remainder = remainder[len(separator):]
            logger.debug("found clustered %s, remainder %r", option.describe(), remainder)
            if not remainder and not attached:
                self._apply(option, origin)
                return
            if not attached and option.arity.min == 0 and self._short(remainder[0]) is not None:
                # an optional value never swallows the rest of the cluster
                self._apply(option, origin, bare=True)
                continue
            self.tokens.push(remainder, origin=origin)
            if self._apply(option, origin, attached=attached):
                return
            remainder = self.tokens.pop()
        else:
            return

        if self.command.positionals:
            logger.debug("cluster remainder %r becomes a positional slot", remainder)
            self.tokens.push(remainder, origin=origin)
        else:
            self.matches.append(self._unmatched("-" + remainder, origin))

    # --- value consumption -------------------------------------------------

    def _apply(self, option, origin, attached=False, bare=False):
        """
        Consume and bind the values of a matched option. Returns the number
        of tokens taken from the stream.

        attached: a value follows the name inside the same token (min 1).
        bare: the option takes no value at all (cluster member).
        """
        if bare:
            arity = Range(0)
        elif attached:
            arity = option.arity.at_least(1)
        else:
            arity = option.arity
        self.matches.append(Match(origin, option))
        if option.help:
            logger.debug("%s disables required validation for %r", option.describe(), self.command.name)
            self.help = True

        if option.boolean and arity.min == 0:
            if arity.max > 0 and self.tokens and self.tokens.peek().casefold() in ("true", "false"):
                if self.tokens.synthetic or not self._recognizable(self.tokens.peek()):
                    value = self._convert(option, self.tokens.pop(), origin)
                    self._bind(option, value, origin)
                    return 1
            self._bind(option, True, origin)
            return 0

        raws, consumed = self._consume(option, arity, origin)
        if option.multi:
            self._accumulate(option, raws, origin)
        elif raws:
            self._bind(option, self._convert(option, raws[0], origin), origin)
        elif option.fallback is not None:
            self._bind(option, self._convert(option, option.fallback, origin), origin)
        else:
            self._bind(option, None, origin)
        return consumed

    def _split(self, argument, raw):
        if self.config.trim_quotes:
            raw = _unquote(raw)
        if argument.multi and argument.split is not None:
            return argument.split.split(raw)
        return [raw]

    def _consume(self, option, arity, origin):
        """
        Take arity.min mandatory values, then more while arity admits them and
        the next token is not a recognizable name. Arity counts raw tokens;
        a split pattern may expand each of them into several values.
        """
        values = []
        consumed = 0

        def available(abbreviate=True):
            if not self.tokens:
                return False
            return self.tokens.synthetic or not self._recognizable(self.tokens.peek(), abbreviate)

        while consumed < arity.min:
            if not available(abbreviate=False):
                if arity.min == 1:
                    message = "%s at %s position requires a value" % (option.describe(), ordinal(origin + 1))
                else:
                    message = "%s at %s position requires at least %d values, but only %d %s specified" % (
                        option.describe(), ordinal(origin + 1), arity.min, consumed,
                        "was" if consumed == 1 else "were"
                    )
                raise MissingParameterError(
                    message,
                    title="missing value",
                    hint="pass %s after %r (for example: %s %s)" % (
                        "a value" if arity.min == 1 else "%d values" % arity.min,
                        option.name, option.name, option.label
                    ),
                    argument=option,
                    arguments=(option,),
                    index=origin,
                    command=self.command,
                )
            values.extend(self._split(option, self.tokens.pop()))
            consumed += 1

        while arity.admits(consumed) and available():
            values.extend(self._split(option, self.tokens.pop()))
            consumed += 1

        logger.debug("%s consumed %r", option.describe(), values)
        return values, consumed

    def _convert(self, argument, raw, origin, index=Unset, type=Unset):
        if type is Unset:
            type = argument.element if argument.multi else argument.type
        try:
            return self.config.converters.convert(type, raw, argument=argument, index=index, position=origin)
        except ConversionError as error:
            raise error.__replace__(command=self.command) from error.options.get("exception")

    def _elements(self, argument, raws, origin, start=0):
        """Convert raw values of a multi-value argument (key=value pairs for dict)."""
        elements = []
        for index, raw in enumerate(raws, start):
            if argument.container is dict:
                key, separator, value = raw.partition("=")
                if not separator:
                    raise ConversionError(
                        "invalid value %r for %s%s: expected key=value" % (
                            raw, argument.describe(), _where(origin)
                        ),
                        title="invalid value",
                        hint="write map entries as key=value",
                        value=raw,
                        argument=argument,
                        index=index,
                        position=origin,
                        command=self.command,
                    )
                keytype, valuetype = argument.element
                elements.append((
                    self._convert(argument, key, origin, index, keytype),
                    self._convert(argument, value, origin, index, valuetype),
                ))
            else:
                elements.append(self._convert(argument, raw, origin, index))
        return elements

    def _accumulate(self, argument, raws, origin):
        bucket = self.buckets.setdefault(argument, [])
        bucket.extend(self._elements(argument, raws, origin, len(bucket)))

    def _bind(self, argument, value, origin):
        if argument in self.values and not self.config.overwrites:
            raise OverwrittenOptionError(
                "%s should be specified only once (again at %s position)" % (
                    argument.describe(), ordinal(origin + 1)
                ),
                title="option specified twice",
                hint="remove one of the occurrences",
                argument=argument,
                index=origin,
                command=self.command,
            )
        logger.debug("bound %s to %r", argument.describe(), value)
        self.values[argument] = value

    # --- positionals -------------------------------------------------------

    def _positionals(self, literal=False):
        """
        Collect a run of positional slots and bind them by index.

        A run ends at the next recognizable name (unless literal, after "--").
        Synthetic tokens always join the run. Unknown option-like tokens
        ("-x", "--what") never fill a slot.
        """
        run = []
        while self.tokens:
            if not literal and not self.tokens.synthetic:
                token = self.tokens.peek()
                if run and self._recognizable(token):
                    break
                if _looks_like_option(token):
                    if run:
                        break
                    origin = self.tokens.origin
                    self.matches.append(self._unmatched(self.tokens.pop(), origin))
                    return
            origin = self.tokens.origin
            run.append((self.tokens.pop(), origin))

        base = self.position
        self.position += len(run)
        claimed = [False] * len(run)
        found = []

        for positional in self.command.positionals:
            for slot in range(max(positional.index.min, base), base + len(run)):
                if not positional.index.contains(slot) or not positional.arity.admits(self.counts[positional]):
                    break
                raw, origin = run[slot - base]
                claimed[slot - base] = True
                self._collect(positional, raw, origin)
                found.append(Match(origin, positional))

        for (raw, origin), taken in zip(run, claimed):
            if not taken:
                found.append(self._unmatched(raw, origin, literal=literal))

        self.matches.extend(sorted(found, key=lambda match: match.index))

    def _collect(self, positional, raw, origin):
        logger.debug("binding %r at %d to %s", raw, origin, positional.describe())
        if positional.help:
            logger.debug("%s disables required validation for %r", positional.describe(), self.command.name)
            self.help = True
        self.counts[positional] += 1
        pieces = self._split(positional, raw)
        if positional.multi:
            self._accumulate(positional, pieces, origin)
        else:
            self._bind(positional, self._convert(positional, pieces[0], origin), origin)

    def _unmatched(self, token, origin, literal=False):
        """
        Record a token nothing claimed, or raise the matching fault.
        """
        if self.command.allow_unmatched:
            logger.debug("unmatched token %r at %d", token, origin)
            self.unmatched.append(token)
            return Match(origin, UNMATCHED)

        route = self.command.route
        if not literal and _looks_like_option(token):
            name = token.partition(self.command.separator)[0]
            suggestions = difflib.get_close_matches(name, self.command.switches.keys(), 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], route)
            except IndexError:
                hint = "run '%s --help' to see all available options" % route
            raise UnknownOptionError(
                "unknown option %r at %s position" % (name, ordinal(origin + 1)),
                title="unknown option",
                hint=hint,
                token=token,
                index=origin,
                suggestions=suggestions,
                command=self.command,
            )

        if not literal and self.command.subcommands and not self.command.positionals:
            kind = "subcommand" if self.command.parent else "command"
            suggestions = difflib.get_close_matches(token, self.command.subcommands.keys(), 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see available %ss" % (
                    suggestions[0], route, kind
                )
            except IndexError:
                hint = "run '%s --help' to see available %ss" % (route, kind)
            raise UnknownCommandError(
                "unknown %s %r at %s position" % (kind, token, ordinal(origin + 1)),
                title="unknown %s" % kind,
                hint=hint,
                token=token,
                index=origin,
                suggestions=suggestions,
                command=self.command,
            )

        raise SuperfluousInputError(
            "unmatched argument %r at %s position" % (token, ordinal(origin + 1)),
            title="unmatched argument",
            hint="remove this extra value or run '%s --help' to see the expected usage" % route,
            token=token,
            index=origin,
            command=self.command,
        )

    # --- wrap-up -----------------------------------------------------------

    def _bound(self, argument):
        return argument in self.values or argument in self.buckets

    def _validate(self):
        if self.help:
            logger.debug("skipping validation of %r (help requested)", self.command.name)
            return

        if missing := [argument for argument in self.command.arguments if argument.required and not self._bound(argument)]:
            options, positionals = [], []
            for argument in missing:
                match argument:
                    case OptionSpec():
                        options.append(repr(argument.name))
                    case PositionalSpec():
                        positionals.append(argument.label)
            parts = []
            if options:
                parts.append("option%s %s" % ("s" * (len(options) > 1), ", ".join(options)))
            if positionals:
                parts.append("parameter%s %s" % ("s" * (len(positionals) > 1), ", ".join(positionals)))
            raise MissingParameterError(
                "missing required %s" % " and ".join(parts),
                title="missing parameter",
                hint="run '%s --help' to see the expected usage" % self.command.route,
                argument=missing[0],
                arguments=tuple(missing),
                command=self.command,
            )

        for positional in self.command.positionals:
            if 0 < (count := self.counts[positional]) < positional.arity.min:
                raise MissingParameterError(
                    "%s requires at least %d values, but only %d %s specified" % (
                        positional.describe(), positional.arity.min, count, "was" if count == 1 else "were"
                    ),
                    title="missing parameter",
                    hint="pass %d more value%s" % (
                        positional.arity.min - count, "s" * (positional.arity.min - count > 1)
                    ),
                    argument=positional,
                    arguments=(positional,),
                    command=self.command,
                )

    def _finish(self, subcommand=None, validated=False):
        if not validated:
            self._validate()

        values = dict(self.values)
        for argument, bucket in self.buckets.items():
            values[argument] = argument.container(bucket)

        defaults = {}
        for argument in self.command.arguments:
            if argument in values or argument.default is None:
                continue
            if argument.multi:
                elements = self._elements(argument, self._split(argument, argument.default), Unset)
                defaults[argument] = argument.container(elements)
            else:
                defaults[argument] = self._convert(argument, argument.default, Unset)

        return ParseResult(
            self.command,
            matches=self.matches,
            values=values,
            defaults=defaults,
            subcommand=subcommand,
            unmatched=self.unmatched,
            help_requested=self.help,
        )


def _tokenize(argv):
    """
    Normalize argv: Unset → sys.argv[1:], str → shlex.split, else an
    iterable of strings.
    """
    if argv is Unset:
        return sys.argv[1:]
    if isinstance(argv, str):
        return shlex.split(argv)
    if isinstance(argv, Iterable):
        tokens = list(argv)
        for token in tokens:
            if not isinstance(token, str):
                raise TypeError("parse() argv must be a string or an iterable of strings")
        return tokens
    raise TypeError("parse() argv must be a string or an iterable of strings")


class Parser:
    """
    Parse engine bound to a Configuration; holds no per-parse state.
    """
    config = mirror("config")

    def __init__(self, config=Unset, /):
        if config is Unset:
            config = Configuration()
        elif not isinstance(config, Configuration):
            raise TypeError("Parser() argument must be a configuration")
        self._config = config

    def parse(self, command, argv=Unset, /):
        """
        Parse argv against a command tree.

        Returns
        - ParseResult for the root command (nested results via .subcommand).

        Raises
        - ParseError subclasses (UnknownOptionError, UnknownCommandError,
          AmbiguousAbbreviationError, MissingParameterError, ConversionError,
          SuperfluousInputError, OverwrittenOptionError).
        """
        if not isinstance(command, CommandSpec):
            raise TypeError("parse() first argument must be a command spec")
        tokens = Tokens(_tokenize(argv))
        return _Interpreter(self._config, command, tokens).run()


def parse(command, argv=Unset, /, config=Unset):
    """
    Parse argv against a command tree with the given (or default) configuration.
    """
    return Parser(config).parse(command, argv)


def invoke(command, argv=Unset, /, config=Unset, *, fancy=False, colorful=True):
    """
    Shell entry point: parse, or render the fault through rich and exit with
    its status (2 for parse errors).
    """
    try:
        return parse(command, argv, config)
    except ParseError as fault:
        trigger(fault, shell=True, fancy=fancy, colorful=colorful, command=fault.options.get("command", command))


__all__ = (
    "Configuration",
    "Parser",
    "Tokens",
    "parse",
    "invoke",
)
