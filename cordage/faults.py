"""
Cordage faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every fault. Codes are
  grouped by domain to keep copy consistent and logs searchable.
- CommandError: base type carrying message + options; knows how to render
  itself through rich in a friendly, lowercased and actionable way.
- ParseError / DefinitionError: the two families. Parse-time faults are
  recoverable by the caller (print, exit non-zero); definition faults are
  programming errors surfaced when a command model is built.
- trigger(): central entry point to surface a fault (raise or render+exit).

UX goals
- Position-first messages: parse faults name the ordinal position of the
  offending token (“at third position”).
- Short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- The engine raises faults directly; library callers catch ParseError.
- Shell entry points call trigger(fault, shell=True, ...) to render via rich and
  exit with fault.status.
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping (by high-level domain)
    - routing (1110x)
      • UNKNOWN_COMMAND, AMBIGUOUS_ABBREVIATION
    - options (1111x)
      • UNKNOWN_OPTION, OVERWRITTEN_OPTION
    - values (1112x)
      • MISSING_PARAMETER, TYPE_CONVERSION
    - leftovers (1114x)
      • SUPERFLUOUS_INPUT
    - definitions (1310x)
      • DUPLICATE_OPTION, DUPLICATE_COMMAND, INDEX_GAP, MISSING_CONVERTER

    normalize() lets the host remap codes to custom labels while the numeric
    identity stays stable.
    """
    # --- routing errors (11xxx) ---
    UNKNOWN_COMMAND             = 11101
    AMBIGUOUS_ABBREVIATION      = 11103

    # --- option errors (11xxx) ---
    UNKNOWN_OPTION              = 11112
    OVERWRITTEN_OPTION          = 11115

    # --- value errors (11xxx) ---
    MISSING_PARAMETER           = 11125
    TYPE_CONVERSION             = 11126

    # --- leftovers (11xxx) ---
    SUPERFLUOUS_INPUT           = 11141

    # --- definition errors (13xxx) ---
    DUPLICATE_OPTION            = 13101
    DUPLICATE_COMMAND           = 13102
    INDEX_GAP                   = 13103
    MISSING_CONVERTER           = 13104

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandError(Exception):
    """
    base fault: a message plus a read-only mapping of context options.

    class attributes
    - code: FaultCode identifying the kind (also exposed as .kind).
    - title: short, lowercased title used in the rendered header.
    - status: process exit status used by shell-mode triggering.

    common options
    - hint: single actionable sentence shown after the message.
    - command: the CommandSpec in scope (used for the program name).
    - shell/fancy/colorful: rendering switches consumed by __trigger__/__rich__.
    - any other context the raise site has (token, index, argument, ...).
    """
    code = Unset
    title = "command error"
    status = 1

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def kind(self):
        return self.code

    def __str__(self):
        return coalesce(self.message, "")

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        try:
            prog = self.options["command"].root.name
        except (KeyError, AttributeError):
            prog = "cordage"
        prog = text(getattr(main, "__prog__", prog), styler("prog-name"))

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(self.code.normalize() if self.code else "?", styler("code")),
            " | ",
            text(self.options.get("title", self.title).title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if fancy:
            width = console.width - 4
            try:
                width = int(width * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*renders), title=header, title_align="left", width=width)

        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(self.status)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ParseError(CommandError):
    """parse-time fault: the token stream does not fit the command model."""
    title = "parse error"
    status = 2


class UnknownOptionError(ParseError):
    code = FaultCode.UNKNOWN_OPTION
    title = "unknown option"


class UnknownCommandError(ParseError):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"


class AmbiguousAbbreviationError(ParseError):
    code = FaultCode.AMBIGUOUS_ABBREVIATION
    title = "ambiguous abbreviation"


class MissingParameterError(ParseError):
    code = FaultCode.MISSING_PARAMETER
    title = "missing parameter"


class ConversionError(ParseError):
    code = FaultCode.TYPE_CONVERSION
    title = "invalid value"


class SuperfluousInputError(ParseError):
    code = FaultCode.SUPERFLUOUS_INPUT
    title = "unmatched argument"


class OverwrittenOptionError(ParseError):
    code = FaultCode.OVERWRITTEN_OPTION
    title = "option specified twice"


class DefinitionError(CommandError):
    """construction-time fault: the command model itself is inconsistent."""
    title = "definition error"
    status = 1


class DuplicateOptionError(DefinitionError):
    code = FaultCode.DUPLICATE_OPTION
    title = "duplicate option"


class DuplicateCommandError(DefinitionError):
    code = FaultCode.DUPLICATE_COMMAND
    title = "duplicate command"


class IndexGapError(DefinitionError):
    code = FaultCode.INDEX_GAP
    title = "positional index gap"


class MissingConverterError(DefinitionError):
    code = FaultCode.MISSING_CONVERTER
    title = "missing converter"


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandError).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via rich console and the process exits
      with fault.status; otherwise, the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "FaultCode",
    "CommandError",
    "ParseError",
    "UnknownOptionError",
    "UnknownCommandError",
    "AmbiguousAbbreviationError",
    "MissingParameterError",
    "ConversionError",
    "SuperfluousInputError",
    "OverwrittenOptionError",
    "DefinitionError",
    "DuplicateOptionError",
    "DuplicateCommandError",
    "IndexGapError",
    "MissingConverterError",
    "trigger",
)
