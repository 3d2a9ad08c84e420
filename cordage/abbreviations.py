"""
Cordage abbreviation matching (chunk-prefix resolution of option and command names).

Overview
- split(name, case_insensitive=False)
  • Break a name into chunks: a leading non-alphanumeric prefix ("--", "-", "/")
    is its own chunk; boundaries fall before every "-" and, in case-sensitive
    mode, before every uppercase letter. The "-" itself is folded into the next
    chunk by upper-casing its first letter ("--foo-bar" → ["--", "foo", "Bar"]).

- match(candidates, token, case_insensitive=False)
  • Exact hits win immediately; punctuation-only tokens ("-", "/") never abbreviate.
  • Otherwise a candidate matches when its first chunk starts with the token's
    first chunk and every further token chunk is a prefix of a later candidate
    chunk, in forward-advancing order.
  • One match resolves, none returns the token unchanged, several raise
    AmbiguousAbbreviationError naming all of them.

Examples
    >>> match({"--factory", "--file"}, "--fa")
    '--factory'
    >>> match({"--factory", "--file"}, "--x")
    '--x'
    >>> split("--super-verbose")
    ['--', 'super', 'Verbose']
"""
from .faults import AmbiguousAbbreviationError


def _canonical(chunk):
    if chunk == "-":
        return ""
    if chunk.startswith("-") and len(chunk) > 1:
        return chunk[1].upper() + chunk[2:]
    return chunk


def split(name, /, case_insensitive=False):
    """
    Split a name into abbreviation chunks (see module docstring).
    """
    chunks = []
    start = 0
    while start < len(name) and not name[start].isalnum():
        start += 1
    if start:
        chunks.append(name[:start])

    for index in range(start, len(name)):
        character = name[index]
        if (not case_insensitive and character.isupper()) or character == "-":
            if chunk := _canonical(name[start:index]):
                chunks.append(chunk)
            start = index
    if start < len(name):
        if chunk := _canonical(name[start:]):
            chunks.append(chunk)
    return chunks


def _startswith(chunk, prefix, case_insensitive):
    if len(prefix) > len(chunk):
        return False
    if not any(character.isalnum() for character in chunk):
        # punctuation-only chunks ("--", "/") must match verbatim
        return chunk == prefix
    head = chunk[:len(prefix)]
    return head.casefold() == prefix.casefold() if case_insensitive else head == prefix


def _matches(abbreviated, chunks, case_insensitive):
    if not abbreviated or not chunks or len(abbreviated) > len(chunks):
        return False
    if not _startswith(chunks[0], abbreviated[0], case_insensitive):
        return False
    cursor = 1
    for prefix in abbreviated[1:]:
        for index in range(cursor, len(chunks)):
            if _startswith(chunks[index], prefix, case_insensitive):
                cursor = index + 1
                break
        else:
            return False
    return True


def match(candidates, token, /, case_insensitive=False):
    """
    Resolve a possibly-abbreviated token against the known full names.

    Returns
    - the candidate itself on an exact hit (case-folded when case_insensitive),
    - the single candidate whose chunks the token abbreviates,
    - the token unchanged when nothing matches.

    Raises
    - AmbiguousAbbreviationError: when several candidates match.
    """
    candidates = tuple(candidates)
    if token in candidates:
        return token
    if case_insensitive:
        for candidate in candidates:
            if candidate.casefold() == token.casefold():
                return candidate
    if not any(character.isalnum() for character in token):
        return token

    abbreviated = split(token, case_insensitive)
    found = sorted(
        candidate for candidate in candidates
        if _matches(abbreviated, split(candidate, case_insensitive), case_insensitive)
    )
    if len(found) > 1:
        raise AmbiguousAbbreviationError(
            "%r is not unique: it matches %s" % (token, ", ".join(map(repr, found))),
            title="ambiguous abbreviation",
            hint="type more characters to pick one of %s" % ", ".join(map(repr, found)),
            token=token,
            candidates=tuple(found),
        )
    return found[0] if found else token


__all__ = (
    "split",
    "match",
)
