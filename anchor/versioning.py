"""Version coercion and node-semver style range evaluation.

Versions are compared as (major, minor, patch) integer tuples. Pre-release
and build suffixes are ignored, which is enough for advisory ranges of the
form "<4.17.21" or ">=1.0.0 <1.2.6 || ^2.0.0".
"""

import re

Version = tuple[int, int, int]
Comparator = tuple[str, Version]

# First major[.minor[.patch]] run that is not glued to a preceding digit
COERCE_PATTERN = re.compile(r"(?:^|[^\d])(\d{1,16})(?:\.(\d{1,16}))?(?:\.(\d{1,16}))?")

PARTIAL_PATTERN = re.compile(
    r"^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?"
    r"(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$"
)

HYPHEN_PATTERN = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
OPERATOR_GAP = re.compile(r"(<=|>=|<|>|=|\^|~>|~)\s+")
COMPARATOR_PATTERN = re.compile(r"^(<=|>=|<|>|=|\^|~>|~)?(.*)$")

ANY: list[Comparator] = [(">=", (0, 0, 0))]


class RangeError(ValueError):
    """Raised when a range expression cannot be parsed."""


def coerce(text: str | None) -> Version | None:
    """Pull the first numeric version out of free text.

    Examples:
        "4.17.15" -> (4, 17, 15)
        "v2" -> (2, 0, 0)
        "==1.2.3.post1" -> (1, 2, 3)
        "latest" -> None
    """
    if not text:
        return None

    match = COERCE_PATTERN.search(str(text))
    if not match:
        return None

    major, minor, patch = match.groups()
    return (int(major), int(minor or 0), int(patch or 0))


def _parse_partial(text: str) -> list[int | None]:
    """Split a possibly partial version into parts, None marking wildcards."""
    match = PARTIAL_PATTERN.match(text)
    if not match:
        raise RangeError(f"Invalid version in range: {text!r}")

    parts: list[int | None] = []
    for group in match.groups():
        if group is None or group in ("x", "X", "*"):
            parts.append(None)
        else:
            parts.append(int(group))

    # Anything after a wildcard is a wildcard too
    for index in range(len(parts)):
        if parts[index] is None:
            parts[index + 1:] = [None] * (len(parts) - index - 1)
            break
    return parts


def _floor(parts: list[int | None]) -> Version:
    major, minor, patch = (part or 0 for part in parts)
    return (major, minor, patch)


def _next_ceiling(parts: list[int | None]) -> Version | None:
    """Exclusive upper bound for the given partial (1.2 -> 1.3.0)."""
    major, minor, patch = parts
    if major is None:
        return None
    if minor is None:
        return (major + 1, 0, 0)
    if patch is None:
        return (major, minor + 1, 0)
    return None


def _caret(parts: list[int | None]) -> list[Comparator]:
    major, minor, patch = parts
    if major is None:
        return list(ANY)

    low = _floor(parts)
    if major > 0 or minor is None:
        high = (major + 1, 0, 0)
    elif minor > 0 or patch is None:
        high = (0, minor + 1, 0)
    else:
        high = (0, 0, patch + 1)
    return [(">=", low), ("<", high)]


def _tilde(parts: list[int | None]) -> list[Comparator]:
    major, minor, _ = parts
    if major is None:
        return list(ANY)

    low = _floor(parts)
    if minor is None:
        high = (major + 1, 0, 0)
    else:
        high = (major, minor + 1, 0)
    return [(">=", low), ("<", high)]


def _comparator(token: str) -> list[Comparator]:
    """Desugar one comparator token into primitive (op, version) pairs."""
    match = COMPARATOR_PATTERN.match(token)
    operator, version_text = match.group(1) or "", match.group(2)

    if version_text in ("", "*", "x", "X"):
        if operator in ("<", ">"):
            # "<*" and ">*" can never match
            return [("<", (0, 0, 0))]
        return list(ANY)

    parts = _parse_partial(version_text)

    if operator == "^":
        return _caret(parts)
    if operator in ("~", "~>"):
        return _tilde(parts)

    ceiling = _next_ceiling(parts)
    floor = _floor(parts)

    if operator in ("", "="):
        if ceiling is None:
            if parts[0] is None:
                return list(ANY)
            return [("=", floor)]
        return [(">=", floor), ("<", ceiling)]
    if operator == ">=":
        return [(">=", floor)]
    if operator == "<":
        return [("<", floor)]
    if operator == ">":
        return [(">=", ceiling)] if ceiling else [(">", floor)]
    if operator == "<=":
        return [("<", ceiling)] if ceiling else [("<=", floor)]

    raise RangeError(f"Unsupported operator: {operator!r}")


def _parse_set(text: str) -> list[Comparator]:
    text = text.strip()
    if not text:
        return list(ANY)

    hyphen = HYPHEN_PATTERN.match(text)
    if hyphen:
        low_parts = _parse_partial(hyphen.group(1))
        high_parts = _parse_partial(hyphen.group(2))
        comparators: list[Comparator] = [(">=", _floor(low_parts))]
        ceiling = _next_ceiling(high_parts)
        if ceiling is not None:
            comparators.append(("<", ceiling))
        elif high_parts[0] is not None:
            comparators.append(("<=", _floor(high_parts)))
        return comparators

    comparators = []
    for token in OPERATOR_GAP.sub(r"\1", text).split():
        comparators.extend(_comparator(token))
    return comparators


def parse_range(expression: str) -> list[list[Comparator]]:
    """Parse a range expression into alternatives of comparator sets.

    Supports `||`, space-joined comparators (<, <=, >, >=, =), caret, tilde,
    x-ranges / `*` and hyphen ranges. Raises RangeError on bad input.
    """
    if expression is None:
        raise RangeError("Range expression is empty")
    return [_parse_set(alternative) for alternative in str(expression).split("||")]


def _test(version: Version, operator: str, bound: Version) -> bool:
    if operator == "<":
        return version < bound
    if operator == "<=":
        return version <= bound
    if operator == ">":
        return version > bound
    if operator == ">=":
        return version >= bound
    return version == bound


def satisfies(version: Version, expression: str) -> bool:
    """True when the version falls inside any alternative of the range."""
    for comparator_set in parse_range(expression):
        if all(_test(version, operator, bound) for operator, bound in comparator_set):
            return True
    return False


def is_vulnerable(installed: str | None, vulnerable_range: str | None) -> bool:
    """Decide whether an installed version falls in an advisory range.

    Never raises: an installed version or range that cannot be parsed is
    reported as not vulnerable.
    """
    version = coerce(installed)
    if version is None or not vulnerable_range:
        return False

    expression = vulnerable_range.strip()
    try:
        if expression.startswith("<") and not expression.startswith("<="):
            bound_text = expression[1:].strip()
            if bound_text and " " not in bound_text and "|" not in bound_text:
                parts = _parse_partial(bound_text)
                if None not in parts:
                    return version < _floor(parts)
        return satisfies(version, expression)
    except RangeError:
        return False
