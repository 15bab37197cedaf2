from collections.abc import Mapping
from typing import Dict, FrozenSet, Iterator, Optional, Sequence, Set
import os

from .errors import (
    DuplicateSwitch,
    InvalidSwitch,
    MissingSwitch,
    NoRecurseTakesNoArguments,
    NotAnInvocation,
    PathNotAllowed,
    TooManyArguments,
)
from .switches import ALL_LONG_FORMS, ALL_SHORT_FORMS, Switch

INVOCATION_KEYWORD = "zipp"

INCLUDE_DEFAULT: FrozenSet[str] = frozenset({"*"})
EXCLUDE_DEFAULT: FrozenSet[str] = frozenset()


class ParsedCommand(Mapping):
    """
    Read-only mapping of each switch given on the command line to its set of values.
    """

    def __init__(self, switches: Dict[Switch, FrozenSet[str]]):
        self._switches = dict(switches)

    def __getitem__(self, switch: Switch) -> FrozenSet[str]:
        return self._switches[switch]

    def __iter__(self) -> Iterator[Switch]:
        return iter(self._switches)

    def __len__(self) -> int:
        return len(self._switches)

    def __repr__(self) -> str:
        items = ", ".join(f"{s.name}={sorted(v)}" for s, v in self._switches.items())
        return f"ParsedCommand({items})"

    def first_value(self, switch: Switch) -> Optional[str]:
        """
        Return one value of the switch, or None if the switch is absent or has no values.
        """
        values = self._switches.get(switch)
        if not values:
            return None
        return next(iter(values))


def _invalid_switch(token: str) -> InvalidSwitch:
    return InvalidSwitch(token, ALL_LONG_FORMS, ALL_SHORT_FORMS)


def _is_path_like(value: str) -> bool:
    if value in (".", ".."):
        return True
    separators = {"/", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    return any(sep in value for sep in separators)


def _drop_if_empty(parsed: Dict[Switch, Set[str]], switch: Optional[Switch]) -> None:
    # A switch given no values is discarded, except NO_RECURSE which never takes any
    if switch is not None and switch.takes_arguments and not parsed[switch]:
        del parsed[switch]


def _scan(tokens: Sequence[str]) -> Dict[Switch, Set[str]]:
    parsed: Dict[Switch, Set[str]] = {}
    current: Optional[Switch] = None

    for token in tokens:
        switch = Switch.from_token(token)
        if switch is not None:
            if switch in parsed:
                raise DuplicateSwitch(token)
            _drop_if_empty(parsed, current)
            current = switch
            parsed[current] = set()
            continue

        if token.startswith("-"):
            raise _invalid_switch(token)
        if current is None:
            raise MissingSwitch(token)

        values = parsed[current]
        if not current.takes_arguments:
            raise NoRecurseTakesNoArguments(token, current.long_form)
        if not current.multi_valued and len(values) > 0:
            raise TooManyArguments(token, current.name)
        if current.bare_names_only and _is_path_like(token):
            raise PathNotAllowed(token, current.name)
        values.add(token)

    _drop_if_empty(parsed, current)
    return parsed


def _set_filter_defaults(parsed: Dict[Switch, Set[str]]) -> ParsedCommand:
    switches: Dict[Switch, FrozenSet[str]] = {s: frozenset(v) for s, v in parsed.items()}

    if not switches.get(Switch.INCLUDE):
        switches[Switch.INCLUDE] = INCLUDE_DEFAULT
    switches.setdefault(Switch.EXCLUDE, EXCLUDE_DEFAULT)

    # Deep filters are meaningless without recursion
    if Switch.NO_RECURSE not in switches:
        if not switches.get(Switch.DEEP_INCLUDE):
            switches[Switch.DEEP_INCLUDE] = INCLUDE_DEFAULT
        switches.setdefault(Switch.DEEP_EXCLUDE, EXCLUDE_DEFAULT)

    return ParsedCommand(switches)


def parse(tokens: Optional[Sequence[str]], keyword: str = INVOCATION_KEYWORD) -> ParsedCommand:
    """
    Parse a full command line, e.g. ["zipp", "-s", "project", "-i", "*.py", "*.md", "-nr"].

    Raises NotAnInvocation if the tokens are empty or do not start with the keyword, and a CommandError subclass
    if the switches are malformed.
    """
    if not tokens:
        raise NotAnInvocation("Nothing to execute.")

    if tokens[0].lower() != keyword.lower():
        raise NotAnInvocation(f"[{tokens[0]}] isn't a {keyword} command.")

    if len(tokens) == 1:
        return _set_filter_defaults({})

    if Switch.from_token(tokens[1]) is None:
        raise _invalid_switch(tokens[1])

    return _set_filter_defaults(_scan(tokens[1:]))
