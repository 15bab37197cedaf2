from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple


class Switch(Enum):
    SOURCE_DIR = "SOURCE_DIR"
    DEST_DIR = "DEST_DIR"
    INCLUDE = "INCLUDE"
    EXCLUDE = "EXCLUDE"
    DEEP_INCLUDE = "DEEP_INCLUDE"
    DEEP_EXCLUDE = "DEEP_EXCLUDE"
    NO_RECURSE = "NO_RECURSE"
    ZIP_FILE = "ZIP_FILE"

    @property
    def long_form(self) -> str:
        return "-" + self.name

    @property
    def short_form(self) -> str:
        return "-" + _SWITCH_INFO[self].short_name

    @property
    def multi_valued(self) -> bool:
        return _SWITCH_INFO[self].multi_valued

    @property
    def takes_arguments(self) -> bool:
        return _SWITCH_INFO[self].takes_arguments

    @property
    def bare_names_only(self) -> bool:
        """
        Whether the values of this switch must be plain file names, without any path information.
        """
        return self.multi_valued or self is Switch.ZIP_FILE

    @staticmethod
    def from_token(token: str) -> Optional["Switch"]:
        """
        Return the switch whose long, short or alias form is the token (case-insensitive), or None.
        """
        return _FORMS.get(token.upper())


@dataclass(frozen=True)
class _SwitchInfo:
    short_name: str
    multi_valued: bool = False
    takes_arguments: bool = True
    aliases: Tuple[str, ...] = ()


_SWITCH_INFO: Mapping[Switch, _SwitchInfo] = MappingProxyType({
    Switch.SOURCE_DIR: _SwitchInfo("S", aliases=("SRCDIR", "SOURCEDIR")),
    Switch.DEST_DIR: _SwitchInfo("D", aliases=("DSTDIR", "DESTDIR")),
    Switch.INCLUDE: _SwitchInfo("I", multi_valued=True),
    Switch.EXCLUDE: _SwitchInfo("E", multi_valued=True),
    Switch.DEEP_INCLUDE: _SwitchInfo("DI", multi_valued=True, aliases=("DEEPINCLUDE",)),
    Switch.DEEP_EXCLUDE: _SwitchInfo("DE", multi_valued=True, aliases=("DEEPEXCLUDE",)),
    Switch.NO_RECURSE: _SwitchInfo("NR", takes_arguments=False, aliases=("NORECURSE",)),
    Switch.ZIP_FILE: _SwitchInfo("Z", aliases=("ZIPFILE",)),
})


def _build_forms() -> Mapping[str, Switch]:
    forms = {}
    for switch, info in _SWITCH_INFO.items():
        for name in (switch.name, info.short_name) + info.aliases:
            assert "-" + name not in forms, f"Switch form -{name} is ambiguous"
            forms["-" + name] = switch
    return MappingProxyType(forms)


_FORMS = _build_forms()

ALL_LONG_FORMS: FrozenSet[str] = frozenset(s.long_form for s in Switch)
ALL_SHORT_FORMS: FrozenSet[str] = frozenset(s.short_form for s in Switch)
