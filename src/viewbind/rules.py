"""
Attribute Parser / Rule Extractor

Turns the raw attribute strings found on view-tree elements into structured,
immutable rules:

- ``data-bind="userName"`` becomes a field name
- ``data-check-field="*retired"`` becomes a `CheckGroupKey`
- ``data-display="gender:1;country:[US,CA]"`` (and its hide/enable/disable
  siblings) becomes a `ControlRule` holding one `ConditionEntry` per
  initiator field

Markup authoring errors never raise. A malformed segment yields no entry and
a debug record; everything else in the attribute is still honoured.
"""

from enum import Enum
from typing import Dict, Mapping, Optional, Tuple
import logging

from pydantic import BaseModel, ConfigDict

from .config import AttributeConfig

logger = logging.getLogger(__name__)


class MatchMode(str, Enum):
    """How a checkbox-group key is compared against candidate names"""
    EXACT = "exact"
    PREFIX = "prefix"
    SUFFIX = "suffix"
    CONTAINS = "contains"


class Polarity(str, Enum):
    """Whether a matching condition shows or hides the impacted element"""
    SHOW_ON_MATCH = "show"
    HIDE_ON_MATCH = "hide"


class Effect(str, Enum):
    """What a control rule changes on the impacted element"""
    VISIBILITY = "visibility"
    ENABLED = "enabled"


_MARKERS: Dict[str, MatchMode] = {
    "^": MatchMode.PREFIX,
    "$": MatchMode.SUFFIX,
    "*": MatchMode.CONTAINS,
}


class CheckGroupKey(BaseModel):
    """A checkbox-group name key and the way it matches element names."""

    model_config = ConfigDict(frozen=True)

    raw: str
    name: str
    mode: MatchMode = MatchMode.EXACT

    def matches(self, candidate: Optional[str]) -> bool:
        if candidate is None:
            return False
        if self.mode is MatchMode.PREFIX:
            return candidate.startswith(self.name)
        if self.mode is MatchMode.SUFFIX:
            return candidate.endswith(self.name)
        if self.mode is MatchMode.CONTAINS:
            return self.name in candidate
        return candidate == self.name


class ConditionEntry(BaseModel):
    """
    One initiator condition of a control rule.

    The entry matches when the initiator's current value equals any of
    `values`; the empty string stands for "nothing selected".
    """

    model_config = ConfigDict(frozen=True)

    initiator: str
    values: Tuple[str, ...]
    polarity: Polarity = Polarity.SHOW_ON_MATCH
    effect: Effect = Effect.VISIBILITY

    def apply_polarity(self, matched: bool) -> bool:
        return matched if self.polarity is Polarity.SHOW_ON_MATCH else not matched


class ControlRule(BaseModel):
    """All conditions declared by one visibility/enablement attribute."""

    model_config = ConfigDict(frozen=True)

    attribute: str
    polarity: Polarity
    effect: Effect
    entries: Tuple[ConditionEntry, ...]
    callback: Optional[str] = None

    @property
    def initiators(self) -> Tuple[str, ...]:
        return tuple(entry.initiator for entry in self.entries)


def is_blank(value: Optional[str]) -> bool:
    """True for None or whitespace-only strings"""
    return value is None or str(value).strip() == ""


def parse_field(raw: Optional[str]) -> Optional[str]:
    """Return the bound field name, or None when the attribute is blank."""
    if is_blank(raw):
        return None
    return str(raw).strip()


def parse_check_field(raw: Optional[str]) -> Optional[CheckGroupKey]:
    """
    Parse a checkbox-group key.

    A leading ``^`` means prefix match, a leading or trailing ``$`` suffix
    match and a leading ``*`` contains match; without marker the name must
    match exactly.
    """
    if is_blank(raw):
        return None
    raw = str(raw)
    name = raw.strip()
    mode = MatchMode.EXACT
    if name[0] in _MARKERS:
        mode = _MARKERS[name[0]]
        name = name[1:]
    elif name.endswith("$"):
        mode = MatchMode.SUFFIX
        name = name[:-1]
    if name == "":
        logger.debug(f"Ignoring check field {raw!r}: no name after marker")
        return None
    return CheckGroupKey(raw=raw, name=name, mode=mode)


def _parse_values(raw_value: str) -> Optional[Tuple[str, ...]]:
    opens, closes = raw_value.startswith("["), raw_value.endswith("]")
    if opens and closes:
        return tuple(raw_value[1:-1].split(","))
    if opens or closes:
        return None
    return (raw_value,)


def parse_conditions(
    raw: Optional[str],
    polarity: Polarity = Polarity.SHOW_ON_MATCH,
    effect: Effect = Effect.VISIBILITY,
) -> Tuple[ConditionEntry, ...]:
    """
    Parse ``field:value[;field:value...]`` into condition entries.

    Values may be a bracketed, comma separated list. Repeated fields merge
    their values; entries keep the order in which fields first appear.
    """
    if raw is None:
        return ()

    merged: Dict[str, Tuple[str, ...]] = {}
    for segment in str(raw).split(";"):
        if segment.strip() == "":
            continue
        if ":" not in segment:
            logger.debug(f"Ignoring condition segment {segment!r}: missing ':'")
            continue
        field_name, raw_value = segment.split(":", 1)
        field_name = field_name.strip()
        if field_name == "":
            logger.debug(f"Ignoring condition segment {segment!r}: blank field name")
            continue
        values = _parse_values(raw_value)
        if values is None:
            logger.debug(f"Ignoring condition segment {segment!r}: unmatched bracket")
            continue
        merged[field_name] = merged.get(field_name, ()) + values

    return tuple(
        ConditionEntry(initiator=name, values=values, polarity=polarity, effect=effect)
        for name, values in merged.items()
    )


def control_kinds(vocabulary: AttributeConfig) -> Tuple[Tuple[str, Polarity, Effect], ...]:
    """The four control attributes with their (polarity, effect), priority first"""
    return (
        (vocabulary.display, Polarity.SHOW_ON_MATCH, Effect.VISIBILITY),
        (vocabulary.hide, Polarity.HIDE_ON_MATCH, Effect.VISIBILITY),
        (vocabulary.enable, Polarity.SHOW_ON_MATCH, Effect.ENABLED),
        (vocabulary.disable, Polarity.HIDE_ON_MATCH, Effect.ENABLED),
    )


def extract_control_rule(attrs: Mapping[str, object], vocabulary: AttributeConfig) -> Optional[ControlRule]:
    """
    Build the control rule of an element from its attributes.

    Only the highest-priority control attribute present is used; the others
    are ignored. Returns None when that attribute has no valid segment.
    """
    for attribute, polarity, effect in control_kinds(vocabulary):
        raw = attrs.get(attribute)
        if raw is None or raw is False:
            continue
        entries = parse_conditions(str(raw), polarity, effect)
        if not entries:
            return None
        callback = parse_field(attrs.get(vocabulary.hide_callback))
        return ControlRule(
            attribute=attribute,
            polarity=polarity,
            effect=effect,
            entries=entries,
            callback=callback,
        )
    return None


def has_control_attribute(attrs: Mapping[str, object], vocabulary: AttributeConfig) -> bool:
    return any(attrs.get(name) not in (None, False) for name in vocabulary.control_attributes)


__all__ = [
    "MatchMode", "Polarity", "Effect", "CheckGroupKey", "ConditionEntry",
    "ControlRule", "is_blank", "parse_field", "parse_check_field",
    "parse_conditions", "control_kinds", "extract_control_rule",
    "has_control_attribute",
]
