"""
Field Registry & Group Synchronizer

🔄 Keeping bound elements in sync:
Every element carrying ``data-bind="<field>"`` joins the `BindField` of that
name. When the user edits one of them, its value is written to every other
live element of the field, translated per element modality (text, option,
radio group, checkbox text, label text, link target).

Key Features:
- One `PropagationRule` per field name, installed on first registration
- A single generic dispatch path for every field
- Option-text translation in both directions
- Explicit `WriteContext` so writes never re-enter their own propagation
- Optional trailing-edge debounced change notification per target
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional
from weakref import WeakSet
import logging

from .config import EngineConfig
from .dom import Element, ElementEvent, ViewTree
from .rules import parse_field
from .scheduler import Debouncer, Scheduler

logger = logging.getLogger(__name__)


class BindMode(str, Enum):
    """How the value of a bound element is read and written"""
    TEXT = "text"            # free text: text inputs, hidden inputs, textareas
    RADIO = "radio"          # single choice from a name group
    SELECT = "select"        # single choice from options
    CHECKBOX = "checkbox"    # boolean from the checkbox's declared text
    LABEL = "label"          # text content
    LINK = "link"            # href of an anchor


# Events that signal a user edit, per modality
_INPUT_EVENTS: Dict[BindMode, tuple] = {
    BindMode.TEXT: ("input", "change"),
    BindMode.SELECT: ("change",),
    BindMode.RADIO: ("click",),
    BindMode.CHECKBOX: ("change",),
    BindMode.LABEL: (),
    BindMode.LINK: (),
}


def detect_mode(element: Element) -> BindMode:
    if element.is_checkbox:
        return BindMode.CHECKBOX
    if element.is_radio:
        return BindMode.RADIO
    if element.tag in ("input", "textarea"):
        return BindMode.TEXT
    if element.tag == "select":
        return BindMode.SELECT
    if element.tag == "a":
        return BindMode.LINK
    return BindMode.LABEL


@dataclass
class BoundElement:
    """An element reference plus the modality used to read/write it"""
    element: Element
    mode: BindMode
    option_text: bool = False

    @property
    def id(self) -> Optional[str]:
        return self.element.id


@dataclass
class BindField:
    """A named logical value shared by its bound elements (registration order)"""
    name: str
    elements: List[BoundElement] = field(default_factory=list)
    value: Optional[str] = None

    def contains(self, element: Element) -> bool:
        return any(bound.element is element for bound in self.elements)

    def live(self) -> List[BoundElement]:
        return [bound for bound in self.elements if bound.element.is_attached]


@dataclass
class PropagationRule:
    """Per-field propagation settings, created once per field name"""
    field_name: str
    notify_targets: bool = False


class WriteContext:
    """
    Fields currently being written by the synchronizer.

    Every notification path checks the context first; a notification for a
    field that is mid-write is an echo of our own write and is dropped.
    """

    def __init__(self):
        self._fields: List[str] = []

    @contextmanager
    def writing(self, field_name: str) -> Iterator[None]:
        self._fields.append(field_name)
        try:
            yield
        finally:
            self._fields.pop()

    def is_writing(self, field_name: str) -> bool:
        return field_name in self._fields

    @property
    def depth(self) -> int:
        return len(self._fields)


class FieldRegistry:
    """
    Field name → bound elements, plus the propagation of edits between them.

    One registry belongs to one view tree session (see `BindingEngine`).
    """

    def __init__(self, tree: ViewTree, config: EngineConfig, scheduler: Optional[Scheduler] = None):
        self.tree = tree
        self.config = config
        self.vocabulary = config.attributes
        self.context = WriteContext()
        self.active: Optional[Element] = None
        self._fields: Dict[str, BindField] = {}
        self._rules: Dict[str, PropagationRule] = {}
        self._listening: 'WeakSet[Element]' = WeakSet()
        self._debounce = Debouncer(scheduler or Scheduler(), config.debounce_delay)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, element: Element, field_name: Optional[str] = None) -> Optional[BindField]:
        """
        Add `element` to its field. Idempotent per element; the field's
        propagation rule is installed on the first registration of the name.
        """
        field_name = field_name or parse_field(element.get(self.vocabulary.bind))
        if field_name is None:
            return None

        self.tree.ensure_id(element, self.config.auto_id_prefix)
        bind_field = self._fields.get(field_name)
        if bind_field is None:
            bind_field = self._fields[field_name] = BindField(field_name)
            self._install_rule(field_name)

        if not bind_field.contains(element):
            bind_field.elements.append(BoundElement(
                element=element,
                mode=detect_mode(element),
                option_text=element.has_attribute(self.vocabulary.option_text),
            ))
        self._install_listener(element)
        return bind_field

    def _install_rule(self, field_name: str) -> None:
        self._rules[field_name] = PropagationRule(
            field_name=field_name,
            notify_targets=self.config.propagate_change_events,
        )
        logger.debug(f"Installed propagation rule for field {field_name!r}")

    def _install_listener(self, element: Element) -> None:
        if element in self._listening:
            return
        self._listening.add(element)
        for event_type in _INPUT_EVENTS[detect_mode(element)]:
            element.listen(event_type, self._on_input)

    def _on_input(self, event: ElementEvent) -> None:
        self.notify_value_changed(event.target)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def field(self, field_name: str) -> Optional[BindField]:
        return self._fields.get(field_name)

    def fields(self) -> List[str]:
        return list(self._fields)

    def rule(self, field_name: str) -> Optional[PropagationRule]:
        return self._rules.get(field_name)

    def value_of(self, field_name: str) -> Optional[str]:
        """Last value propagated through the field"""
        bind_field = self._fields.get(field_name)
        return bind_field.value if bind_field else None

    def is_listening(self, element: Element) -> bool:
        return element in self._listening

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def notify_value_changed(self, source: Element, propagate_changes: Optional[bool] = None) -> Optional[str]:
        """
        Propagate the current value of `source` to the rest of its field.

        Returns the value written to the other elements, or None when
        nothing was propagated.
        """
        field_name = parse_field(source.get(self.vocabulary.bind))
        if field_name is None or self.context.is_writing(field_name):
            return None

        bind_field = self._fields.get(field_name)
        if bind_field is None:
            for element in self.tree.by_attribute(self.vocabulary.bind, field_name):
                self.register(element, field_name)
        bind_field = self.register(source, field_name)

        self.active = source
        value = self.read_value(source)
        if source.has_attribute(self.vocabulary.option_text):
            value = self._reverse_lookup(bind_field, source, value)

        rule = self._rules[field_name]
        notify = rule.notify_targets if propagate_changes is None else propagate_changes
        self._dispatch(rule, bind_field, source, value, notify)
        return value

    def _dispatch(self, rule: PropagationRule, bind_field: BindField, source: Element,
                  value: str, notify: bool) -> None:
        bind_field.value = value
        color = None
        if source.has_attribute(self.vocabulary.highlight_minus):
            color = source.style.get("color")

        with self.context.writing(rule.field_name):
            for bound in bind_field.live():
                target = bound.element
                if target is source:
                    continue
                try:
                    self.write_value(bound, self._target_value(bind_field, bound, value))
                    target.blur()
                    if color:
                        target.style["color"] = color
                except Exception as e:
                    logger.error(f"Writing field {rule.field_name!r} to {target!r} failed: {e}")
                    continue
                if notify:
                    self._schedule_change(rule.field_name, target)

    def _schedule_change(self, field_name: str, target: Element) -> None:
        def fire_change() -> None:
            if not target.is_attached:
                return
            with self.context.writing(field_name):
                target.fire("change")

        self._debounce(target.id, fire_change)

    def cancel_pending(self) -> None:
        self._debounce.cancel_all()

    # ------------------------------------------------------------------
    # Value translation
    # ------------------------------------------------------------------

    def read_value(self, element: Element) -> str:
        mode = detect_mode(element)
        if mode is BindMode.RADIO:
            if element.checked:
                return element.value
            for member in self.tree.by_name(element.name or ""):
                if member.is_radio and member.checked:
                    return member.value
            return ""
        if mode is BindMode.CHECKBOX:
            if element.checked:
                return element.value
            return str(element.get(self.vocabulary.unchecked_value) or "")
        if mode is BindMode.LINK:
            return str(element.get("href") or "")
        if mode is BindMode.LABEL:
            return element.text
        return element.value

    def write_value(self, bound: BoundElement, value: str) -> None:
        element = bound.element
        if bound.mode in (BindMode.RADIO, BindMode.CHECKBOX):
            element.checked = element.value == value
        elif bound.mode is BindMode.LINK:
            element.attrs["href"] = value
        else:
            element.value = value

    def _selects(self, bind_field: BindField, exclude: Optional[Element] = None) -> List[Element]:
        return [
            bound.element for bound in bind_field.elements
            if bound.mode is BindMode.SELECT
            and bound.element is not exclude
            and bound.element.is_attached
        ]

    def _reverse_lookup(self, bind_field: BindField, source: Element, text: str) -> str:
        """Option text → option value; empty unless exactly one option matches"""
        matches = [
            option
            for select in self._selects(bind_field, exclude=source)
            for option in select.options
            if option.text == text
        ]
        return matches[0].value if len(matches) == 1 else ""

    def _target_value(self, bind_field: BindField, bound: BoundElement, value: str) -> str:
        """Option value → option text for option-text targets"""
        if not bound.option_text or bound.mode is BindMode.SELECT:
            return value
        selects = self._selects(bind_field, exclude=bound.element)
        if not selects:
            return value
        for select in selects:
            for option in select.options:
                if option.value == value:
                    return option.text
        return ""


__all__ = [
    "BindMode", "BoundElement", "BindField", "PropagationRule",
    "WriteContext", "FieldRegistry", "detect_mode",
]
