"""
Dependency Graph & Evaluator

👁️ Conditional visibility and enablement:
Elements carrying ``data-display``/``data-hide``/``data-enable``/
``data-disable`` are *impacted* elements; the field names their conditions
reference are *initiators*. The graph indexes both directions:

- initiator field name → impacted element ids (registration order)
- impacted element id → condition entries (declaration order)

A change on any live element named after an initiator re-evaluates every
impacted element registered under that name. Entries combine with AND
(short-circuit), the values of one entry with OR.

During the startup pass hide callbacks are suppressed, so that laying out
the initial page never fires user-visible callbacks.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional
from weakref import WeakSet
import logging

from . import constants
from .callbacks import CallbackRegistry
from .config import EngineConfig
from .dom import Element, ElementEvent, ViewTree
from .rules import ConditionEntry, ControlRule, Effect, extract_control_rule, is_blank

logger = logging.getLogger(__name__)


class ImpactState(str, Enum):
    """Evaluation state of an impacted element"""
    PENDING = "pending"   # not evaluated yet
    SHOWN = "shown"       # visible / enabled
    HIDDEN = "hidden"     # hidden / disabled


@dataclass
class ImpactedElement:
    """An element whose visible/enabled state derives from initiator fields"""
    element_id: str
    rule: ControlRule
    conditions: Dict[str, ConditionEntry]
    callback: Optional[str] = None
    state: ImpactState = ImpactState.PENDING
    evaluations: int = 0

    @property
    def effect(self) -> Effect:
        return self.rule.effect


class DependencyGraph:
    """Initiator/impacted index plus the evaluation of control rules."""

    def __init__(self, tree: ViewTree, config: EngineConfig, callbacks: Optional[CallbackRegistry] = None):
        self.tree = tree
        self.config = config
        self.vocabulary = config.attributes
        self.callbacks = callbacks or CallbackRegistry()
        self._initiators: Dict[str, List[str]] = {}
        self._impacted: Dict[str, ImpactedElement] = {}
        self._listening: 'WeakSet[Element]' = WeakSet()
        self._starting = False

    # ------------------------------------------------------------------
    # Startup pass
    # ------------------------------------------------------------------

    def begin_startup(self) -> None:
        self._starting = True

    def end_startup(self) -> None:
        self._starting = False
        logger.debug("Startup evaluation pass finished")

    @property
    def is_starting(self) -> bool:
        return self._starting

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def is_registered(self, element: Element) -> bool:
        return element.id is not None and element.id in self._impacted

    def register(self, element: Element) -> Optional[ImpactedElement]:
        """
        Index an impacted element and listen on its initiators.
        Registering the same element again returns the existing record.
        """
        rule = extract_control_rule(element.attrs, self.vocabulary)
        if rule is None:
            return None

        element_id = self.tree.ensure_id(element, self.config.auto_id_prefix)
        impacted = self._impacted.get(element_id)
        if impacted is not None:
            return impacted

        impacted = ImpactedElement(
            element_id=element_id,
            rule=rule,
            conditions={entry.initiator: entry for entry in rule.entries},
            callback=rule.callback,
        )
        self._impacted[element_id] = impacted

        for name in impacted.conditions:
            impacted_ids = self._initiators.setdefault(name, [])
            if element_id not in impacted_ids:
                impacted_ids.append(element_id)
            self.bind_initiator(name)
        return impacted

    def bind_initiator(self, name: str) -> int:
        """Install the change listener on every live element named `name`."""
        return sum(1 for element in self.initiator_elements(name) if self.install_listener(element))

    def install_listener(self, element: Element) -> bool:
        """Listen for changes of an initiator element; at most once per element."""
        if element.name not in self._initiators or self._is_shadow(element):
            return False
        if element in self._listening:
            return False
        self._listening.add(element)
        element.listen("change", self._on_initiator_change)
        return True

    def _on_initiator_change(self, event: ElementEvent) -> None:
        name = event.target.name
        if name is not None:
            self.evaluate_field(name)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def initiators(self) -> List[str]:
        return list(self._initiators)

    def is_initiator(self, name: Optional[str]) -> bool:
        return name in self._initiators

    def impacted_by(self, name: str) -> List[ImpactedElement]:
        return [self._impacted[i] for i in self._initiators.get(name, [])]

    def get(self, element_id: str) -> Optional[ImpactedElement]:
        return self._impacted.get(element_id)

    def listener_installed(self, element: Element) -> bool:
        return element in self._listening

    def _is_shadow(self, element: Element) -> bool:
        return element.has_attribute(constants.UNCHECKED_SHADOW)

    def initiator_elements(self, name: str) -> List[Element]:
        return [e for e in self.tree.by_name(name) if not self._is_shadow(e)]

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_all(self, suppress_callbacks: bool = False) -> int:
        """Evaluate every initiator field that has at least one live element."""
        evaluated = 0
        for name in list(self._initiators):
            if self.initiator_elements(name):
                evaluated += self.evaluate_field(name, suppress_callbacks)
        return evaluated

    def evaluate_field(self, name: str, suppress_callbacks: bool = False) -> int:
        """Re-evaluate every impacted element of one initiator, in registration order."""
        evaluated = 0
        for element_id in list(self._initiators.get(name, [])):
            if self.evaluate(self._impacted[element_id], suppress_callbacks) is not None:
                evaluated += 1
        return evaluated

    def evaluate(self, impacted: ImpactedElement, suppress_callbacks: bool = False) -> Optional[bool]:
        """
        Compute and apply one impacted element's state.

        Returns the result, or None when the element is not in the tree or
        its evaluation failed.
        """
        element = self.tree.by_id(impacted.element_id)
        if element is None:
            return None
        try:
            result = self.compute(impacted)
            self._apply(impacted, element, result, suppress_callbacks)
        except Exception as e:
            logger.error(f"Evaluating {impacted.element_id!r} failed: {e}")
            return None
        return result

    def compute(self, impacted: ImpactedElement) -> bool:
        for entry in impacted.conditions.values():
            if not entry.apply_polarity(self.entry_matches(entry)):
                return False
        return True

    def entry_matches(self, entry: ConditionEntry) -> bool:
        elements = self.initiator_elements(entry.initiator)
        if not elements:
            return False
        return any(self._value_matches(elements, expected) for expected in entry.values)

    def _value_matches(self, elements: List[Element], expected: str) -> bool:
        checkables = [e for e in elements if e.is_checkable]
        if checkables:
            if is_blank(expected):
                return not any(e.checked for e in checkables)
            return any(e.checked and e.value == expected for e in checkables)
        return any(e.value == expected for e in elements)

    def _apply(self, impacted: ImpactedElement, element: Element, result: bool,
               suppress_callbacks: bool) -> None:
        previous = impacted.state
        if impacted.effect is Effect.VISIBILITY:
            if result:
                element.show()
            else:
                element.hide()
        self._set_enabled(element, result and not self._inside_hidden_section(element))

        impacted.state = ImpactState.SHOWN if result else ImpactState.HIDDEN
        impacted.evaluations += 1

        if result or previous is ImpactState.HIDDEN or impacted.callback is None:
            return
        if self._starting or suppress_callbacks:
            logger.debug(f"Suppressed hide callback {impacted.callback!r} for {impacted.element_id!r}")
            return
        self.callbacks.invoke(impacted.callback, impacted.element_id)

    def _is_hidden_section(self, element: Element) -> bool:
        impacted = self._impacted.get(element.id) if element.id else None
        return impacted is not None and impacted.state is ImpactState.HIDDEN

    def _inside_hidden_section(self, element: Element) -> bool:
        return any(self._is_hidden_section(ancestor) for ancestor in element.ancestors())

    def _set_enabled(self, element: Element, enabled: bool) -> None:
        if not enabled:
            for control in element.walk():
                if control.is_form_control:
                    control.disabled = True
            return
        self._enable_subtree(element)

    def _enable_subtree(self, element: Element) -> None:
        """Re-enable form controls, skipping nested sections that are hidden."""
        if element.is_form_control:
            if self._is_shadow(element):
                owner = self.tree.by_id(element.get(constants.UNCHECKED_SHADOW))
                element.disabled = owner is not None and owner.checked
            elif not element.has_class(self.vocabulary.maintain_disabled_class):
                element.disabled = False
        for child in element.element_children():
            if not self._is_hidden_section(child):
                self._enable_subtree(child)


__all__ = ["ImpactState", "ImpactedElement", "DependencyGraph"]
