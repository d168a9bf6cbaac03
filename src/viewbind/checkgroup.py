"""
Checkbox Group Controller

A button or checkbox carrying ``data-check-field="<key>"`` controls every
checkbox whose name matches the key (exact, or ``^`` prefix, ``$`` suffix,
``*`` contains). Clicking it checks/unchecks the whole group; a controller
checkbox also works in reverse as a "select all" indicator that is checked
exactly when all members are.

Membership is resolved against the live tree on every use, so checkboxes
inserted later take part without re-registration.
"""

from typing import Dict, List, Optional, Set
from weakref import WeakSet
import logging

from .config import EngineConfig
from .dom import Element, ElementEvent, ViewTree
from .rules import CheckGroupKey, parse_check_field

logger = logging.getLogger(__name__)


class CheckGroupController:
    """Parent/child check propagation for one view tree session."""

    def __init__(self, tree: ViewTree, config: EngineConfig):
        self.tree = tree
        self.config = config
        self.vocabulary = config.attributes
        self._controllers: 'WeakSet[Element]' = WeakSet()
        self._members: 'WeakSet[Element]' = WeakSet()
        self._reverse_keys: Dict[str, CheckGroupKey] = {}

    def key_of(self, element: Element) -> Optional[CheckGroupKey]:
        return parse_check_field(element.get(self.vocabulary.check_field))

    @property
    def reverse_keys(self) -> List[CheckGroupKey]:
        return list(self._reverse_keys.values())

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_controller(self, element: Element) -> Optional[CheckGroupKey]:
        """Install the click handler of a controller (once per element)."""
        key = self.key_of(element)
        if key is None or not (element.is_checkbox or element.tag == "button"):
            return None

        self.tree.ensure_id(element, self.config.auto_id_prefix)
        if element not in self._controllers:
            self._controllers.add(element)
            element.listen("click", self._on_controller_click)

        if element.is_checkbox:
            self.link_reverse(element)
        return key

    def link_reverse(self, element: Element) -> Optional[CheckGroupKey]:
        """
        Make every controller checkbox of this key follow its members:
        checked iff all members are checked.
        """
        key = self.key_of(element)
        if key is None:
            return None
        if key.raw not in self._reverse_keys:
            self._reverse_keys[key.raw] = key
            logger.debug(f"Linked select-all indicator for check field {key.raw!r}")
        for checkbox in self.tree.checkboxes():
            self.watch_member(checkbox)
        return key

    def watch_member(self, checkbox: Element) -> bool:
        """Listen for changes of a (potential) group member; once per element."""
        if not checkbox.is_checkbox:
            return False
        if checkbox in self._members:
            return False
        self._members.add(checkbox)
        checkbox.listen("change", self._on_member_change)
        return True

    # ------------------------------------------------------------------
    # Group resolution
    # ------------------------------------------------------------------

    def members(self, key: CheckGroupKey) -> List[Element]:
        """Live checkboxes matching `key`, excluding its own controllers."""
        return self.tree.find_all(
            lambda e: e.is_checkbox
            and key.matches(e.name)
            and e.get(self.vocabulary.check_field) != key.raw
        )

    def indicators(self, key: CheckGroupKey) -> List[Element]:
        return [e for e in self.tree.by_attribute(self.vocabulary.check_field, key.raw) if e.is_checkbox]

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def _on_controller_click(self, event: ElementEvent) -> None:
        self.toggle_group(event.target)

    def toggle_group(self, controller: Element, _visited: Optional[Set[str]] = None) -> List[Element]:
        """
        Set every member of the controller's group to the controller's
        checked state (buttons count as checked), recursing into members
        that control groups of their own. Returns the members touched.
        """
        key = self.key_of(controller)
        if key is None:
            return []

        visited = _visited if _visited is not None else set()
        if key.raw in visited:
            logger.warning(f"Check field {key.raw!r} is part of a cycle; skipping repeat toggle")
            return []
        visited.add(key.raw)

        checked = controller.checked if controller.is_checkbox else True
        members = self.members(key)
        for member in members:
            member.checked = checked
        if key.raw in self._reverse_keys:
            self.update_indicators(key)

        touched = list(members)
        for member in members:
            nested = self.key_of(member)
            if nested is not None and nested.raw != key.raw:
                touched.extend(self.toggle_group(member, visited))
        return touched

    def _on_member_change(self, event: ElementEvent) -> None:
        self.refresh_indicators(event.target)

    def refresh_indicators(self, member: Element) -> None:
        """Update the indicators of every linked group `member` belongs to."""
        for key in self.reverse_keys:
            if key.matches(member.name) and member.get(self.vocabulary.check_field) != key.raw:
                self.update_indicators(key)

    def update_indicators(self, key: CheckGroupKey) -> bool:
        all_checked = all(m.checked for m in self.members(key))
        for indicator in self.indicators(key):
            if indicator.checked == all_checked:
                continue
            indicator.checked = all_checked
            indicator.fire("change")
        return all_checked


__all__ = ["CheckGroupController"]
