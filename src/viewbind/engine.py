"""
Binding Engine

🚀 One engine per view tree session:
`BindingEngine` owns the field registry, the checkbox group controller, the
dependency graph, the host callback table and the attachment watcher for a
single `ViewTree`. Nothing is module-global, so independent widgets (or
tests) each get their own engine.

Example:
    from fastcore.xml import Div, Input, Select, Option, Span

    tree = ViewTree.from_ft(
        Div(
            Select(Option("Male", value="1"), Option("Female", value="2"),
                   name="gender", data_bind="gender"),
            Span(data_bind="gender", data_bind_option_text=True),
            Div("Only for gender 1", data_display="gender:1",
                data_display_hide_callback="onHidden"),
        )
    )

    engine = BindingEngine(tree)
    engine.callbacks.register("onHidden", lambda element_id: print(element_id))
    engine.start()
"""

from typing import Dict, List, Optional, Union
from weakref import WeakKeyDictionary
import logging

from .binding import BindMode, FieldRegistry, detect_mode
from .callbacks import CallbackRegistry, HostCallback
from .checkgroup import CheckGroupController
from .config import EngineConfig, get_config
from .constants import DISPLAY_ONLY_DEPLOYED, UNCHECKED_SHADOW
from .dom import Element, ViewTree
from .exceptions import EngineStateError
from .rules import parse_field
from .scheduler import Scheduler
from .utils import readonly_checkable
from .visibility import DependencyGraph, ImpactedElement
from .watcher import AttachmentBatch, AttachmentWatcher

logger = logging.getLogger(__name__)


class BindingEngine:
    """Wires field sync, checkbox groups and conditional visibility to a tree."""

    def __init__(
        self,
        tree: ViewTree,
        config: Optional[EngineConfig] = None,
        callbacks: Union[CallbackRegistry, Dict[str, HostCallback], None] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        self.tree = tree
        self.config = config or get_config()
        self.vocabulary = self.config.attributes
        self.scheduler = scheduler or Scheduler()
        self.callbacks = callbacks if isinstance(callbacks, CallbackRegistry) else CallbackRegistry(callbacks)

        self.registry = FieldRegistry(tree, self.config, self.scheduler)
        self.checkgroups = CheckGroupController(tree, self.config)
        self.graph = DependencyGraph(tree, self.config, self.callbacks)
        self.watcher = AttachmentWatcher(tree, self.config, self.register_batch)

        self._shadows: 'WeakKeyDictionary[Element, Element]' = WeakKeyDictionary()
        self._started = False
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._started and not self._stopped

    def start(self) -> 'BindingEngine':
        """Scan the tree, register everything and run the startup pass."""
        if self._started:
            raise EngineStateError("Binding engine already started")
        self._started = True
        logger.info(f"Starting binding engine on {self.tree.root!r}")

        self.watcher.start()
        self.tree.observe_checked(self._sync_shadow)
        self.graph.begin_startup()
        self.register_batch(self.watcher.collect(self.tree.root), startup=True)
        self.scheduler.call_soon(self.graph.end_startup)

        logger.info(
            f"Binding engine started: {len(self.registry.fields())} fields, "
            f"{len(self.graph.initiators())} initiators"
        )
        return self

    def stop(self) -> None:
        if not self._started or self._stopped:
            return
        self.watcher.stop()
        self.tree.unobserve_checked(self._sync_shadow)
        self.registry.cancel_pending()
        self._stopped = True
        logger.info("Binding engine stopped")

    def __enter__(self) -> 'BindingEngine':
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Registration path shared by startup and attachment
    # ------------------------------------------------------------------

    def register_batch(self, batch: AttachmentBatch, startup: bool = False) -> None:
        self._mark_maintain_disabled(batch.controls)

        for element in batch.bound:
            self.registry.register(element)
        if startup and self.config.sync_on_start:
            self._initial_sync(batch.bound)

        for element in batch.controllers:
            self.checkgroups.register_controller(element)
        for element in batch.checkboxes:
            self.checkgroups.watch_member(element)
        for element in batch.unchecked_defaults:
            self.inject_unchecked_shadow(element)

        new_impacted: List[ImpactedElement] = []
        for element in batch.impacted:
            if self.graph.is_registered(element):
                continue
            impacted = self.graph.register(element)
            if impacted is not None:
                new_impacted.append(impacted)
        for elements in batch.named.values():
            for element in elements:
                self.graph.install_listener(element)

        for element in batch.display_only:
            self.deploy_display_only(element)

        if startup:
            self.graph.evaluate_all()
            return
        for name in batch.named:
            if self.graph.is_initiator(name):
                self.graph.evaluate_field(name, suppress_callbacks=True)
        for impacted in new_impacted:
            self.graph.evaluate(impacted, suppress_callbacks=True)

    def _mark_maintain_disabled(self, controls: List[Element]) -> None:
        for control in controls:
            if control.disabled:
                control.add_class(self.vocabulary.maintain_disabled_class)

    def _initial_sync(self, bound: List[Element]) -> None:
        for element in bound:
            mode = detect_mode(element)
            if mode in (BindMode.TEXT, BindMode.SELECT) or (mode is BindMode.RADIO and element.checked):
                self.registry.notify_value_changed(element)

    # ------------------------------------------------------------------
    # Display-only rendering
    # ------------------------------------------------------------------

    def _inside_hidden_template(self, element: Element) -> bool:
        marker = self.config.template_id_marker
        return any(
            marker in (ancestor.id or "") and not ancestor.is_displayed
            for ancestor in element.ancestors()
        )

    def deploy_display_only(self, element: Element) -> Optional[Element]:
        """
        Replace an editable control by static text. Checkboxes and radios
        become read-only instead. Returns the inserted span, if any.
        """
        if element.has_class(DISPLAY_ONLY_DEPLOYED) or self._inside_hidden_template(element):
            return None
        element.add_class(DISPLAY_ONLY_DEPLOYED)

        if element.is_checkable:
            readonly_checkable(element, self.config.readonly_opacity)
            return None

        text = element.value
        if element.tag == "select":
            option = element.selected_option
            text = option.text if option is not None else ""
        attrs = {}
        field_name = parse_field(element.get(self.vocabulary.bind))
        if field_name is not None:
            attrs[self.vocabulary.bind] = field_name
        element.hide()
        return self.tree.insert_after(element, Element("span", [text], attrs))

    # ------------------------------------------------------------------
    # Unchecked default values
    # ------------------------------------------------------------------

    def inject_unchecked_shadow(self, checkbox: Element) -> Optional[Element]:
        """
        Insert a hidden input carrying the checkbox's unchecked value; it is
        disabled (left out of form data) while the checkbox is checked,
        however the checked flag was written.
        """
        if checkbox.name is None:
            return None
        if checkbox in self._shadows:
            return self._shadows[checkbox]
        checkbox_id = self.tree.ensure_id(checkbox, self.config.auto_id_prefix)

        shadow = Element("input", attrs={
            "type": "hidden",
            "name": checkbox.name,
            "value": str(checkbox.get(self.vocabulary.unchecked_value)),
            UNCHECKED_SHADOW: checkbox_id,
        })
        self._shadows[checkbox] = shadow
        self.tree.insert_before(checkbox, shadow)
        self._sync_shadow(checkbox)
        return shadow

    def _sync_shadow(self, checkbox: Element) -> None:
        shadow = self._shadows.get(checkbox)
        if shadow is not None:
            shadow.disabled = checkbox.checked or checkbox.disabled

    def shadow_of(self, checkbox: Element) -> Optional[Element]:
        return self._shadows.get(checkbox)

    # ------------------------------------------------------------------
    # Conveniences
    # ------------------------------------------------------------------

    def value_of(self, field_name: str) -> Optional[str]:
        return self.registry.value_of(field_name)

    def toggle_group(self, controller: Element) -> List[Element]:
        return self.checkgroups.toggle_group(controller)

    def refresh(self, name: Optional[str] = None) -> int:
        """Re-evaluate one initiator field, or all of them."""
        if name is None:
            return self.graph.evaluate_all()
        return self.graph.evaluate_field(name)


def start_engine(tree: ViewTree, config: Optional[EngineConfig] = None,
                 callbacks: Union[CallbackRegistry, Dict[str, HostCallback], None] = None,
                 scheduler: Optional[Scheduler] = None) -> BindingEngine:
    """Create and start an engine for `tree`."""
    return BindingEngine(tree, config=config, callbacks=callbacks, scheduler=scheduler).start()


__all__ = ["BindingEngine", "start_engine"]
