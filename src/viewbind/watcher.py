"""
Attachment Watcher

Subscribes to the view tree's subtree-attached notification and turns every
inserted subtree into one `AttachmentBatch`: the elements each subsystem
needs to register, with named elements grouped by name so that a radio
group inserted at once costs one evaluation pass, not one per radio.

The engine runs the same registration path for the initial tree (via
`collect`) and for every batch delivered here.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List
import logging

from . import constants
from .config import EngineConfig
from .dom import Element, ViewTree
from .rules import has_control_attribute, parse_field

logger = logging.getLogger(__name__)


@dataclass
class AttachmentBatch:
    """Elements of one inserted subtree, sorted by the subsystem that needs them"""
    bound: List[Element] = field(default_factory=list)
    controllers: List[Element] = field(default_factory=list)
    checkboxes: List[Element] = field(default_factory=list)
    impacted: List[Element] = field(default_factory=list)
    display_only: List[Element] = field(default_factory=list)
    unchecked_defaults: List[Element] = field(default_factory=list)
    controls: List[Element] = field(default_factory=list)
    named: Dict[str, List[Element]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.bound or self.controllers or self.checkboxes or self.impacted
                    or self.display_only or self.controls or self.named)


BatchHandler = Callable[[AttachmentBatch], None]


class AttachmentWatcher:
    """Delivers an `AttachmentBatch` for every subtree attached to the tree."""

    def __init__(self, tree: ViewTree, config: EngineConfig, on_batch: BatchHandler):
        self.tree = tree
        self.config = config
        self.vocabulary = config.attributes
        self.on_batch = on_batch
        self._watching = False

    @property
    def is_watching(self) -> bool:
        return self._watching

    def start(self) -> None:
        if not self._watching:
            self.tree.subscribe(self._on_attached)
            self._watching = True

    def stop(self) -> None:
        if self._watching:
            self.tree.unsubscribe(self._on_attached)
            self._watching = False

    def _on_attached(self, root: Element) -> None:
        batch = self.collect(root)
        if batch.is_empty:
            return
        logger.debug(f"Registering attached subtree {root!r}")
        self.on_batch(batch)

    def collect(self, root: Element) -> AttachmentBatch:
        """Walk `root` (inclusive) and sort its elements into a batch."""
        vocabulary = self.vocabulary
        batch = AttachmentBatch()
        for element in root.walk():
            if element.has_attribute(constants.UNCHECKED_SHADOW):
                continue
            if parse_field(element.get(vocabulary.bind)) is not None:
                batch.bound.append(element)
            if element.has_attribute(vocabulary.check_field) and (element.is_checkbox or element.tag == "button"):
                batch.controllers.append(element)
            if element.is_checkbox:
                batch.checkboxes.append(element)
                if element.get(vocabulary.unchecked_value) is not None:
                    batch.unchecked_defaults.append(element)
            if has_control_attribute(element.attrs, vocabulary):
                batch.impacted.append(element)
            if element.is_form_control:
                batch.controls.append(element)
                if element.has_class(vocabulary.display_only_class):
                    batch.display_only.append(element)
            if element.name is not None:
                batch.named.setdefault(element.name, []).append(element)
        return batch


__all__ = ["AttachmentBatch", "AttachmentWatcher", "BatchHandler"]
