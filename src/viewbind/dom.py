"""
In-memory View Tree

🌳 The view-tree adapter consumed by the binding engine:
A small, mutable element tree with browser-like form semantics (values,
checked/disabled/hidden flags, select options), per-element event listeners
and a subtree-attached notification. Trees are built from fastcore ``FT``
components and render back to HTML through ``fastcore.xml.to_xml``, so a
page authored with FastHTML-style components can be driven by the engine
and re-emitted after user interaction.

Example:
    from fastcore.xml import Div, Input, Span

    tree = ViewTree.from_ft(
        Div(Input(type="text", data_bind="user"), Span(data_bind="user"))
    )
    tree.by_attribute("data-bind")[0].type_text("ada")
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Union
import logging

from fastcore.xml import FT, ft, to_xml, voids

from . import constants

logger = logging.getLogger(__name__)

Listener = Callable[['ElementEvent'], Any]
AttachHandler = Callable[['Element'], None]
Child = Union['Element', str]

_NON_DATA_INPUT_TYPES = ("button", "submit", "reset", "image", "file")


@dataclass
class ElementEvent:
    """An event dispatched to the listeners of one element"""
    type: str
    target: 'Element'
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        """Skip the listeners not yet called for this event"""
        self.propagation_stopped = True


def _parse_style(style: Any) -> Dict[str, str]:
    if not style:
        return {}
    if isinstance(style, dict):
        return {str(k): str(v) for k, v in style.items()}
    parsed = {}
    for declaration in str(style).split(";"):
        if ":" in declaration:
            prop, value = declaration.split(":", 1)
            parsed[prop.strip()] = value.strip()
    return parsed


class Element:
    """
    One node of the view tree.

    Live form state is kept in `attrs` (``value``, ``checked``,
    ``disabled``, ``selected``) and `style`, so rendering always reflects
    the current state.
    """

    def __init__(self, tag: str, children: Optional[List[Child]] = None,
                 attrs: Optional[Dict[str, Any]] = None):
        self.tag = tag.lower()
        self.attrs: Dict[str, Any] = dict(attrs or {})
        self.style: Dict[str, str] = _parse_style(self.attrs.pop("style", None))
        self.parent: Optional['Element'] = None
        self.children: List[Child] = []
        self._listeners: Dict[str, List[Listener]] = {}
        self._tree: Optional['ViewTree'] = None
        self._cleared = False
        for child in children or []:
            self._adopt(child)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_ft(cls, component: Any) -> 'Element':
        """Convert a fastcore FT component (recursively) into an Element"""
        if isinstance(component, Element):
            return component
        if not isinstance(component, FT):
            raise TypeError(f"Expected an FT component, got {type(component).__name__}")
        children: List[Child] = []
        for child in component.children:
            if child is None:
                continue
            children.append(cls.from_ft(child) if isinstance(child, FT) else str(child))
        return cls(component.tag, children, dict(component.attrs or {}))

    def to_ft(self) -> FT:
        """Convert back into an FT component reflecting the live state"""
        attrs = {k: v for k, v in self.attrs.items() if v is not None and v is not False}
        if self.style:
            attrs["style"] = "; ".join(f"{k}: {v}" for k, v in self.style.items())
        children = [c.to_ft() if isinstance(c, Element) else c for c in self.children]
        return ft(self.tag, *children, void_=self.tag in voids, **attrs)

    def _adopt(self, child: Child, index: Optional[int] = None) -> Child:
        if isinstance(child, FT):
            child = Element.from_ft(child)
        if isinstance(child, Element):
            if child.parent is not None:
                child.parent.remove_child(child)
            child.parent = self
        else:
            child = str(child)
        if index is None:
            self.children.append(child)
        else:
            self.children.insert(index, child)
        return child

    def remove_child(self, child: 'Element') -> None:
        self.children = [c for c in self.children if c is not child]
        child.parent = None

    # ------------------------------------------------------------------
    # Identity and attributes
    # ------------------------------------------------------------------

    @property
    def id(self) -> Optional[str]:
        value = self.attrs.get("id")
        return None if value is None else str(value)

    @id.setter
    def id(self, value: str) -> None:
        self.attrs["id"] = value

    @property
    def name(self) -> Optional[str]:
        value = self.attrs.get("name")
        return None if value is None else str(value)

    def get(self, attribute: str, default: Any = None) -> Any:
        return self.attrs.get(attribute, default)

    def has_attribute(self, attribute: str) -> bool:
        return self.attrs.get(attribute) not in (None, False)

    @property
    def input_type(self) -> Optional[str]:
        if self.tag != "input":
            return None
        return str(self.attrs.get("type", "text")).lower()

    @property
    def is_checkbox(self) -> bool:
        return self.input_type == "checkbox"

    @property
    def is_radio(self) -> bool:
        return self.input_type == "radio"

    @property
    def is_checkable(self) -> bool:
        return self.input_type in constants.CHOICE_INPUT_TYPES

    @property
    def is_form_control(self) -> bool:
        return self.tag in constants.FORM_CONTROL_TAGS

    @property
    def classes(self) -> List[str]:
        return str(self.attrs.get("class") or "").split()

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def add_class(self, name: str) -> None:
        if not self.has_class(name):
            self.attrs["class"] = " ".join(self.classes + [name])

    def remove_class(self, name: str) -> None:
        remaining = [c for c in self.classes if c != name]
        if remaining:
            self.attrs["class"] = " ".join(remaining)
        else:
            self.attrs.pop("class", None)

    # ------------------------------------------------------------------
    # Form state
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        return "".join(c.text if isinstance(c, Element) else c for c in self.children)

    @text.setter
    def text(self, value: Any) -> None:
        for child in self.children:
            if isinstance(child, Element):
                child.parent = None
        self.children = [] if value is None else [str(value)]

    @property
    def options(self) -> List['Element']:
        return [e for e in self.descendants() if e.tag == "option"]

    @property
    def selected_option(self) -> Optional['Element']:
        options = self.options
        for option in options:
            if option.selected:
                return option
        if options and not self._cleared:
            return options[0]
        return None

    @property
    def selected(self) -> bool:
        return bool(self.attrs.get("selected"))

    @selected.setter
    def selected(self, value: bool) -> None:
        self._set_flag("selected", value)

    @property
    def value(self) -> str:
        if self.tag == "input":
            default = constants.DEFAULT_CHECKBOX_VALUE if self.is_checkable else ""
            value = self.attrs.get("value", default)
            return "" if value is None else str(value)
        if self.tag == "textarea":
            return self.text
        if self.tag == "select":
            option = self.selected_option
            return option.value if option is not None else ""
        if self.tag == "option":
            value = self.attrs.get("value")
            return self.text if value is None else str(value)
        return self.text

    @value.setter
    def value(self, value: Any) -> None:
        value = "" if value is None else str(value)
        if self.tag in ("input", "option"):
            self.attrs["value"] = value
        elif self.tag == "select":
            matched = False
            for option in self.options:
                option.selected = not matched and option.value == value
                matched = matched or option.selected
            self._cleared = not matched
        else:
            self.text = value

    @property
    def checked(self) -> bool:
        return bool(self.attrs.get("checked"))

    @checked.setter
    def checked(self, value: bool) -> None:
        was_checked = self.checked
        self._set_flag("checked", value)
        if was_checked != self.checked:
            tree = self.tree
            if tree is not None:
                tree._notify_checked(self)

    @property
    def disabled(self) -> bool:
        return bool(self.attrs.get("disabled"))

    @disabled.setter
    def disabled(self, value: bool) -> None:
        self._set_flag("disabled", value)

    def _set_flag(self, attribute: str, value: bool) -> None:
        if value:
            self.attrs[attribute] = True
        else:
            self.attrs.pop(attribute, None)

    @property
    def hidden(self) -> bool:
        return self.style.get("display") == "none" or bool(self.attrs.get("hidden"))

    def show(self) -> None:
        self.style.pop("display", None)
        self.attrs.pop("hidden", None)

    def hide(self) -> None:
        self.style["display"] = "none"

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def element_children(self) -> List['Element']:
        return [c for c in self.children if isinstance(c, Element)]

    def descendants(self) -> Iterator['Element']:
        for child in self.element_children():
            yield child
            yield from child.descendants()

    def walk(self) -> Iterator['Element']:
        yield self
        yield from self.descendants()

    def ancestors(self) -> Iterator['Element']:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def closest(self, predicate: Callable[['Element'], bool]) -> Optional['Element']:
        for node in self.walk_up():
            if predicate(node):
                return node
        return None

    def walk_up(self) -> Iterator['Element']:
        yield self
        yield from self.ancestors()

    @property
    def tree(self) -> Optional['ViewTree']:
        top = self
        for top in self.walk_up():
            pass
        return top._tree

    @property
    def is_attached(self) -> bool:
        return self.tree is not None

    @property
    def is_displayed(self) -> bool:
        return not any(node.hidden for node in self.walk_up())

    # ------------------------------------------------------------------
    # Events and interaction
    # ------------------------------------------------------------------

    def listen(self, event_type: str, handler: Listener, prepend: bool = False) -> Listener:
        handlers = self._listeners.setdefault(event_type, [])
        if prepend:
            handlers.insert(0, handler)
        else:
            handlers.append(handler)
        return handler

    def unlisten(self, event_type: str, handler: Listener) -> None:
        handlers = self._listeners.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, []))

    def fire(self, event_type: str) -> ElementEvent:
        """Dispatch an event to this element's listeners, in order"""
        event = ElementEvent(type=event_type, target=self)
        for handler in list(self._listeners.get(event_type, [])):
            handler(event)
            if event.propagation_stopped:
                break
        return event

    def type_text(self, text: str) -> None:
        """Simulate typing: replace the value, then fire input and change"""
        self.value = text
        self.fire("input")
        self.fire("change")

    def choose(self, value: str) -> None:
        """Simulate picking an option of a select"""
        self.value = value
        self.fire("change")

    def click(self) -> Optional[ElementEvent]:
        """
        Simulate a user click.

        Checkboxes toggle and radios check (unchecking their name group)
        before the click listeners run; a listener calling
        `prevent_default` reverts that. A `change` follows when the
        checked state actually changed.
        """
        if self.disabled:
            return None

        group = self._radio_group() if self.is_radio else [self]
        before = [(element, element.checked) for element in group]
        if self.is_checkbox:
            self.checked = not self.checked
        elif self.is_radio:
            for element in group:
                element.checked = element is self

        event = self.fire("click")
        if event.default_prevented:
            for element, was_checked in before:
                element.checked = was_checked
            return event

        if self.is_checkable and dict(before)[self] != self.checked:
            self.fire("change")
        return event

    def _radio_group(self) -> List['Element']:
        tree = self.tree
        if tree is None or self.name is None:
            return [self]
        group = [e for e in tree.by_name(self.name) if e.is_radio]
        return group if self in group else group + [self]

    def blur(self) -> None:
        self.fire("blur")

    def __repr__(self) -> str:
        ident = f"#{self.id}" if self.id else ""
        name = f" name={self.name!r}" if self.name else ""
        return f"<Element {self.tag}{ident}{name}>"


class ViewTree:
    """
    A rooted element tree with a subtree-attached notification.

    Subscribers registered with `subscribe` are called with the root of
    every subtree inserted through `append`/`insert_before`/`insert_after`.
    Observers registered with `observe_checked` are called with every
    attached element whose checked flag changes.
    """

    def __init__(self, root: Optional[Element] = None):
        self.root = root if root is not None else Element("body")
        self.root._tree = self
        self._subscribers: List[AttachHandler] = []
        self._checked_observers: List[AttachHandler] = []
        self._id_counter = 0

    @classmethod
    def from_ft(cls, *components: Any, root_tag: str = "body") -> 'ViewTree':
        """Build a tree whose root holds the given FT components"""
        return cls(Element(root_tag, [Element.from_ft(c) for c in components]))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def walk(self) -> Iterator[Element]:
        return self.root.walk()

    def find_all(self, predicate: Callable[[Element], bool]) -> List[Element]:
        return [e for e in self.walk() if predicate(e)]

    def by_id(self, element_id: Optional[str]) -> Optional[Element]:
        if element_id is None:
            return None
        for element in self.walk():
            if element.id == element_id:
                return element
        return None

    def by_name(self, name: str) -> List[Element]:
        return self.find_all(lambda e: e.name == name)

    def by_attribute(self, attribute: str, value: Optional[str] = None) -> List[Element]:
        if value is None:
            return self.find_all(lambda e: e.has_attribute(attribute))
        return self.find_all(lambda e: e.attrs.get(attribute) == value)

    def checkboxes(self) -> List[Element]:
        return self.find_all(lambda e: e.is_checkbox)

    def ensure_id(self, element: Element, prefix: str = constants.DEFAULT_ID_PREFIX) -> str:
        """Give the element a unique generated id unless it already has one"""
        if element.id is not None and element.id.strip() != "":
            return element.id
        while True:
            candidate = f"{prefix}{self._id_counter}"
            self._id_counter += 1
            if self.by_id(candidate) is None:
                element.id = candidate
                return candidate

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append(self, parent: Element, child: Any, index: Optional[int] = None) -> Element:
        """Insert `child` (an Element or FT component) under `parent`"""
        element = parent._adopt(child if isinstance(child, (Element, FT)) else str(child), index)
        if isinstance(element, Element) and parent.is_attached:
            self._notify_attached(element)
        return element

    def insert_before(self, reference: Element, child: Any) -> Element:
        parent = reference.parent
        return self.append(parent, child, parent.children.index(reference))

    def insert_after(self, reference: Element, child: Any) -> Element:
        parent = reference.parent
        return self.append(parent, child, parent.children.index(reference) + 1)

    def remove(self, element: Element) -> None:
        if element.parent is not None:
            element.parent.remove_child(element)

    # ------------------------------------------------------------------
    # Subtree-attached notification
    # ------------------------------------------------------------------

    def subscribe(self, handler: AttachHandler) -> None:
        self._subscribers.append(handler)

    def unsubscribe(self, handler: AttachHandler) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _notify_attached(self, element: Element) -> None:
        for handler in list(self._subscribers):
            try:
                handler(element)
            except Exception as e:
                logger.error(f"Attach handler failed for {element!r}: {e}")

    # ------------------------------------------------------------------
    # Checked-state notification
    # ------------------------------------------------------------------

    def observe_checked(self, handler: AttachHandler) -> None:
        """Call `handler` with every attached element whose checked flag flips,
        whether by a click or by a direct write."""
        if handler not in self._checked_observers:
            self._checked_observers.append(handler)

    def unobserve_checked(self, handler: AttachHandler) -> None:
        if handler in self._checked_observers:
            self._checked_observers.remove(handler)

    def _notify_checked(self, element: Element) -> None:
        for handler in list(self._checked_observers):
            try:
                handler(element)
            except Exception as e:
                logger.error(f"Checked-state handler failed for {element!r}: {e}")

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def render(self) -> str:
        return to_xml(self.root.to_ft())

    def form_data(self) -> Dict[str, List[str]]:
        """Values a form submission of the whole tree would carry, by name"""
        data: Dict[str, List[str]] = {}
        for element in self.walk():
            if element.name is None or not element.is_form_control or element.disabled:
                continue
            if element.is_checkable and not element.checked:
                continue
            if element.input_type in _NON_DATA_INPUT_TYPES:
                continue
            data.setdefault(element.name, []).append(element.value)
        return data


__all__ = ["ElementEvent", "Element", "ViewTree", "Listener", "AttachHandler"]
