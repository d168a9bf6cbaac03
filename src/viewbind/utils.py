"""
Host Utilities

Helpers exposed to host code working with a bound view tree. Unlike markup
problems, wrong usage here is a caller bug and raises a `UsageError`
subclass.
"""

from typing import Any, Callable, Iterable, List, Optional, Union

from . import constants
from .dom import Element, ElementEvent
from .exceptions import InvalidArgumentError, SelectionError, UnmodifiableElementError, UsageError
from .rules import is_blank as _is_blank_string

ElementsLike = Union[Element, Iterable[Element]]

_READONLY_MARKER = "aria-readonly"
_STYLED_PARENT_TAGS = ("label", "span", "div")


def as_elements(elements: ElementsLike) -> List[Element]:
    if isinstance(elements, Element):
        return [elements]
    return list(elements)


def single(elements: ElementsLike, operation: str) -> Optional[Element]:
    """The only element of `elements`; None when empty"""
    found = as_elements(elements)
    if len(found) > 1:
        raise SelectionError(f"{operation}() needs a single element, got {len(found)}")
    return found[0] if found else None


def boolean(elements: ElementsLike, test: Optional[bool] = None) -> Optional[bool]:
    """
    Interpret an element's value as a boolean.

    Returns True/False for "true"/"false" (any case) and None otherwise.
    With `test`, returns whether the interpreted value is exactly `test`.
    """
    if test is not None and not isinstance(test, bool):
        raise InvalidArgumentError(
            f"Invalid type of argument. Expected: bool. Received: {type(test).__name__}."
        )
    element = single(elements, "boolean")
    value = None
    if element is not None:
        text = element.value.lower()
        if text == "true":
            value = True
        elif text == "false":
            value = False
    if test is None:
        return value
    return value is test


def is_blank(target: Any = None) -> bool:
    """
    Blank check for plain values (None, empty or whitespace-only) and for
    elements: blank unless some checkbox/radio is checked or some other
    element holds a non-blank value.
    """
    if target is None or isinstance(target, str):
        return _is_blank_string(target)
    if not isinstance(target, (Element, list, tuple, set)):
        return _is_blank_string(str(target))
    for element in as_elements(target):
        if element.is_checkable:
            if element.checked:
                return False
        elif not _is_blank_string(element.value):
            return False
    return True


def is_checked(elements: ElementsLike) -> bool:
    return any(element.checked for element in as_elements(elements))


def _ensure_modifiable(element: Element, operation: str) -> None:
    if element.is_checkable or element.tag == "select":
        raise UnmodifiableElementError(f"{operation}() cannot rewrite the value of {element!r}")


def _parse_number(text: str, element: Element) -> Union[int, float]:
    if _is_blank_string(text):
        return 0
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        raise UsageError(f"increase() expects a numeric value in {element!r}, found {text!r}")


def increase(element: ElementsLike, amount: Union[int, float] = 1, notify: bool = True) -> str:
    """Add `amount` to the numeric value (or text) of a single element."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise InvalidArgumentError(f"increase() amount must be a number, got {type(amount).__name__}")
    target = single(element, "increase")
    if target is None:
        raise SelectionError("increase() needs a single element, got 0")
    _ensure_modifiable(target, "increase")

    result = _parse_number(target.value, target) + amount
    if isinstance(result, float) and result.is_integer() and isinstance(amount, int):
        result = int(result)
    target.value = str(result)
    if notify:
        target.fire("change")
    return target.value


def transform(elements: ElementsLike, func: Optional[Callable[[str], Any]] = None,
              prepend: str = "", append: str = "", notify: bool = True) -> List[str]:
    """
    Rewrite the value (or text) of each element, either through `func` or
    by wrapping it with `prepend`/`append`.
    """
    if func is not None and not callable(func):
        raise InvalidArgumentError(f"transform() func must be callable, got {type(func).__name__}")
    targets = as_elements(elements)
    for element in targets:
        _ensure_modifiable(element, "transform")

    results = []
    for element in targets:
        current = element.value
        element.value = str(func(current)) if func is not None else f"{prepend}{current}{append}"
        if notify:
            element.fire("change")
        results.append(element.value)
    return results


def _block_click(event: ElementEvent) -> None:
    event.prevent_default()
    event.stop_propagation()


def readonly_checkable(elements: ElementsLike, opacity: str = constants.NON_SELECTABLE_OPACITY) -> List[Element]:
    """Make checkboxes/radios ignore clicks and dim their wrapping element."""
    changed = []
    for element in as_elements(elements):
        if not element.is_checkable or element.get(_READONLY_MARKER) == "true":
            continue
        element.attrs[_READONLY_MARKER] = "true"
        element.listen("click", _block_click, prepend=True)
        parent = element.parent
        if parent is not None and parent.tag in _STYLED_PARENT_TAGS:
            parent.style["cursor"] = "default"
            parent.style["opacity"] = opacity
        changed.append(element)
    return changed


__all__ = [
    "as_elements", "single", "boolean", "is_blank", "is_checked",
    "increase", "transform", "readonly_checkable",
]
