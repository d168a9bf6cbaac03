"""
Attribute vocabulary and engine constants.

The attribute names are the declarative surface of viewbind: markup authored
against them must keep working, so they only change through
`viewbind.config.AttributeConfig`.
"""

# Field binding
BIND = "data-bind"
OPTION_TEXT = "data-bind-option-text"
HIGHLIGHT_MINUS = "data-enable-highlight-minus"

# Checkbox groups
CHECK_FIELD = "data-check-field"

# Visibility / enablement control, in priority order
DISPLAY = "data-display"
HIDE = "data-hide"
ENABLE = "data-enable"
DISABLE = "data-disable"
DISPLAY_HIDE_CALLBACK = "data-display-hide-callback"

# Rendering helpers
DISPLAY_ONLY = "display-only"
DISPLAY_ONLY_DEPLOYED = "display-only-deployed"
MAINTAIN_DISABLED = "maintain-disabled"
UNCHECKED_VALUE = "data-unchecked-value"
UNCHECKED_SHADOW = "data-unchecked-shadow"

DEFAULT_ID_PREFIX = "_data_bind_no_"
TEMPLATE_ID_MARKER = "emplate"
NON_SELECTABLE_OPACITY = "0.5"

# Tags the evaluator treats as form controls
FORM_CONTROL_TAGS = ("input", "textarea", "select")

# Input types that are checked rather than typed into
CHOICE_INPUT_TYPES = ("checkbox", "radio")
DEFAULT_CHECKBOX_VALUE = "on"

__all__ = [
    "BIND", "OPTION_TEXT", "HIGHLIGHT_MINUS", "CHECK_FIELD",
    "DISPLAY", "HIDE", "ENABLE", "DISABLE", "DISPLAY_HIDE_CALLBACK",
    "DISPLAY_ONLY", "DISPLAY_ONLY_DEPLOYED", "MAINTAIN_DISABLED",
    "UNCHECKED_VALUE", "UNCHECKED_SHADOW", "DEFAULT_ID_PREFIX",
    "TEMPLATE_ID_MARKER", "NON_SELECTABLE_OPACITY", "FORM_CONTROL_TAGS",
    "CHOICE_INPUT_TYPES", "DEFAULT_CHECKBOX_VALUE",
]
