"""
viewbind - Declarative Attribute-Driven View Synchronization

Markup declares behavior through attributes (``data-bind``,
``data-check-field``, ``data-display`` and friends); a `BindingEngine`
scans a view tree built from fastcore FT components and keeps bound fields
in sync, drives checkbox groups and shows, hides, enables or disables
elements as the fields they depend on change.
"""

from .config import (
    EngineConfig, Environment, LoggingConfig, AttributeConfig,
    configure_logging, set_config, get_config,
    configure_from_file, configure_from_dict,
)
from .exceptions import (
    ViewBindError, EngineStateError, UsageError,
    InvalidArgumentError, SelectionError, UnmodifiableElementError,
)
from .dom import Element, ElementEvent, ViewTree
from .rules import (
    MatchMode, Polarity, Effect, CheckGroupKey, ConditionEntry, ControlRule,
    parse_field, parse_check_field, parse_conditions, extract_control_rule,
)
from .scheduler import Scheduler, Debouncer
from .callbacks import CallbackRegistry
from .binding import BindMode, BindField, FieldRegistry
from .checkgroup import CheckGroupController
from .visibility import DependencyGraph, ImpactedElement, ImpactState
from .watcher import AttachmentBatch, AttachmentWatcher
from .engine import BindingEngine, start_engine
from .utils import boolean, is_blank, is_checked, increase, transform, readonly_checkable

__version__ = "0.1.0"

__all__ = [
    # Engine
    'BindingEngine',
    'start_engine',

    # View tree
    'Element',
    'ElementEvent',
    'ViewTree',

    # Subsystems
    'FieldRegistry',
    'BindField',
    'BindMode',
    'CheckGroupController',
    'DependencyGraph',
    'ImpactedElement',
    'ImpactState',
    'AttachmentWatcher',
    'AttachmentBatch',
    'CallbackRegistry',
    'Scheduler',
    'Debouncer',

    # Rules
    'MatchMode',
    'Polarity',
    'Effect',
    'CheckGroupKey',
    'ConditionEntry',
    'ControlRule',
    'parse_field',
    'parse_check_field',
    'parse_conditions',
    'extract_control_rule',

    # Host utilities
    'boolean',
    'is_blank',
    'is_checked',
    'increase',
    'transform',
    'readonly_checkable',

    # Configuration
    'EngineConfig',
    'Environment',
    'LoggingConfig',
    'AttributeConfig',
    'configure_logging',
    'set_config',
    'get_config',
    'configure_from_file',
    'configure_from_dict',

    # Errors
    'ViewBindError',
    'EngineStateError',
    'UsageError',
    'InvalidArgumentError',
    'SelectionError',
    'UnmodifiableElementError',
]
