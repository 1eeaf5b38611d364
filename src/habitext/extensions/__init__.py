"""Extension layer: registry, dispatch, merge, and health.

Discovery: entry_points (pip-installed) via pluggy, plus built-in plugins.
INVARIANT: Extension failures are warnings, never errors. Only invalid
registrations fail, and only at boot.
"""

from habitext.extensions.builder import DataManager, ExtensionBuilder, create_simple_extension
from habitext.extensions.descriptor import ALL_TYPES, ExtensionDescriptor
from habitext.extensions.dispatcher import EventDispatcher, MergeResult
from habitext.extensions.health import HealthAggregator, HealthReport, HealthStatus
from habitext.extensions.hookspecs import hookimpl
from habitext.extensions.merger import IntegrationMerger, WriteSet
from habitext.extensions.registry import ExtensionRegistry

__all__ = [
    "ALL_TYPES",
    "DataManager",
    "EventDispatcher",
    "ExtensionBuilder",
    "ExtensionDescriptor",
    "ExtensionRegistry",
    "HealthAggregator",
    "HealthReport",
    "HealthStatus",
    "IntegrationMerger",
    "MergeResult",
    "WriteSet",
    "create_simple_extension",
    "hookimpl",
]
