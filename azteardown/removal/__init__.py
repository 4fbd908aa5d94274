"""Resource removal module.

This module removes Azure resources using per-type removal recipes, handling
soft-delete states, dependent child resources, locks and time-gated
provider operations.

Classes:
    ResourceRemover: Dispatches a resource to its removal recipe
    RecipeRegistry: Resource type to recipe mapping
    TeardownRunner: Batch removal with ordering, retry cycles and audit logging
    AuditStorage: Audit log storage and retrieval
"""

from __future__ import annotations

from .audit import AuditStorage
from .cleaner import TeardownRunner
from .registry import RecipeRegistry
from .remover import ResourceRemover

__all__ = [
    "ResourceRemover",
    "RecipeRegistry",
    "TeardownRunner",
    "AuditStorage",
]
