"""Data models for resource identifiers, retry policies and deletion audit records."""

from .deletion_operation import DeletionOperation, OperationMode, OperationStatus
from .deletion_record import DeletionRecord, DeletionStatus
from .removal_target import RemovalTarget
from .resource_id import ResourceIdentifier
from .retry_policy import RetryPolicy

__all__ = [
    "DeletionOperation",
    "DeletionRecord",
    "DeletionStatus",
    "OperationMode",
    "OperationStatus",
    "RemovalTarget",
    "ResourceIdentifier",
    "RetryPolicy",
]
