"""
Voice Translation Pipeline

Single-operation pipeline and the sequential batch coordinator.
"""

from .batch import BatchCoordinator, rollup_status
from .operation import (
    OperationPipeline,
    fallback_translation,
    truncate_error,
)

__all__ = [
    "BatchCoordinator",
    "OperationPipeline",
    "fallback_translation",
    "rollup_status",
    "truncate_error",
]
