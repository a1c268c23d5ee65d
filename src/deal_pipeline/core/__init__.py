"""Shared errors and configuration."""

from .errors import (
    DealPipelineError,
    ValidationError,
    InvariantViolation,
    PersistenceError,
    ConflictError,
    OpportunityNotFound,
)
from .config import DealConfig, DealConfigManager

__all__ = [
    "DealPipelineError",
    "ValidationError",
    "InvariantViolation",
    "PersistenceError",
    "ConflictError",
    "OpportunityNotFound",
    "DealConfig",
    "DealConfigManager",
]
