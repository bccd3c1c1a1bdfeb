"""Hierarchical project plans with cascading done/undone status."""

from planz.errors import PlanzError, StoreError, UserError
from planz.service import PlanStore

__all__ = ["PlanStore", "PlanzError", "StoreError", "UserError"]
