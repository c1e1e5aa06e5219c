"""
Storage module - workflow definition repositories.
"""

from .repository import InMemoryWorkflowRepository, WorkflowRepository

__all__ = ["WorkflowRepository", "InMemoryWorkflowRepository"]
