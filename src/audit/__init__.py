"""Audit logging package."""

from src.audit.logger import AuditLogger, create_correlation_id, get_logger

__all__ = ["AuditLogger", "create_correlation_id", "get_logger"]
