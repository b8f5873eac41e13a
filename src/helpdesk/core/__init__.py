"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from helpdesk.core.exceptions import (
    ApplicationException,
    RepositoryException,
    ValidationException,
    InvalidConditionException,
    ResourceNotFoundException,
    AuthorizationException,
)

__all__ = [
    "ApplicationException",
    "RepositoryException",
    "ValidationException",
    "InvalidConditionException",
    "ResourceNotFoundException",
    "AuthorizationException",
]
