"""
Exception handlers for the Toolgate server.

This package maps execution core errors to HTTP responses and provides the
catch-all handler for unexpected errors.
"""

from .global_handler import setup_exception_handlers, status_for

__all__ = ["setup_exception_handlers", "status_for"]
