"""
interceptor: pmguard's process hand-off layer.

Public API:
    Dispatcher  : Runs an intercepted command after consulting the policy.
"""

from .dispatcher import Dispatcher, exit_status

__all__ = [
    "Dispatcher",
    "exit_status",
]
