"""
TaskDesk: multi-user task tracking backend.

The FastAPI application lives in taskdesk.main (``taskdesk.main:app``); the
core services in taskdesk.accounts and taskdesk.tasks can be used without it.
"""

__version__ = "0.1.0"
