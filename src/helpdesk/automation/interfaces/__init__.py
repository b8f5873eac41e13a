"""
Automation Interfaces Layer
===========================

FastAPI route handlers for automation rules.
"""

from helpdesk.automation.interfaces.controllers import automation_router

__all__ = ["automation_router"]
