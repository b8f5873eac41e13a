"""
Shared Kernel Module
====================

Infrastructure and tenancy records used across all bounded contexts
(SLA, Automation, Notifications, Ticket events).

Architecture Pattern: Modular Monolith
- Each module (sla, automation) is a bounded context
- Shared kernel contains only generic infrastructure
- Domain models are extended within each module

DO NOT add business logic from SLA or Automation to shared kernel.
"""

__version__ = "1.0.0"
