"""
SLA Module
==========

Bounded Context for first-response Service Level Agreements.

Responsibilities:
- Business-hours calendar arithmetic
- Compute first-response deadlines from per-priority policies
- Keep deadlines consistent on first reply and priority changes
- Periodic sweep stamping warnings and breaches exactly once
- Notify agents and run `sla_breached` automations on breach
- Configuration API for business hours and policies
"""
