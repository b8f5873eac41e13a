"""
Automation Module
=================

Bounded Context for tenant-configured ticket automations.

Responsibilities:
- Interpret persisted condition trees against ticket facts
- Collect actions from every matching rule, highest priority first
- Apply actions (tags, priority, status, assignee) to tickets
- Rule management API
"""
