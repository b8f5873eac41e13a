"""
Help-Desk SLA Service
=====================

First-response SLA deadlines on a business-hours calendar, the periodic
warning/breach sweep and tenant-configured ticket automations.
"""

__version__ = "1.0.0"
