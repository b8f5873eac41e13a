"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Logging setup
- Tenancy models (organizations, members)
"""
