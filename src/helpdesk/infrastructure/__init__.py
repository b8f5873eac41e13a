"""
Infrastructure
==============

Cross-module technical plumbing (database engine and sessions).
"""
