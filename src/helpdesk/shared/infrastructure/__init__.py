"""
Shared Infrastructure
=====================

Low-level technical concerns:
- Logging setup
- Clock access
"""
