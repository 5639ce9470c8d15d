"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (tickets, sla, workflow, notifications).

DO NOT add business logic from any bounded context to the shared kernel.
"""
