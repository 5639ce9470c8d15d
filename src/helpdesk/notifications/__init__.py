"""
Notifications Module
====================

Bounded Context for the notifier collaborator.

Responsibilities:
- Recording notifications synchronously so cool-down queries see them
- Fire-and-forget delivery to pluggable channels (webhook)
- Broadcasting to all active admins
- Containing every delivery failure at the call site
"""
