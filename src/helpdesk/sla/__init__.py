"""
SLA Monitoring Module
=====================

Bounded Context for Service Level Agreement monitoring and escalation.

Responsibilities:
- Map ticket priority to response/resolution budgets and due dates
- Classify tickets into SLA statuses
- Fire one-shot warning/breach notifications per cool-down window
- Escalate breached, unassigned and stale high-priority tickets
- Run both scans on a background scheduler with hot-reloadable config
"""
