"""
HelpDesk SLA Engine
===================

SLA monitoring, escalation and workflow automation core for a
customer-support ticketing system.

Bounded contexts:
- tickets: ticket state machine with optimistic locking
- sla: SLA policy, monitor, escalation policy and scheduler
- workflow: condition/action rule engine reacting to ticket events
- notifications: notification recording and delivery
"""

__version__ = "1.0.0"
