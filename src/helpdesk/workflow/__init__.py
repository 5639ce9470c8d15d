"""
Workflow Module
===============

Bounded Context for the workflow rule engine.

Responsibilities:
- Name-keyed registry of trigger/conditions/actions rules
- Evaluating rules against a ticket on lifecycle events
- Interpreting the fixed action vocabulary through the ticket state machine
- Shipping default rules (auto-assign, urgent escalation, auto-close)
"""
