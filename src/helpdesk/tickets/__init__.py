"""
Tickets Module
==============

Bounded Context for the ticket entity and its state machine.

Responsibilities:
- Ticket creation with SLA budgets and due date
- Status/priority/assignment/tag mutations with optimistic locking
- Authorization predicate for human-initiated changes
- Emitting lifecycle triggers to the workflow engine after each save
"""
