"""
Workflow Infrastructure Layer
=============================

Contains:
- Loader: YAML file of additional workflow rules
"""

from helpdesk.workflow.infrastructure.loader import load_rules_from_yaml

__all__ = ["load_rules_from_yaml"]
