"""
Workflow Rule Loader
====================

Reads additional rules from a YAML file at startup.

Expected layout::

    rules:
      - name: tag_billing
        trigger: ticket_created
        conditions:
          - {field: category, operator: equals, value: billing}
        actions:
          - {type: add_tag, value: billing}
"""

from pathlib import Path
from typing import List

import yaml
from pydantic import ValidationError

from helpdesk.core import ConfigurationException
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.workflow.application.dto import WorkflowRuleCreateDTO
from helpdesk.workflow.domain import WorkflowRule

logger = get_logger(__name__)


def load_rules_from_yaml(path: Path) -> List[WorkflowRule]:
    """Parse the rules file; a missing file yields no rules."""
    path = Path(path)
    if not path.exists():
        logger.warning("Workflow rules file not found", extra={"path": str(path)})
        return []

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationException(
            f"Invalid workflow rules file {path}",
            {"path": str(path), "error": str(e)}
        ) from e

    entries = data.get("rules", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ConfigurationException(
            f"Workflow rules file {path} must hold a list of rules",
            {"path": str(path)}
        )

    rules = []
    for index, entry in enumerate(entries):
        try:
            dto = WorkflowRuleCreateDTO.model_validate(entry)
            rules.append(WorkflowRule.model_validate(dto.model_dump()))
        except ValidationError as e:
            raise ConfigurationException(
                f"Invalid workflow rule #{index} in {path}",
                {"path": str(path), "index": index, "error": str(e)}
            ) from e

    logger.info("Workflow rules loaded", extra={"path": str(path), "count": len(rules)})
    return rules
