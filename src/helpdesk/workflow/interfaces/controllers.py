"""
Workflow Controllers (API Routes)
=================================

FastAPI routes for administering workflow rules.

Creating and deleting rules is restricted to admins; agents may also list,
dry-run and inspect them.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from helpdesk.shared.api.dependencies import (
    get_workflow_engine,
    require_admin,
    require_agent_or_admin,
)
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.tickets.domain import Actor
from helpdesk.workflow.application import (
    RuleTestRequest,
    RuleTestResponse,
    WorkflowEngine,
    WorkflowRuleCreateDTO,
    WorkflowStatsResponse,
)
from helpdesk.workflow.domain import WorkflowRule

logger = get_logger(__name__)
router = APIRouter(prefix="/workflow", tags=["Workflow"])


@router.get("/rules", response_model=List[WorkflowRule], summary="List workflow rules")
async def list_rules(
    actor: Actor = Depends(require_agent_or_admin),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> List[WorkflowRule]:
    return engine.list_rules()


@router.post(
    "/rules",
    response_model=WorkflowRule,
    status_code=status.HTTP_201_CREATED,
    summary="Create or replace a custom rule",
    description="""
    Conditions use `equals`/`not_equals` on `category`, `priority`,
    `status`, `assignedTo`, and `greater_than`/`less_than` (or the
    inclusive `greater_than_or_equal`/`less_than_or_equal`) on `createdAt`,
    `updatedAt`, `resolvedAt` (elapsed days). A rule with an existing
    name replaces it.
    """
)
async def create_rule(
    data: WorkflowRuleCreateDTO,
    actor: Actor = Depends(require_admin),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> WorkflowRule:
    rule = engine.create_custom_rule(data)
    logger.info("Custom workflow rule created", extra={"rule_name": rule.name, "actor_id": actor.user_id})
    return rule


@router.delete(
    "/rules/{name}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a rule"
)
async def delete_rule(
    name: str,
    actor: Actor = Depends(require_admin),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> None:
    engine.remove_rule(name)


@router.post("/test", response_model=RuleTestResponse, summary="Dry-run a rule's conditions")
async def test_rule(
    request: RuleTestRequest,
    actor: Actor = Depends(require_agent_or_admin),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> RuleTestResponse:
    return RuleTestResponse(**engine.test_rule(request.rule_name, request.ticket))


@router.get("/stats", response_model=WorkflowStatsResponse, summary="Rule registry statistics")
async def get_workflow_stats(
    actor: Actor = Depends(require_agent_or_admin),
    engine: WorkflowEngine = Depends(get_workflow_engine),
) -> WorkflowStatsResponse:
    return WorkflowStatsResponse(**engine.get_workflow_stats())


# Export router
workflow_router = router
