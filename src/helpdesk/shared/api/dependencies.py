"""
Shared API Dependencies
=======================

FastAPI dependencies resolving the calling actor and the services wired
onto ``app.state`` during startup.
"""

from datetime import datetime

from fastapi import Depends, Header, HTTPException, Request, status

from helpdesk.config import UserRole
from helpdesk.tickets.domain import Actor


async def get_actor(
    x_actor_id: str = Header(..., description="Id of the user making the change"),
    x_actor_role: UserRole = Header(UserRole.USER, description="Role of the calling user"),
) -> Actor:
    """Resolve the calling actor from request headers."""
    if not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Actor-Id header must not be empty"
        )
    return Actor(user_id=x_actor_id.strip(), role=x_actor_role)


async def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This operation requires the admin role"
        )
    return actor


async def require_agent_or_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role not in (UserRole.AGENT, UserRole.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This operation requires the agent or admin role"
        )
    return actor


def get_clock_now(request: Request) -> datetime:
    return request.app.state.clock()


def get_ticket_service(request: Request):
    return request.app.state.ticket_service


def get_sla_monitor(request: Request):
    return request.app.state.sla_monitor


def get_workflow_engine(request: Request):
    return request.app.state.workflow_engine
