"""
Clients CRUD API Endpoints

Deleting a client deletes their appointments (ON DELETE CASCADE).
"""

import logging
from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select

from api.auth import CurrentUser
from api.deps import SessionDep, commit_or_raise
from database.models import Client
from studio.errors import NotFoundError
from studio.schemas import ClientBody

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clients", tags=["clients"])


def client_to_dict(client: Client) -> dict:
    return {
        "id": str(client.id),
        "name": client.name,
        "phone": client.phone,
        "email": client.email,
        "notes": client.notes,
        "created_at": client.created_at.isoformat(),
        "updated_at": client.updated_at.isoformat(),
    }


async def _get_client_or_404(session, client_id: UUID) -> Client:
    result = await session.execute(select(Client).where(Client.id == client_id))
    client = result.scalar_one_or_none()
    if not client:
        raise NotFoundError(f"Client {client_id} not found.")
    return client


@router.get("")
async def list_clients(current_user: CurrentUser, session: SessionDep):
    """List all clients ordered by name."""
    result = await session.execute(select(Client).order_by(Client.name))
    return [client_to_dict(c) for c in result.scalars().all()]


@router.get("/{client_id}")
async def get_client(client_id: UUID, current_user: CurrentUser, session: SessionDep):
    return client_to_dict(await _get_client_or_404(session, client_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_client(request: ClientBody, current_user: CurrentUser, session: SessionDep):
    """Create a client. A duplicate email is rejected with 409."""
    client = Client(**request.model_dump())
    session.add(client)
    await commit_or_raise(session, "client create")
    await session.refresh(client)

    logger.info(f"Client created: {client.id}", extra={"client_id": str(client.id)})
    return client_to_dict(client)


@router.put("/{client_id}")
async def update_client(
    client_id: UUID, request: ClientBody, current_user: CurrentUser, session: SessionDep
):
    client = await _get_client_or_404(session, client_id)
    for field, value in request.model_dump().items():
        setattr(client, field, value)

    await commit_or_raise(session, "client update")
    await session.refresh(client)
    return client_to_dict(client)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(client_id: UUID, current_user: CurrentUser, session: SessionDep):
    """Delete a client and, through the cascade, their appointments."""
    client = await _get_client_or_404(session, client_id)
    await session.delete(client)
    await commit_or_raise(session, "client delete")
    logger.info(f"Client deleted: {client_id}", extra={"client_id": str(client_id)})
