"""
Artists CRUD API Endpoints

Artist names are unique. An artist with appointments cannot be deleted.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import func, select

from api.auth import CurrentUser
from api.deps import SessionDep, commit_or_raise
from database.models import Appointment, Artist
from studio.errors import ConflictError, InvalidReferenceError, NotFoundError
from studio.schemas import ArtistBody

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/artists", tags=["artists"])

ARTIST_IN_USE_MESSAGE = "The artist has appointments and cannot be deleted."


def artist_to_dict(artist: Artist) -> dict:
    return {
        "id": str(artist.id),
        "name": artist.name,
        "created_at": artist.created_at.isoformat(),
        "updated_at": artist.updated_at.isoformat(),
    }


async def _get_artist_or_404(session, artist_id: UUID) -> Artist:
    result = await session.execute(select(Artist).where(Artist.id == artist_id))
    artist = result.scalar_one_or_none()
    if not artist:
        raise NotFoundError(f"Artist {artist_id} not found.")
    return artist


@router.get("")
async def list_artists(current_user: CurrentUser, session: SessionDep):
    """List all artists ordered by name."""
    result = await session.execute(select(Artist).order_by(Artist.name))
    return [artist_to_dict(a) for a in result.scalars().all()]


@router.get("/{artist_id}")
async def get_artist(artist_id: UUID, current_user: CurrentUser, session: SessionDep):
    return artist_to_dict(await _get_artist_or_404(session, artist_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_artist(request: ArtistBody, current_user: CurrentUser, session: SessionDep):
    """Create an artist. A duplicate name is rejected with 409."""
    artist = Artist(name=request.name)
    session.add(artist)
    await commit_or_raise(session, "artist create")
    await session.refresh(artist)

    logger.info(f"Artist created: {artist.name}", extra={"artist_id": str(artist.id)})
    return artist_to_dict(artist)


@router.put("/{artist_id}")
async def update_artist(
    artist_id: UUID, request: ArtistBody, current_user: CurrentUser, session: SessionDep
):
    artist = await _get_artist_or_404(session, artist_id)
    artist.name = request.name
    await commit_or_raise(session, "artist update")
    await session.refresh(artist)
    return artist_to_dict(artist)


@router.delete("/{artist_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_artist(artist_id: UUID, current_user: CurrentUser, session: SessionDep):
    """Delete an artist without appointments (409 otherwise)."""
    artist = await _get_artist_or_404(session, artist_id)

    count = await session.scalar(
        select(func.count()).select_from(Appointment).where(Appointment.artist_id == artist_id)
    )
    if count:
        raise ConflictError(ARTIST_IN_USE_MESSAGE, appointment_count=count)

    await session.delete(artist)
    try:
        await commit_or_raise(session, "artist delete")
    except InvalidReferenceError as e:
        # An appointment was booked between the count and the delete
        raise ConflictError(ARTIST_IN_USE_MESSAGE) from e

    logger.info(f"Artist deleted: {artist_id}", extra={"artist_id": str(artist_id)})
