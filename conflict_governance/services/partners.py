"""Two-party ownership checks shared by every governed entity."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import User
from .exceptions import NotFoundError


def is_self_or_partner(requester: User, target_id: UUID | None) -> bool:
    """True if ``target_id`` is the requester or the requester's linked partner."""
    if target_id is None:
        return False
    return target_id == requester.id or (
        requester.partner_id is not None and target_id == requester.partner_id
    )


async def get_user_or_raise(
    session: AsyncSession,
    user_id: UUID,
    for_update: bool = False,
) -> User:
    """Load a user row, optionally locking it for the rest of the transaction."""
    query = select(User).where(User.id == user_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    user = result.scalar_one_or_none()

    if not user:
        raise NotFoundError(f"User {user_id} not found")

    return user
