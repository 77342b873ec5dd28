"""
Contact repository for database operations.
"""

from decimal import Decimal
from typing import Protocol, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from contact_manager.contacts.models import Contact

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


class ContactRepositoryProtocol(Protocol):
    """Protocol for contact repository operations."""

    async def list_contacts(
        self,
        search: str | None = None,
        married: bool | None = None,
        min_salary: Decimal | None = None,
        max_salary: Decimal | None = None,
    ) -> Sequence[Contact]:
        """List contacts matching the optional filters."""
        ...

    async def get_by_id(self, contact_id: int) -> Contact | None:
        """Get a contact by ID."""
        ...

    async def create(self, contact: Contact) -> Contact:
        """Create a single contact."""
        ...

    async def create_bulk(self, contacts: list[Contact]) -> list[Contact]:
        """Create multiple contacts in bulk."""
        ...

    async def update(self, contact: Contact) -> Contact:
        """Persist changes to a contact."""
        ...

    async def delete(self, contact: Contact) -> None:
        """Delete a contact."""
        ...


class ContactRepository:
    """Repository for contact database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def list_contacts(
        self,
        search: str | None = None,
        married: bool | None = None,
        min_salary: Decimal | None = None,
        max_salary: Decimal | None = None,
    ) -> Sequence[Contact]:
        """List contacts ordered by ID.

        Args:
            search: Case-insensitive literal substring of the name or phone.
            married: Marital status filter.
            min_salary: Inclusive lower salary bound.
            max_salary: Inclusive upper salary bound.

        Returns:
            Matching contacts.
        """
        stmt = select(Contact)

        if search:
            pattern = f"%{escape_like(search.strip().lower())}%"
            stmt = stmt.where(
                or_(
                    func.lower(Contact.name).like(pattern, escape=LIKE_ESCAPE),
                    Contact.phone.like(pattern, escape=LIKE_ESCAPE),
                )
            )
        if married is not None:
            stmt = stmt.where(Contact.married == married)
        if min_salary is not None:
            stmt = stmt.where(Contact.salary >= min_salary)
        if max_salary is not None:
            stmt = stmt.where(Contact.salary <= max_salary)

        result = await self._session.execute(stmt.order_by(Contact.id))
        return result.scalars().all()

    async def get_by_id(self, contact_id: int) -> Contact | None:
        """Get a contact by ID.

        Args:
            contact_id: Contact ID.

        Returns:
            Contact if found, None otherwise.
        """
        stmt = select(Contact).where(Contact.id == contact_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, contact: Contact) -> Contact:
        """Create a single contact.

        Args:
            contact: Contact to create.

        Returns:
            Created contact with ID.
        """
        self._session.add(contact)
        await self._session.flush()
        await self._session.refresh(contact)
        return contact

    async def create_bulk(self, contacts: list[Contact]) -> list[Contact]:
        """Create multiple contacts in bulk.

        Args:
            contacts: List of contacts to create.

        Returns:
            List of created contacts with IDs.
        """
        if not contacts:
            return []

        self._session.add_all(contacts)
        await self._session.flush()

        # Refresh all contacts to get generated IDs
        for contact in contacts:
            await self._session.refresh(contact)

        return contacts

    async def update(self, contact: Contact) -> Contact:
        """Flush pending changes on an attached contact.

        Args:
            contact: ORM contact instance (must be attached to session).

        Returns:
            Updated contact.
        """
        await self._session.flush()
        await self._session.refresh(contact)
        return contact

    async def delete(self, contact: Contact) -> None:
        """Delete a contact.

        Args:
            contact: ORM contact instance (must be attached to session).
        """
        await self._session.delete(contact)
        await self._session.flush()
