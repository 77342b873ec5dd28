"""
Contact service for business logic.
"""

from decimal import Decimal
from typing import Any, Protocol, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from contact_manager.config import get_settings
from contact_manager.contacts.csv_parser import CSVParser
from contact_manager.contacts.models import Contact
from contact_manager.contacts.repository import ContactRepository, ContactRepositoryProtocol
from contact_manager.contacts.schemas import (
    ContactCreateRequest,
    ContactResponse,
    ContactStatisticsResponse,
    ContactUpdateRequest,
    CSVUploadResponse,
)
from contact_manager.contacts.validation import ContactValidator, calculate_age
from contact_manager.realtime.messages import MessageType, WebSocketMessage
from contact_manager.shared.exceptions import NotFoundError, ValidationError
from contact_manager.shared.logging import get_logger

logger = get_logger(__name__)


def format_size(num_bytes: int) -> str:
    """Render a byte count as bytes, KB or MB."""
    if num_bytes >= 1024 * 1024:
        return f"{num_bytes / (1024 * 1024):g}MB"
    if num_bytes >= 1024:
        return f"{num_bytes / 1024:g}KB"
    return f"{num_bytes} bytes"


class NotifierProtocol(Protocol):
    """Anything that can broadcast a realtime message."""

    async def broadcast(self, message: WebSocketMessage) -> int:
        """Broadcast a message, returning the number of deliveries."""
        ...


class ContactService:
    """Service for contact management operations."""

    def __init__(
        self,
        session: AsyncSession,
        notifier: NotifierProtocol | None = None,
        contact_repository: ContactRepositoryProtocol | None = None,
        validator: ContactValidator | None = None,
        max_upload_bytes: int | None = None,
        encoding: str | None = None,
    ) -> None:
        """Initialize contact service.

        Args:
            session: Async database session.
            notifier: Realtime notifier told about successful mutations.
            contact_repository: Optional contact repository (for DI).
            validator: Optional business validator (for DI).
            max_upload_bytes: CSV size limit, defaults to settings.
            encoding: CSV encoding, defaults to settings.
        """
        settings = get_settings()
        self._session = session
        self._notifier = notifier
        self._contact_repo: ContactRepositoryProtocol = (
            contact_repository or ContactRepository(session)
        )
        self._validator = validator or ContactValidator()
        self._max_upload_bytes = max_upload_bytes or settings.csv_max_upload_bytes
        self._encoding = encoding or settings.csv_encoding

    async def get_all_contacts(
        self,
        search: str | None = None,
        married: bool | None = None,
        min_salary: Decimal | None = None,
        max_salary: Decimal | None = None,
    ) -> Sequence[Contact]:
        contacts = await self._contact_repo.list_contacts(
            search=search,
            married=married,
            min_salary=min_salary,
            max_salary=max_salary,
        )
        logger.info("Contacts listed", extra={"count": len(contacts)})
        return contacts

    async def get_contact(self, contact_id: int) -> Contact:
        """Get a contact by ID.

        Raises:
            NotFoundError: If the contact does not exist.
        """
        contact = await self._contact_repo.get_by_id(contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found")
        return contact

    async def add_contacts(self, contacts: list[Contact]) -> list[Contact]:
        created = await self._contact_repo.create_bulk(contacts)
        await self._session.commit()
        return created

    async def create_contact(self, request: ContactCreateRequest) -> Contact:
        """Create a single contact.

        Raises:
            ValidationError: If the contact breaks a business rule.
        """
        self._ensure_valid(request)

        contact = await self._contact_repo.create(
            Contact(
                name=request.name.strip(),
                date_of_birth=request.date_of_birth,
                married=request.married,
                phone=request.phone.strip(),
                salary=request.salary,
            )
        )
        await self._session.commit()

        logger.info("Contact created", extra={"contact_id": contact.id})
        await self._notify(
            MessageType.CONTACT_CREATED,
            ContactResponse.model_validate(contact),
            f"Contact {contact.id} created",
        )
        return contact

    async def update_contact(
        self,
        contact_id: int,
        request: ContactUpdateRequest,
    ) -> Contact:
        """Update an existing contact.

        Raises:
            ValidationError: If the IDs differ or a business rule is broken.
            NotFoundError: If the contact does not exist.
        """
        if request.id != contact_id:
            raise ValidationError("IDs in path and body do not match")

        contact = await self.get_contact(contact_id)
        self._ensure_valid(request)

        contact.name = request.name.strip()
        contact.date_of_birth = request.date_of_birth
        contact.married = request.married
        contact.phone = request.phone.strip()
        contact.salary = request.salary

        contact = await self._contact_repo.update(contact)
        await self._session.commit()

        logger.info("Contact updated", extra={"contact_id": contact_id})
        await self._notify(
            MessageType.CONTACT_UPDATED,
            ContactResponse.model_validate(contact),
            f"Contact {contact_id} updated",
        )
        return contact

    async def delete_contact(self, contact_id: int) -> None:
        """Delete a contact.

        Raises:
            NotFoundError: If the contact does not exist.
        """
        contact = await self.get_contact(contact_id)
        await self._contact_repo.delete(contact)
        await self._session.commit()

        logger.info("Contact deleted", extra={"contact_id": contact_id})
        await self._notify(
            MessageType.CONTACT_DELETED,
            {"id": contact_id},
            f"Contact {contact_id} deleted",
        )

    async def import_csv(self, filename: str | None, content: bytes) -> CSVUploadResponse:
        """Import contacts from an uploaded CSV file.

        Args:
            filename: Original file name, used for the extension check.
            content: Raw CSV file content.

        Returns:
            Counts of rows read, imported and skipped.

        Raises:
            ValidationError: If the upload is empty, not a CSV, or too large.
            CsvReadError: If the file cannot be read at all.
        """
        if not filename or not content:
            raise ValidationError("File not selected or empty")

        if not filename.lower().endswith(".csv"):
            raise ValidationError("Please upload a file with the .csv extension")

        if len(content) > self._max_upload_bytes:
            raise ValidationError(f"File size exceeds {format_size(self._max_upload_bytes)}")

        parser = CSVParser(encoding=self._encoding)
        contacts = parser.parse_contacts(content)
        rows_read = parser.stats.rows_seen

        if not contacts:
            return CSVUploadResponse(
                rows_read=rows_read,
                imported=0,
                skipped=rows_read,
                message="File contains no contacts to import",
            )

        valid_contacts: list[Contact] = []
        invalid_count = 0
        for contact in contacts:
            result = self._validator.validate(contact)
            if result.is_valid:
                valid_contacts.append(contact)
            else:
                invalid_count += 1
                logger.debug(
                    "Imported contact failed validation",
                    extra={"contact_name": contact.name, "errors": result.errors},
                )

        if valid_contacts:
            await self.add_contacts(valid_contacts)

        imported = len(valid_contacts)
        skipped = rows_read - imported
        message = f"Import completed. Added {imported} of {rows_read} rows."
        if skipped:
            message += f" Skipped: {skipped}."

        logger.info(
            "CSV import completed",
            extra={
                "import_filename": filename,
                "rows_read": rows_read,
                "converted": len(contacts),
                "invalid": invalid_count,
                "imported": imported,
            },
        )

        if imported:
            await self._notify(
                MessageType.CONTACTS_IMPORTED,
                {"imported": imported, "rows_read": rows_read, "skipped": skipped},
                message,
            )
            await self._notify(
                MessageType.STATISTICS_UPDATED,
                await self.get_statistics(),
                "Statistics updated",
            )

        return CSVUploadResponse(
            rows_read=rows_read,
            imported=imported,
            skipped=skipped,
            message=message,
        )

    async def get_statistics(self) -> ContactStatisticsResponse:
        """Compute aggregate statistics over all contacts."""
        contacts = await self._contact_repo.list_contacts()
        total = len(contacts)
        if total == 0:
            return ContactStatisticsResponse()

        married = sum(1 for c in contacts if c.married)
        salaries = [Decimal(c.salary) for c in contacts]

        return ContactStatisticsResponse(
            total_contacts=total,
            married_contacts=married,
            single_contacts=total - married,
            married_percentage=round(married / total * 100, 2),
            average_salary=float(sum(salaries)) / total,
            min_salary=min(salaries),
            max_salary=max(salaries),
            average_age=sum(calculate_age(c.date_of_birth) for c in contacts) / total,
        )

    def _ensure_valid(self, contact: Any) -> None:
        result = self._validator.validate(contact)
        if not result.is_valid:
            raise ValidationError(
                f"Validation errors: {result.summary()}",
                details={"errors": result.errors},
            )

    async def _notify(self, message_type: MessageType, data: Any, message: str) -> None:
        if self._notifier is None:
            return
        await self._notifier.broadcast(
            WebSocketMessage(type=message_type, data=data, message=message)
        )
