"""
API router for contact management.
"""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from contact_manager.contacts.schemas import (
    ContactCreateRequest,
    ContactListResponse,
    ContactOperationResponse,
    ContactResponse,
    ContactStatisticsResponse,
    ContactUpdateRequest,
    CSVUploadResponse,
)
from contact_manager.contacts.service import ContactService
from contact_manager.realtime.manager import ConnectionManager, get_connection_manager
from contact_manager.shared.database import get_db_session
from contact_manager.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/contacts", tags=["contacts"])


def get_contact_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
) -> ContactService:
    """Dependency for contact service."""
    return ContactService(session=session, notifier=manager)


@router.get(
    "",
    response_model=ContactListResponse,
    summary="List contacts",
    description="List all contacts, optionally filtered by name/phone, status and salary.",
)
async def list_contacts(
    service: Annotated[ContactService, Depends(get_contact_service)],
    search: Annotated[
        str | None,
        Query(max_length=100, description="Substring of name or phone"),
    ] = None,
    married: Annotated[bool | None, Query(description="Marital status")] = None,
    min_salary: Annotated[Decimal | None, Query(ge=0, description="Minimum salary")] = None,
    max_salary: Annotated[Decimal | None, Query(ge=0, description="Maximum salary")] = None,
) -> ContactListResponse:
    contacts = await service.get_all_contacts(
        search=search,
        married=married,
        min_salary=min_salary,
        max_salary=max_salary,
    )
    return ContactListResponse(
        items=[ContactResponse.model_validate(c) for c in contacts],
        total=len(contacts),
    )


@router.post(
    "",
    response_model=ContactOperationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create contact",
)
async def create_contact(
    request: ContactCreateRequest,
    service: Annotated[ContactService, Depends(get_contact_service)],
) -> ContactOperationResponse:
    contact = await service.create_contact(request)
    return ContactOperationResponse(
        success=True,
        message="Contact successfully created",
        contact=ContactResponse.model_validate(contact),
    )


@router.get(
    "/statistics",
    response_model=ContactStatisticsResponse,
    summary="Contact statistics",
    description="Totals, marital split, salary range and average age.",
)
async def get_statistics(
    service: Annotated[ContactService, Depends(get_contact_service)],
) -> ContactStatisticsResponse:
    return await service.get_statistics()


@router.post(
    "/upload",
    response_model=CSVUploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Import contacts from CSV",
    description="CSV must have a header row with Name, DateOfBirth, Married, Phone "
    "and Salary columns (English or Russian headers).",
)
async def upload_contacts_csv(
    file: Annotated[UploadFile, File(description="CSV file with contacts")],
    service: Annotated[ContactService, Depends(get_contact_service)],
) -> CSVUploadResponse:
    content = await file.read()
    result = await service.import_csv(file.filename, content)

    logger.info(
        "Contact CSV upload processed",
        extra={
            "import_filename": file.filename,
            "rows_read": result.rows_read,
            "imported": result.imported,
            "skipped": result.skipped,
        },
    )
    return result


@router.get(
    "/{contact_id}",
    response_model=ContactResponse,
    summary="Get contact",
)
async def get_contact(
    contact_id: int,
    service: Annotated[ContactService, Depends(get_contact_service)],
) -> ContactResponse:
    contact = await service.get_contact(contact_id)
    return ContactResponse.model_validate(contact)


@router.put(
    "/{contact_id}",
    response_model=ContactOperationResponse,
    summary="Update contact",
)
async def update_contact(
    contact_id: int,
    request: ContactUpdateRequest,
    service: Annotated[ContactService, Depends(get_contact_service)],
) -> ContactOperationResponse:
    contact = await service.update_contact(contact_id, request)
    return ContactOperationResponse(
        success=True,
        message="Contact successfully updated",
        contact=ContactResponse.model_validate(contact),
    )


@router.delete(
    "/{contact_id}",
    response_model=ContactOperationResponse,
    summary="Delete contact",
)
async def delete_contact(
    contact_id: int,
    service: Annotated[ContactService, Depends(get_contact_service)],
) -> ContactOperationResponse:
    await service.delete_contact(contact_id)
    return ContactOperationResponse(
        success=True,
        message="Contact successfully deleted",
    )
