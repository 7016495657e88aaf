import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.accounts.service import get_account_or_404
from friction_intel.database import get_db
from friction_intel.dependencies import get_jira_client
from friction_intel.tickets.jira_client import JiraClient
from friction_intel.tickets.models import ThemeTicketLink
from friction_intel.tickets.schemas import (
    TicketLinkCreate,
    TicketLinkResponse,
    TicketRefreshRequest,
    TicketRefreshResponse,
)
from friction_intel.tickets.service import derive_ticket_status, get_ticket_links, refresh_ticket_links, upsert_ticket_link

router = APIRouter(prefix="/tickets", tags=["tickets"])


def _to_response(link: ThemeTicketLink) -> TicketLinkResponse:
    return TicketLinkResponse(
        id=link.id,
        account_id=link.account_id,
        theme_key=link.theme_key,
        issue_key=link.issue_key,
        summary=link.summary,
        status=link.status,
        resolution_date=link.resolution_date,
        ticket_status=derive_ticket_status(link.status, link.resolution_date),
        created_at=link.created_at,
    )


@router.post("/links", response_model=TicketLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(data: TicketLinkCreate, db: AsyncSession = Depends(get_db)):
    await get_account_or_404(db, data.account_id)
    link = await upsert_ticket_link(db, data.account_id, data)
    return _to_response(link)


@router.get("/links", response_model=list[TicketLinkResponse])
async def list_links(account_id: uuid.UUID = Query(...), db: AsyncSession = Depends(get_db)):
    links = await get_ticket_links(db, account_id)
    return [_to_response(link) for link in links]


@router.post("/refresh", response_model=TicketRefreshResponse)
async def refresh(
    data: TicketRefreshRequest,
    db: AsyncSession = Depends(get_db),
    jira: JiraClient = Depends(get_jira_client),
):
    await get_account_or_404(db, data.account_id)
    updated = await refresh_ticket_links(db, jira, data.account_id)
    return TicketRefreshResponse(account_id=data.account_id, updated_count=updated)
