import uuid
from collections import defaultdict
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from friction_intel.models.base import as_utc
from friction_intel.scoring.ofi import TICKET_IN_PROGRESS, TICKET_OPEN, TICKET_RESOLVED, best_ticket_status
from friction_intel.tickets.models import ThemeTicketLink
from friction_intel.tickets.schemas import TicketLinkCreate

logger = structlog.get_logger()

IN_PROGRESS_MARKERS = ("progress", "development", "review")


def derive_ticket_status(status: str | None, resolution_date: datetime | None) -> str:
    """Collapse a Jira issue into resolved / in_progress / open."""
    if resolution_date is not None:
        return TICKET_RESOLVED
    status_lower = (status or "").lower()
    if any(marker in status_lower for marker in IN_PROGRESS_MARKERS):
        return TICKET_IN_PROGRESS
    return TICKET_OPEN


async def get_theme_ticket_statuses(
    db: AsyncSession,
    account_id: uuid.UUID,
    theme_keys: set[str],
) -> dict[str, str]:
    """Best known ticket status per theme. Themes with no linked ticket are omitted."""
    if not theme_keys:
        return {}

    result = await db.execute(
        select(ThemeTicketLink).where(
            ThemeTicketLink.account_id == account_id,
            ThemeTicketLink.theme_key.in_(theme_keys),
        )
    )
    by_theme: dict[str, list[str]] = defaultdict(list)
    for link in result.scalars().all():
        by_theme[link.theme_key].append(derive_ticket_status(link.status, link.resolution_date))

    return {theme: best_ticket_status(statuses) for theme, statuses in by_theme.items()}


async def upsert_ticket_link(db: AsyncSession, account_id: uuid.UUID, data: TicketLinkCreate) -> ThemeTicketLink:
    existing = (await db.execute(
        select(ThemeTicketLink).where(
            ThemeTicketLink.account_id == account_id,
            ThemeTicketLink.theme_key == data.theme_key,
            ThemeTicketLink.issue_key == data.issue_key,
        )
    )).scalar_one_or_none()

    link = existing or ThemeTicketLink(
        account_id=account_id,
        theme_key=data.theme_key,
        issue_key=data.issue_key,
    )
    link.summary = data.summary
    link.status = data.status
    link.resolution_date = data.resolution_date
    if existing is None:
        db.add(link)
    await db.commit()
    await db.refresh(link)
    return link


async def get_ticket_links(db: AsyncSession, account_id: uuid.UUID) -> list[ThemeTicketLink]:
    result = await db.execute(
        select(ThemeTicketLink)
        .where(ThemeTicketLink.account_id == account_id)
        .order_by(ThemeTicketLink.theme_key, ThemeTicketLink.issue_key)
    )
    return list(result.scalars().all())


async def refresh_ticket_links(db: AsyncSession, jira, account_id: uuid.UUID) -> int:
    """Pull current status and resolution date from Jira for every linked issue.

    ``jira`` is a ``JiraClient``. Returns the number of links whose state changed.
    """
    links = await get_ticket_links(db, account_id)
    if not links:
        return 0

    issues = await jira.fetch_issue_states(sorted({link.issue_key for link in links}))
    updated = 0
    for link in links:
        state = issues.get(link.issue_key)
        if state is None:
            continue
        current = as_utc(link.resolution_date) if link.resolution_date else None
        if link.status != state.status or current != state.resolution_date:
            link.status = state.status
            link.resolution_date = state.resolution_date
            updated += 1

    await db.commit()
    logger.info("ticket_links_refreshed", account_id=str(account_id), links=len(links), updated=updated)
    return updated
