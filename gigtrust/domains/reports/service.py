"""Report queries for admins, sellers' histories and reporters."""

from collections import Counter

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gigtrust.db.models import Report
from gigtrust.shared.errors import NotFoundError
from gigtrust.shared.models import parse_id

from .models import ReportCategory, ReportPriority, ReportStatus

MAX_PAGE_SIZE = 50

_PRIORITY_RANK = case(
    {
        ReportPriority.URGENT.value: 0,
        ReportPriority.HIGH.value: 1,
        ReportPriority.MEDIUM.value: 2,
        ReportPriority.LOW.value: 3,
    },
    value=Report.priority,
    else_=4,
)


class ReportService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_report(self, report_id: str) -> Report:
        report = await self._session.get(
            Report, parse_id(report_id, "report ID"), populate_existing=True
        )
        if report is None:
            raise NotFoundError("Report not found", details={"report_id": report_id})
        return report

    async def list_reports(
        self,
        status: ReportStatus | None = None,
        priority: ReportPriority | None = None,
        category: ReportCategory | None = None,
        reported_user_id: str | None = None,
        min_credibility: int | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Report], int]:
        """Filtered page of reports, most urgent first, then newest."""
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        page = max(page, 1)
        conditions = []
        if status is not None:
            conditions.append(Report.status == status.value)
        if priority is not None:
            conditions.append(Report.priority == priority.value)
        if category is not None:
            conditions.append(Report.category == category.value)
        if reported_user_id:
            conditions.append(
                Report.reported_user_id == parse_id(reported_user_id, "reported user ID")
            )
        if min_credibility is not None:
            conditions.append(Report.credibility_score >= min_credibility)

        total = (
            await self._session.execute(select(func.count()).select_from(Report).where(*conditions))
        ).scalar_one()
        result = await self._session.execute(
            select(Report)
            .where(*conditions)
            .order_by(_PRIORITY_RANK, Report.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def seller_history(self, seller_id: str) -> tuple[list[Report], dict]:
        seller_id = parse_id(seller_id, "seller ID")
        result = await self._session.execute(
            select(Report)
            .where(Report.reported_user_id == seller_id)
            .order_by(Report.created_at.desc())
        )
        reports = list(result.scalars().all())
        statuses = Counter(r.status for r in reports)
        stats = {
            "total": len(reports),
            "pending": statuses[ReportStatus.PENDING],
            "accepted": statuses[ReportStatus.ACCEPTED],
            "rejected": statuses[ReportStatus.REJECTED],
            "byCategory": dict(Counter(r.category for r in reports)),
        }
        return reports, stats

    async def reports_by(self, reporter_id: str) -> list[Report]:
        result = await self._session.execute(
            select(Report)
            .where(Report.reporter_id == reporter_id)
            .order_by(Report.created_at.desc())
        )
        return list(result.scalars().all())
