"""Fraud case store: at most one open case per user, merged on re-flag.

New evidence for a user who already has an unresolved case is folded into
that case: the score only ever rises (``max``), flags and suspicious
patterns are appended, the risk assessment is recomputed. The merge is an
optimistic read-modify-write guarded by the case version column and the
partial unique index on open cases; a lost race is retried from a fresh
read.
"""

from collections import Counter
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from gigtrust.db.models import FraudCase, Order, UserAccount
from gigtrust.domains.accounts.service import account_age_days
from gigtrust.shared.errors import (
    AuthenticationRequired,
    NotFoundError,
    StateConflict,
    ValidationError,
)
from gigtrust.shared.models import new_id, parse_id

from .config import FraudConfig, default_config
from .models import (
    ActionTaken,
    ActionTakenRequest,
    AIAnalysis,
    CaseDecision,
    CaseResolution,
    FraudCaseStatus,
    FraudFlag,
    PriorFlag,
    RecentActivity,
    ResolutionOutcome,
    RiskAssessment,
    SuspiciousPattern,
    TriggeringEvent,
    UserSnapshot,
    VerificationStatus,
    initial_case_status,
    recommended_action_for,
    serialize_case,
)

logger = structlog.get_logger()

MAX_PAGE_SIZE = 50

_DECISION_STATUS = {
    CaseDecision.CONFIRMED: FraudCaseStatus.CONFIRMED_FRAUD,
    CaseDecision.DISMISSED: FraudCaseStatus.FALSE_POSITIVE,
    CaseDecision.NEEDS_MORE_INFO: FraudCaseStatus.MONITORING,
}


class FraudCaseStore:
    def __init__(self, session: AsyncSession, config: FraudConfig | None = None) -> None:
        self._session = session
        self._config = config or default_config

    # ------------------------------------------------------------------
    # Flagging and merge
    # ------------------------------------------------------------------

    async def flag_user(
        self,
        user_id: str,
        fraud_score: int,
        flags: list[FraudFlag],
        triggering_event: TriggeringEvent,
        suspicious_patterns: list[SuspiciousPattern] | None = None,
        ai_analysis: AIAnalysis | None = None,
        risk_assessment: RiskAssessment | None = None,
    ) -> FraudCase:
        """Open a case for the user, or merge into the one already open."""
        user_id = parse_id(user_id, "user ID")
        if not 0 <= fraud_score <= 100:
            raise ValidationError("Fraud score must be between 0 and 100")
        if await self._session.get(UserAccount, user_id) is None:
            raise NotFoundError("User not found", details={"user_id": user_id})

        return await self.upsert_case(
            user_id=user_id,
            fraud_score=fraud_score,
            flags=flags,
            triggering_event=triggering_event,
            suspicious_patterns=suspicious_patterns or [],
            ai_analysis=ai_analysis,
            risk_assessment=risk_assessment,
        )

    async def upsert_case(
        self,
        user_id: str,
        fraud_score: int,
        flags: list[FraudFlag],
        triggering_event: TriggeringEvent,
        suspicious_patterns: list[SuspiciousPattern],
        ai_analysis: AIAnalysis | None = None,
        risk_assessment: RiskAssessment | None = None,
    ) -> FraudCase:
        attempts = self._config.store.max_merge_attempts
        last_error: Exception | None = None

        for attempt in range(1, attempts + 1):
            case = await self.open_case_for(user_id)
            if case is None:
                case = await self._new_case(
                    user_id,
                    fraud_score,
                    flags,
                    triggering_event,
                    suspicious_patterns,
                    ai_analysis,
                    risk_assessment,
                )
                self._session.add(case)
                created = True
            else:
                self._merge(case, fraud_score, flags, suspicious_patterns, ai_analysis, risk_assessment)
                created = False

            try:
                await self._session.commit()
            except (StaleDataError, IntegrityError) as exc:
                await self._session.rollback()
                last_error = exc
                logger.warning(
                    "fraud_case_write_conflict",
                    user_id=user_id,
                    attempt=attempt,
                    error=type(exc).__name__,
                )
                continue

            logger.info(
                "fraud_case_created" if created else "fraud_case_merged",
                case_id=case.id,
                user_id=user_id,
                fraud_score=case.fraud_score,
                status=case.status,
                flags=len(case.flags),
            )
            return case

        raise StateConflict(
            "Fraud case was modified concurrently; giving up after retries",
            details={"user_id": user_id, "attempts": attempts},
        ) from last_error

    async def _new_case(
        self,
        user_id: str,
        fraud_score: int,
        flags: list[FraudFlag],
        triggering_event: TriggeringEvent,
        suspicious_patterns: list[SuspiciousPattern],
        ai_analysis: AIAnalysis | None,
        risk_assessment: RiskAssessment | None,
    ) -> FraudCase:
        now = datetime.now(UTC)
        thresholds = self._config.cases
        assessment = risk_assessment or RiskAssessment(
            immediate_risk=fraud_score >= thresholds.immediate_suspension_min,
            recommended_action=recommended_action_for(fraud_score, thresholds),
        )
        prior = await self.prior_flags(user_id)

        return FraudCase(
            id=new_id(),
            user_id=user_id,
            fraud_score=fraud_score,
            status=initial_case_status(fraud_score, thresholds).value,
            ai_analysis=(ai_analysis or AIAnalysis()).to_document(),
            flags=[f.to_document() for f in flags],
            triggering_event=triggering_event.to_document(),
            user_snapshot=(await self.build_user_snapshot(user_id, now)).to_document(),
            suspicious_patterns=[p.to_document() for p in suspicious_patterns],
            review={"decision": CaseDecision.PENDING.value, "notes": ""},
            prior_flags=[p.to_document() for p in prior],
            related_cases=[p.case_id for p in prior],
            risk_assessment=assessment.to_document(),
            immediate_risk=assessment.immediate_risk,
            resolved=False,
            created_at=now,
            last_checked_at=now,
        )

    def _merge(
        self,
        case: FraudCase,
        fraud_score: int,
        flags: list[FraudFlag],
        suspicious_patterns: list[SuspiciousPattern],
        ai_analysis: AIAnalysis | None,
        risk_assessment: RiskAssessment | None,
    ) -> None:
        thresholds = self._config.cases
        score = max(case.fraud_score, fraud_score)

        assessment = dict(case.risk_assessment or {})
        assessment["recommendedAction"] = recommended_action_for(score, thresholds).value
        assessment["immediateRisk"] = bool(
            assessment.get("immediateRisk") or score >= thresholds.immediate_suspension_min
        )
        if risk_assessment is not None:
            assessment["potentialLoss"] = max(
                assessment.get("potentialLoss", 0.0), risk_assessment.potential_loss
            )
            assessment["affectedUsers"] = max(
                assessment.get("affectedUsers", 0), risk_assessment.affected_users
            )

        case.fraud_score = score
        case.flags = [*case.flags, *(f.to_document() for f in flags)]
        case.suspicious_patterns = [
            *case.suspicious_patterns,
            *(p.to_document() for p in suspicious_patterns),
        ]
        case.risk_assessment = assessment
        case.immediate_risk = assessment["immediateRisk"]
        if ai_analysis is not None:
            case.ai_analysis = ai_analysis.to_document()
        if (
            case.status == FraudCaseStatus.PENDING_REVIEW
            and score >= thresholds.confirmed_fraud_min
        ):
            case.status = FraudCaseStatus.CONFIRMED_FRAUD.value
        case.last_checked_at = datetime.now(UTC)

    async def build_user_snapshot(self, user_id: str, now: datetime | None = None) -> UserSnapshot:
        now = now or datetime.now(UTC)
        user = await self._session.get(UserAccount, user_id)
        result = await self._session.execute(
            select(Order).where((Order.buyer_id == user_id) | (Order.seller_id == user_id))
        )
        orders = list(result.scalars().all())

        completed = [o for o in orders if o.status == "completed"]
        day_ago = now - timedelta(days=1)
        week_ago = now - timedelta(days=7)
        return UserSnapshot(
            account_age=account_age_days(user, now) if user else 0,
            total_orders=len(orders),
            cancelled_orders=sum(1 for o in orders if o.status == "cancelled"),
            completed_orders=len(completed),
            average_order_value=(
                round(sum(o.total_amount for o in orders) / len(orders), 2) if orders else 0.0
            ),
            total_spent=sum(o.total_amount for o in completed if o.buyer_id == user_id),
            total_earned=sum(o.total_amount for o in completed if o.seller_id == user_id),
            verification_status=VerificationStatus(
                email=bool(user and user.verified_email),
                phone=bool(user and user.verified_phone),
                identity=bool(user and user.verified_identity),
            ),
            recent_activity=RecentActivity(
                orders_last24h=sum(1 for o in orders if o.created_at >= day_ago),
                orders_last7days=sum(1 for o in orders if o.created_at >= week_ago),
            ),
        )

    async def prior_flags(self, user_id: str) -> list[PriorFlag]:
        result = await self._session.execute(
            select(FraudCase)
            .where(FraudCase.user_id == user_id)
            .order_by(FraudCase.created_at.desc())
        )
        return [
            PriorFlag(
                case_id=c.id,
                fraud_score=c.fraud_score,
                status=FraudCaseStatus(c.status),
                flagged_at=c.created_at,
                resolved=c.resolved,
            )
            for c in result.scalars().all()
        ]

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def review_case(
        self,
        case_id: str,
        admin_id: str | None,
        decision: CaseDecision,
        notes: str | None = None,
        action_taken: ActionTakenRequest | None = None,
    ) -> FraudCase:
        if not admin_id:
            raise AuthenticationRequired("Admin authentication required")
        case = await self.get_case(case_id)
        self._check_open(case)

        now = datetime.now(UTC)
        review = dict(case.review or {})
        review["reviewedBy"] = admin_id
        review["reviewedAt"] = now.isoformat()
        review["decision"] = decision.value
        if notes:
            review["notes"] = notes
        if action_taken is not None:
            review["actionTaken"] = ActionTaken(
                type=action_taken.type,
                applied_at=now,
                applied_by=admin_id,
                details=action_taken.details,
            ).to_document()
        case.review = review

        if status := _DECISION_STATUS.get(decision):
            case.status = status.value
        if decision == CaseDecision.DISMISSED:
            self._mark_resolved(case, ResolutionOutcome.FALSE_ALARM, "Dismissed on review", admin_id, now)
        case.last_checked_at = now

        await self._commit(case)
        logger.info(
            "fraud_case_reviewed",
            case_id=case.id,
            admin_id=admin_id,
            decision=decision.value,
            status=case.status,
        )
        return case

    async def resolve_case(
        self,
        case_id: str,
        admin_id: str | None,
        outcome: ResolutionOutcome,
        details: str = "",
    ) -> FraudCase:
        if not admin_id:
            raise AuthenticationRequired("Admin authentication required")
        case = await self.get_case(case_id)
        self._check_open(case)

        now = datetime.now(UTC)
        self._mark_resolved(case, outcome, details, admin_id, now)
        case.last_checked_at = now
        await self._commit(case)
        logger.info("fraud_case_resolved", case_id=case.id, admin_id=admin_id, outcome=outcome.value)
        return case

    async def add_note(self, case_id: str, admin_id: str | None, note: str) -> FraudCase:
        """Append a timestamped note. Allowed on resolved cases as well."""
        if not admin_id:
            raise AuthenticationRequired("Admin authentication required")
        case = await self.get_case(case_id)

        now = datetime.now(UTC)
        review = dict(case.review or {})
        existing = review.get("notes") or ""
        review["notes"] = f"{existing}\n\n[{now.isoformat()}] {note}" if existing else note
        case.review = review
        case.last_checked_at = now
        await self._commit(case)
        logger.info("fraud_case_note_added", case_id=case.id, admin_id=admin_id)
        return case

    def _check_open(self, case: FraudCase) -> None:
        if case.resolved:
            raise StateConflict("Fraud case is already resolved", details={"case_id": case.id})

    @staticmethod
    def _mark_resolved(
        case: FraudCase,
        outcome: ResolutionOutcome,
        details: str,
        admin_id: str,
        now: datetime,
    ) -> None:
        case.resolved = True
        case.resolved_at = now
        case.resolution = CaseResolution(
            outcome=outcome, details=details, resolved_by=admin_id
        ).to_document()

    async def _commit(self, case: FraudCase) -> None:
        case_id = case.id
        try:
            await self._session.commit()
        except StaleDataError as exc:
            await self._session.rollback()
            logger.warning("fraud_case_write_conflict", case_id=case_id)
            raise StateConflict(
                "Fraud case was modified concurrently; reload and retry",
                details={"case_id": case_id},
            ) from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_case(self, case_id: str) -> FraudCase:
        case = await self._session.get(
            FraudCase, parse_id(case_id, "fraud case ID"), populate_existing=True
        )
        if case is None:
            raise NotFoundError("Fraud case not found", details={"case_id": case_id})
        return case

    async def open_case_for(self, user_id: str) -> FraudCase | None:
        result = await self._session.execute(
            select(FraudCase)
            .where(FraudCase.user_id == user_id, FraudCase.resolved.is_(False))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def active_fraud_score(self, user_id: str) -> int:
        case = await self.open_case_for(user_id)
        return case.fraud_score if case else 0

    async def list_cases(
        self,
        status: FraudCaseStatus | None = None,
        min_score: int | None = None,
        max_score: int | None = None,
        resolved: bool | None = None,
        immediate_risk: bool | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[FraudCase], int]:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        page = max(page, 1)
        conditions = []
        if status is not None:
            conditions.append(FraudCase.status == status.value)
        if min_score is not None:
            conditions.append(FraudCase.fraud_score >= min_score)
        if max_score is not None:
            conditions.append(FraudCase.fraud_score <= max_score)
        if resolved is not None:
            conditions.append(FraudCase.resolved.is_(resolved))
        if immediate_risk is not None:
            conditions.append(FraudCase.immediate_risk.is_(immediate_risk))

        total = (
            await self._session.execute(
                select(func.count()).select_from(FraudCase).where(*conditions)
            )
        ).scalar_one()
        result = await self._session.execute(
            select(FraudCase)
            .where(*conditions)
            .order_by(FraudCase.fraud_score.desc(), FraudCase.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def check_status(self, user_id: str) -> dict:
        user_id = parse_id(user_id, "user ID")
        result = await self._session.execute(
            select(FraudCase)
            .where(FraudCase.user_id == user_id)
            .order_by(FraudCase.created_at.desc())
        )
        records = list(result.scalars().all())
        active = next(
            (
                r
                for r in records
                if not r.resolved and r.status != FraudCaseStatus.FALSE_POSITIVE
            ),
            None,
        )
        return {
            "isFlagged": active is not None,
            "activeFraudCase": serialize_case(active) if active else None,
            "highestScore": max((r.fraud_score for r in records), default=0),
            "totalFlags": len(records),
            "fraudHistory": [serialize_case(r) for r in records],
            "recommendation": (
                active.risk_assessment.get("recommendedAction", "manual_review")
                if active
                else "no_action"
            ),
        }

    async def statistics(self) -> dict:
        async def count(*conditions) -> int:
            stmt = select(func.count()).select_from(FraudCase).where(*conditions)
            return (await self._session.execute(stmt)).scalar_one()

        week_ago = datetime.now(UTC) - timedelta(days=7)
        average = (await self._session.execute(select(func.avg(FraudCase.fraud_score)))).scalar()

        categories: Counter[str] = Counter()
        for flags in (await self._session.execute(select(FraudCase.flags))).scalars():
            categories.update(f.get("category", "unknown") for f in flags or [])

        return {
            "totalCases": await count(),
            "pendingReview": await count(FraudCase.status == FraudCaseStatus.PENDING_REVIEW.value),
            "confirmedFraud": await count(FraudCase.status == FraudCaseStatus.CONFIRMED_FRAUD.value),
            "falsePositives": await count(FraudCase.status == FraudCaseStatus.FALSE_POSITIVE.value),
            "immediateRiskCases": await count(
                FraudCase.immediate_risk.is_(True), FraudCase.resolved.is_(False)
            ),
            "averageFraudScore": round(float(average or 0), 1),
            "recentCases": await count(FraudCase.created_at >= week_ago),
            "topCategories": [
                {"category": name, "count": n} for name, n in categories.most_common(5)
            ],
        }
