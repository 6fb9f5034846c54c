"""Reporter credibility scoring.

A pure function of the reporter's history snapshot. Starts at the baseline
and applies penalties and bonuses from CredibilityRules, clamped to [0, 100].
"""

from pydantic import Field

from gigtrust.domains.fraud.config import CredibilityRules, default_config
from gigtrust.shared.models import CamelModel


class ReporterHistory(CamelModel):
    """Snapshot of the reporter taken at submission time."""

    fraud_score: int = Field(default=0, ge=0, le=100)
    total_orders: int = Field(default=0, ge=0)
    account_age: int = Field(default=0, ge=0)
    verified_account: bool = False
    prior_reports: int = Field(default=0, ge=0)
    prior_reports_accepted: int = Field(default=0, ge=0)


class ReporterCredibility(ReporterHistory):
    credibility_score: int = Field(ge=0, le=100)


def _first_match(value: float, steps: tuple[tuple[int, int], ...]) -> int:
    for threshold, amount in steps:
        if value >= threshold:
            return amount
    return 0


def compute_credibility_score(
    history: ReporterHistory, rules: CredibilityRules | None = None
) -> int:
    rules = rules or default_config.credibility
    score = rules.baseline

    score -= _first_match(history.fraud_score, rules.fraud_score_penalties)
    if history.verified_account:
        score += rules.verified_bonus
    score += _first_match(history.account_age, rules.account_age_bonuses)
    score += _first_match(history.total_orders, rules.order_count_bonuses)

    if history.prior_reports > 0:
        acceptance_rate = history.prior_reports_accepted / history.prior_reports
        if acceptance_rate >= rules.reliable_rate_min:
            score += rules.reliable_bonus
        elif acceptance_rate < rules.unreliable_rate_max:
            score -= rules.unreliable_penalty

    return max(0, min(100, score))


def assess_reporter(
    history: ReporterHistory, rules: CredibilityRules | None = None
) -> ReporterCredibility:
    return ReporterCredibility(
        **history.model_dump(), credibility_score=compute_credibility_score(history, rules)
    )
