"""Admin review of buyer reports and fraud cases."""

from .review import AdminReviewWorkflow

__all__ = ["AdminReviewWorkflow"]
