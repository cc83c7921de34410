"""BouncerLink: short links with access rules and visit analytics."""

from .access import DenialReason, Verdict, evaluate
from .resolver import Credentials, Outcome, OutcomeStatus, RequestMetadata, ResolutionEngine
from .analytics import Summary, BasicSummary, summarize
from .database.models import VisitorKey
from .shortcode import ShortCodeGenerator
from .service import LinkService

__all__ = [
    "DenialReason",
    "Verdict",
    "evaluate",
    "Credentials",
    "Outcome",
    "OutcomeStatus",
    "RequestMetadata",
    "ResolutionEngine",
    "Summary",
    "BasicSummary",
    "VisitorKey",
    "summarize",
    "ShortCodeGenerator",
    "LinkService",
]
