from folio.pagination.models import (
    Direction, MatchTier, PageResult, Position, RemappedPosition, describe_notice,
)
from folio.pagination.pager import Pager
from folio.pagination.resolver import PositionResolver, RemapPlan

__all__ = [
    "Direction", "MatchTier", "PageResult", "Position", "RemappedPosition",
    "describe_notice",
    "Pager",
    "PositionResolver", "RemapPlan",
]
