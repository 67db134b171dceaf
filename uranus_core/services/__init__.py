"""Service layer for the Uranus client."""

from .activity_service import ActivityService
from .positions_service import PositionsService
from .tx_builder import TransactionBuilder

__all__ = ["ActivityService", "PositionsService", "TransactionBuilder"]
