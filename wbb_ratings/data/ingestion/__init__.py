"""Season ingestion: game discovery, state persistence and the run pipeline."""

from .discovery import DiscoveredDay, GameDiscoveryWalker, extract_game_ids, incremental_range, iter_dates
from .season_pipeline import (
    IngestionSummary,
    InsufficientCoverageError,
    MissingGame,
    PayloadValidationError,
    SeasonIngestionConfig,
    SeasonIngestionPipeline,
)
from .state_store import IncrementalStateStore, SeasonState

__all__ = [
    "DiscoveredDay",
    "GameDiscoveryWalker",
    "IncrementalStateStore",
    "IngestionSummary",
    "InsufficientCoverageError",
    "MissingGame",
    "PayloadValidationError",
    "SeasonIngestionConfig",
    "SeasonIngestionPipeline",
    "SeasonState",
    "extract_game_ids",
    "incremental_range",
    "iter_dates",
]
