"""
Services package for ELD Trip Planner.

Contains business logic separated from views for clean architecture.
"""

from .exceptions import (
    TripPlanningError,
    InputValidationError,
    DistanceProviderError,
    SegmentationError,
)
from .route_service import RouteService, StaticDistanceProvider, get_distance_provider
from .hos_service import DutyClock, HOSConfig
from .segment_service import TripSegmenter
from .eld_service import ELDLogService
from .report_service import TripPlanner, TripRequest, build_report

__all__ = [
    'TripPlanningError',
    'InputValidationError',
    'DistanceProviderError',
    'SegmentationError',
    'RouteService',
    'StaticDistanceProvider',
    'get_distance_provider',
    'DutyClock',
    'HOSConfig',
    'TripSegmenter',
    'ELDLogService',
    'TripPlanner',
    'TripRequest',
    'build_report',
]
