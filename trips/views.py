"""
Trip Planning API Views.

REST API for the ELD Trip Planner:
- Route calculation with HOS-compliant schedule and daily logs
- Stored trip lookup and deletion
- Health check
- HOS configuration
"""

import logging
from datetime import datetime

from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.decorators import api_view

from .models import PlannedTrip
from .serializers import (
    TripPlanInputSerializer,
    PlannedTripSerializer,
    PlannedTripDetailSerializer,
    HealthCheckSerializer,
)
from .services import (
    DistanceProviderError,
    HOSConfig,
    InputValidationError,
    SegmentationError,
    TripPlanner,
    TripRequest,
    get_distance_provider,
)

logger = logging.getLogger(__name__)

API_VERSION = '3.0.0'


class HealthCheckView(APIView):
    """
    Health check endpoint for monitoring and load balancers.

    GET /api/health/
    """

    def get(self, request):
        """Return health status of the API."""
        data = {
            'status': 'healthy',
            'message': 'ELD Trip Planner API is running',
            'version': API_VERSION,
            'timestamp': timezone.now()
        }
        serializer = HealthCheckSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)


# =============================================================================
# Route Calculation - POST /api/calculate-route
# =============================================================================

class CalculateRouteView(APIView):
    """
    POST /api/calculate-route
    Plan a trip: distances, HOS-compliant duty schedule and daily ELD logs.
    """

    def post(self, request):
        """
        Request:
        {
            "currentLocation": "New York, NY",
            "pickupLocation": "Chicago, IL",
            "dropoffLocation": "Los Angeles, CA",
            "currentCycleUsed": 0,
            "startTime": "2024-01-15T08:00:00Z"   (optional)
        }

        Response:
        {
            "route": {"totalDistance", "totalTime", "waypoints", "fuelStops", "restPeriods"},
            "logSheets": [...],
            "tripId": "..."
        }
        """
        input_serializer = TripPlanInputSerializer(data=request.data)
        if not input_serializer.is_valid():
            return Response(
                {'error': 'Validation failed', 'details': input_serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        data = input_serializer.validated_data
        trip_request = TripRequest(
            current_location=data['currentLocation'],
            pickup_location=data['pickupLocation'],
            dropoff_location=data['dropoffLocation'],
            current_cycle_used=data['currentCycleUsed'],
            start_time=_start_time(data.get('startTime'), request.data.get('startTime'))
        )

        try:
            planner = TripPlanner(get_distance_provider(), HOSConfig.from_settings())
            report = planner.plan(trip_request)
        except InputValidationError as e:
            logger.error(f"Trip request rejected: {e}")
            return Response(
                {'error': 'Validation failed', 'details': str(e)},
                status=status.HTTP_400_BAD_REQUEST
            )
        except DistanceProviderError as e:
            logger.error(f"Route calculation failed: {e}")
            return Response(
                {'error': 'Route calculation failed', 'details': str(e)},
                status=status.HTTP_502_BAD_GATEWAY
            )
        except SegmentationError as e:
            logger.exception(f"Trip planning failed: {e}")
            return Response(
                {'error': 'Trip planning failed', 'details': str(e)},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        response_data = report.to_dict()
        trip = PlannedTrip.objects.create(
            current_location=trip_request.current_location,
            pickup_location=trip_request.pickup_location,
            dropoff_location=trip_request.dropoff_location,
            current_cycle_used_hours=trip_request.current_cycle_used,
            start_time=trip_request.start_time,
            total_distance_miles=report.total_distance,
            total_driving_hours=report.total_driving_time,
            estimated_arrival=report.arrival_time,
            log_days=len(report.daily_logs),
            violation_count=report.violation_count,
            report=response_data
        )

        logger.info(f"Trip {trip.id} planned successfully")
        return Response({**response_data, 'tripId': str(trip.id)}, status=status.HTTP_200_OK)


# =============================================================================
# Stored Trips - /api/trips/
# =============================================================================

class TripListView(APIView):
    """
    GET /api/trips/ - List planned trips, newest first
    """

    def get(self, request):
        trips = PlannedTrip.objects.all().order_by('-created_at')
        serializer = PlannedTripSerializer(trips, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)


class TripDetailView(APIView):
    """
    GET /api/trips/{id}/ - Get a stored trip and its report
    DELETE /api/trips/{id}/ - Delete a stored trip
    """

    def get(self, request, trip_id):
        trip = get_object_or_404(PlannedTrip, id=trip_id)
        return Response(PlannedTripDetailSerializer(trip).data, status=status.HTTP_200_OK)

    def delete(self, request, trip_id):
        trip = get_object_or_404(PlannedTrip, id=trip_id)
        trip.delete()
        logger.info(f"Trip {trip_id} deleted")
        return Response(status=status.HTTP_204_NO_CONTENT)


# =============================================================================
# HOS Configuration - GET /api/config/hos
# =============================================================================

class HOSConfigView(APIView):
    """
    GET /api/config/hos - Get current HOS rules/assumptions
    """

    def get(self, request):
        """Get current HOS configuration and assumptions."""
        config = HOSConfig.from_settings()

        return Response({
            'cycle': {
                'days': config.cycle_days,
                'hours': config.cycle_hours,
                'description': f'{config.cycle_hours:g} hours in {config.cycle_days} consecutive days'
            },
            'daily_limits': {
                'max_driving_hours': config.max_driving_hours,
                'max_on_duty_hours': config.max_on_duty_hours,
                'description': (
                    f'{config.max_driving_hours:g} hours driving within '
                    f'{config.max_on_duty_hours:g}-hour window'
                )
            },
            'breaks': {
                'break_required_after_hours': config.break_required_after_hours,
                'break_duration_hours': config.break_duration_hours,
                'description': (
                    f'{config.break_duration_hours * 60:g}-minute break required after '
                    f'{config.break_required_after_hours:g} hours driving'
                )
            },
            'rest': {
                'off_duty_reset_hours': config.off_duty_reset_hours,
                'restart_hours': config.restart_hours,
                'description': (
                    f'{config.off_duty_reset_hours:g}-hour off-duty for daily reset, '
                    f'{config.restart_hours:g}-hour for cycle reset'
                )
            },
            'practical': {
                'fuel_interval_miles': config.fuel_interval_miles,
                'fuel_stop_duration_hours': config.fuel_stop_duration_hours,
                'fuel_top_off_at_rest_miles': config.fuel_top_off_at_rest_miles,
                'pickup_duration_hours': config.pickup_duration_hours,
                'dropoff_duration_hours': config.dropoff_duration_hours,
                'average_speed_mph': config.average_speed_mph
            },
            'assumptions': [
                'Property-carrying driver (not passenger)',
                f'{config.cycle_hours:g}-hour/{config.cycle_days}-day cycle',
                'No adverse driving conditions',
                'No sleeper berth split',
                f'Fueling at least every {config.fuel_interval_miles:,.0f} miles',
                (
                    f'{config.pickup_duration_hours:g} hour for pickup, '
                    f'{config.dropoff_duration_hours:g} hour for dropoff'
                ),
                f'Average speed of {config.average_speed_mph:g} mph when the route has no drive time'
            ]
        }, status=status.HTTP_200_OK)


@api_view(['GET'])
def api_root(request):
    """
    GET /api/
    API documentation and endpoint listing.
    """
    return Response({
        'name': 'ELD Trip Planner API',
        'version': API_VERSION,
        'description': 'HOS-compliant trip planning and ELD log generation for truck drivers',
        'endpoints': {
            'health': {
                'GET /api/health/': 'Health check'
            },
            'routes': {
                'POST /api/calculate-route': 'Plan a trip and generate daily logs'
            },
            'trips': {
                'GET /api/trips/': 'List planned trips',
                'GET /api/trips/{id}/': 'Get a planned trip and its report',
                'DELETE /api/trips/{id}/': 'Delete a planned trip'
            },
            'config': {
                'GET /api/config/hos': 'Get HOS rules and assumptions'
            }
        }
    })


def _default_start_time() -> datetime:
    """Current time, truncated to the minute."""
    return timezone.now().replace(second=0, microsecond=0)


def _start_time(parsed, raw):
    """
    Departure time in the caller's own UTC offset.

    Log sheet dates and entry times follow the calendar of the offset the
    caller sent; DRF has already normalized ``parsed`` to the server zone.
    """
    if parsed is None:
        return _default_start_time()
    supplied = parse_datetime(raw) if isinstance(raw, str) else None
    if supplied is not None and supplied.tzinfo is not None:
        return parsed.astimezone(supplied.tzinfo)
    return parsed
