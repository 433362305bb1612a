"""
Serializers for the Trip Planning API.

Handles validation of trip planning requests and serialization of stored trips.
"""

from rest_framework import serializers
from .models import PlannedTrip


class TripPlanInputSerializer(serializers.Serializer):
    """
    Input serializer for trip planning requests.

    Field names match the front end's camelCase request body.
    """
    currentLocation = serializers.CharField(
        max_length=500,
        help_text="Starting location address (e.g., 'Chicago, IL')"
    )
    pickupLocation = serializers.CharField(
        max_length=500,
        help_text="Pickup location address"
    )
    dropoffLocation = serializers.CharField(
        max_length=500,
        help_text="Dropoff location address"
    )
    currentCycleUsed = serializers.FloatField(
        min_value=0,
        max_value=70,
        help_text="Hours already used in the 8-day/70-hour cycle"
    )
    startTime = serializers.DateTimeField(
        required=False,
        help_text="Departure time (ISO-8601); defaults to now"
    )


class PlannedTripSerializer(serializers.ModelSerializer):
    """
    Summary serializer for stored trips (report body omitted).
    """
    class Meta:
        model = PlannedTrip
        exclude = ['report']
        read_only_fields = ['id', 'created_at', 'updated_at']


class PlannedTripDetailSerializer(serializers.ModelSerializer):
    """
    Full serializer for a stored trip, including its report.
    """
    class Meta:
        model = PlannedTrip
        fields = '__all__'
        read_only_fields = ['id', 'created_at', 'updated_at']


class HealthCheckSerializer(serializers.Serializer):
    """
    Serializer for health check response.
    """
    status = serializers.CharField()
    message = serializers.CharField()
    version = serializers.CharField()
    timestamp = serializers.DateTimeField()
