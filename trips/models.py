"""
Trip Models for ELD Trip Planner.

Stores each planned trip with its compliance report for historical lookup.
"""

from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
import uuid


class PlannedTrip(models.Model):
    """
    A trip request and the compliance report produced for it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Location inputs
    current_location = models.CharField(max_length=500, help_text="Starting location address")
    pickup_location = models.CharField(max_length=500, help_text="Pickup location address")
    dropoff_location = models.CharField(max_length=500, help_text="Dropoff location address")

    # HOS tracking
    current_cycle_used_hours = models.FloatField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(70)],
        help_text="Hours already used in the 8-day cycle"
    )
    start_time = models.DateTimeField(help_text="When the driver leaves the current location")

    # Plan summary
    total_distance_miles = models.FloatField(default=0)
    total_driving_hours = models.FloatField(default=0)
    estimated_arrival = models.DateTimeField(null=True, blank=True)
    log_days = models.IntegerField(default=0)
    violation_count = models.IntegerField(default=0)

    # Full response body as returned by POST /api/calculate-route
    report = models.JSONField(default=dict)

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Planned Trip'
        verbose_name_plural = 'Planned Trips'

    def __str__(self):
        return f"Trip {self.id}: {self.current_location} -> {self.dropoff_location}"
