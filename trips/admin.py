"""
Admin configuration for Trip models.
"""

from django.contrib import admin
from .models import PlannedTrip


@admin.register(PlannedTrip)
class PlannedTripAdmin(admin.ModelAdmin):
    list_display = [
        'id', 'current_location', 'dropoff_location', 'total_distance_miles',
        'log_days', 'violation_count', 'created_at'
    ]
    list_filter = ['created_at']
    search_fields = ['current_location', 'pickup_location', 'dropoff_location']
    readonly_fields = ['id', 'report', 'created_at', 'updated_at']
