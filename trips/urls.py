"""
URL configuration for trips app.

Stored trip lookup; mounted under /api/trips/.
"""

from django.urls import path
from .views import TripListView, TripDetailView

app_name = 'trips'

urlpatterns = [
    # GET /api/trips/ - List all trips
    path('', TripListView.as_view(), name='trip_list'),

    # GET/DELETE /api/trips/{id}/
    path('<uuid:trip_id>/', TripDetailView.as_view(), name='trip_detail'),
]
