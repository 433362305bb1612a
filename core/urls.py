"""
URL configuration for ELD Trip Planner project.

API URL structure:
- /api/ - API root
- /api/health/ - Health check
- /api/calculate-route - Trip planning (route, schedule, daily logs)
- /api/trips/ - Stored trips
- /api/config/hos - HOS configuration
"""

from django.contrib import admin
from django.urls import path, include
from trips.views import (
    HealthCheckView,
    api_root,
    CalculateRouteView,
    HOSConfigView,
)

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API root - Documentation
    path('api/', api_root, name='api_root'),

    # Health check endpoint
    path('api/health/', HealthCheckView.as_view(), name='health_check'),

    # ==========================================================================
    # Trip Planning
    # ==========================================================================
    path('api/calculate-route', CalculateRouteView.as_view(), name='calculate_route'),

    # ==========================================================================
    # Stored Trips - Uses trips app urls
    # ==========================================================================
    path('api/trips/', include('trips.urls', namespace='trips')),

    # ==========================================================================
    # HOS Configuration Service
    # ==========================================================================
    path('api/config/hos', HOSConfigView.as_view(), name='config_hos'),
]
