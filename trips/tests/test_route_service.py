"""
Tests for the distance providers.

External HTTP calls are mocked.
"""

from unittest.mock import MagicMock, patch

import polyline
import pytest
import requests

from trips.services.exceptions import DistanceProviderError
from trips.services.route_service import (
    DistanceProvider,
    Location,
    RouteLeg,
    RouteService,
    StaticDistanceProvider,
    get_distance_provider,
)


TABLE = {
    'locations': {
        'New York, NY': [40.7128, -74.0060],
        'Chicago, IL': [41.8781, -87.6298],
        'Los Angeles, CA': [34.0522, -118.2437],
    },
    'legs': [
        {'from': 'New York, NY', 'to': 'Chicago, IL', 'distance_miles': 790, 'duration_hours': 13.0},
        {'from': 'Chicago, IL', 'to': 'Los Angeles, CA', 'distance_miles': 2015},
    ],
}

ROUTING_CONFIG = {
    'PROVIDER': 'osrm',
    'NOMINATIM_BASE_URL': 'https://nominatim.test',
    'OSRM_BASE_URL': 'https://osrm.test',
    'REQUEST_TIMEOUT': 5,
}


def json_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestStaticDistanceProvider:

    def setup_method(self):
        self.provider = StaticDistanceProvider(TABLE)

    def test_route_through_stops(self):
        route = self.provider.get_route(['New York, NY', 'Chicago, IL', 'Los Angeles, CA'])

        assert [loc.name for loc in route.locations] == ['New York, NY', 'Chicago, IL', 'Los Angeles, CA']
        assert [leg.distance_miles for leg in route.legs] == [790.0, 2015.0]
        assert route.legs[0].duration_hours == 13.0
        assert route.legs[1].duration_hours is None
        assert route.total_distance_miles == 2805.0

    def test_names_match_case_insensitively(self):
        route = self.provider.get_route(['new york, ny', ' CHICAGO, IL '])

        assert route.legs[0].distance_miles == 790.0
        assert route.locations[0].latitude == 40.7128

    def test_reverse_direction(self):
        route = self.provider.get_route(['Los Angeles, CA', 'Chicago, IL'])

        assert route.legs[0].distance_miles == 2015.0

    def test_same_place_is_zero_miles(self):
        route = self.provider.get_route(['Chicago, IL', 'Chicago, IL', 'Los Angeles, CA'])

        assert route.legs[0].distance_miles == 0.0
        assert route.legs[0].duration_hours == 0.0

    def test_unknown_place(self):
        with pytest.raises(DistanceProviderError, match='Atlantis'):
            self.provider.get_route(['New York, NY', 'Atlantis'])

    def test_unknown_leg(self):
        with pytest.raises(DistanceProviderError, match='No distance known'):
            self.provider.get_route(['New York, NY', 'Los Angeles, CA'])


class TestRouteService:
    """Test geocoding and routing against mocked APIs."""

    def setup_method(self):
        self.service = RouteService(ROUTING_CONFIG)
        self.service.session = MagicMock()
        self.sleep = patch('trips.services.route_service.time.sleep').start()

    def teardown_method(self):
        patch.stopall()

    def test_geocode_address(self):
        self.service.session.get.return_value = json_response([{'lat': '41.8781', 'lon': '-87.6298'}])

        location = self.service.geocode_address('Chicago, IL')

        assert location == Location('Chicago, IL', 41.8781, -87.6298)
        args, kwargs = self.service.session.get.call_args
        assert args[0] == 'https://nominatim.test/search'
        assert kwargs['params']['q'] == 'Chicago, IL'
        assert kwargs['timeout'] == 5
        self.sleep.assert_called_once()

    def test_geocode_no_results(self):
        self.service.session.get.return_value = json_response([])

        with pytest.raises(DistanceProviderError, match='Could not geocode'):
            self.service.geocode_address('Nowhere')

    def test_geocode_network_error(self):
        self.service.session.get.side_effect = requests.ConnectionError('connection refused')

        with pytest.raises(DistanceProviderError):
            self.service.geocode_address('Chicago, IL')

    def test_get_route_osrm(self):
        first = [(40.71, -74.00), (41.00, -80.00), (41.87, -87.62)]
        second = [(41.87, -87.62), (38.00, -100.00), (34.05, -118.24)]
        self.service.session.get.side_effect = [
            json_response([{'lat': '40.7128', 'lon': '-74.0060'}]),
            json_response([{'lat': '41.8781', 'lon': '-87.6298'}]),
            json_response([{'lat': '34.0522', 'lon': '-118.2437'}]),
            json_response({
                'code': 'Ok',
                'routes': [{
                    'legs': [
                        {'distance': 1271400, 'duration': 46800,
                         'steps': [{'geometry': polyline.encode(first)}]},
                        {'distance': 3242800, 'duration': 108000,
                         'steps': [{'geometry': polyline.encode(second)}]},
                    ]
                }]
            }),
        ]

        route = self.service.get_route(['New York, NY', 'Chicago, IL', 'Los Angeles, CA'])

        assert len(route.legs) == 2
        assert route.legs[0].distance_miles == pytest.approx(790.0, abs=0.1)
        assert route.legs[0].duration_hours == pytest.approx(13.0)
        assert route.legs[1].distance_miles == pytest.approx(2015.0, abs=0.1)
        assert route.legs[1].coordinates[-1] == pytest.approx((34.05, -118.24))
        assert self.service.session.get.call_count == 4

        osrm_url = self.service.session.get.call_args_list[3][0][0]
        assert osrm_url.startswith('https://osrm.test/route/v1/driving/-74.006,40.7128;')

    def test_repeated_place_geocoded_once(self):
        self.service.session.get.side_effect = [
            json_response([{'lat': '41.8781', 'lon': '-87.6298'}]),
            json_response({
                'code': 'Ok',
                'routes': [{'legs': [
                    {'distance': 0, 'duration': 0, 'steps': []},
                    {'distance': 0, 'duration': 0, 'steps': []},
                ]}]
            }),
        ]

        route = self.service.get_route(['Chicago, IL', 'chicago, il', 'Chicago, IL'])

        assert route.total_distance_miles == 0.0
        assert self.service.session.get.call_count == 2

    def test_osrm_error_code(self):
        self.service.session.get.side_effect = [
            json_response([{'lat': '41.8781', 'lon': '-87.6298'}]),
            json_response([{'lat': '34.0522', 'lon': '-118.2437'}]),
            json_response({'code': 'NoRoute', 'message': 'Impossible route'}),
        ]

        with pytest.raises(DistanceProviderError, match='Impossible route'):
            self.service.get_route(['Chicago, IL', 'Los Angeles, CA'])

    def test_osrm_leg_count_mismatch(self):
        self.service.session.get.side_effect = [
            json_response([{'lat': '41.8781', 'lon': '-87.6298'}]),
            json_response([{'lat': '34.0522', 'lon': '-118.2437'}]),
            json_response({'code': 'Ok', 'routes': [{'legs': []}]}),
        ]

        with pytest.raises(DistanceProviderError, match='Expected 1 route legs'):
            self.service.get_route(['Chicago, IL', 'Los Angeles, CA'])


class TestRouteLeg:

    def test_position_interpolates_without_geometry(self):
        leg = RouteLeg(
            start=Location('A', 40.0, -90.0),
            end=Location('B', 42.0, -80.0),
            distance_miles=100.0
        )

        assert leg.position_at(0) == (40.0, -90.0)
        assert leg.position_at(50) == pytest.approx((41.0, -85.0))
        assert leg.position_at(150) == (42.0, -80.0)

    def test_position_uses_geometry(self):
        leg = RouteLeg(
            start=Location('A', 40.0, -90.0),
            end=Location('B', 42.0, -80.0),
            distance_miles=100.0,
            coordinates=[(40.0, -90.0), (45.0, -88.0), (42.0, -80.0)]
        )

        assert leg.position_at(60) == (45.0, -88.0)


class TestGetDistanceProvider:

    def test_static(self):
        provider = get_distance_provider({'PROVIDER': 'static', 'STATIC_TABLE': TABLE})

        assert isinstance(provider, StaticDistanceProvider)

    def test_osrm_by_default(self):
        provider = get_distance_provider({'PROVIDER': 'osrm'})

        assert isinstance(provider, RouteService)

    def test_provider_interface_is_abstract(self):
        with pytest.raises(TypeError):
            DistanceProvider()
