import httpx
import pytest

from src.evroute.models.domain import Corridor, GeoPoint
from src.evroute.services.geocoding import GeocodingClient, GeocodingError
from src.evroute.services.http_client import UpstreamServiceError
from src.evroute.services.routing.route_client import RouteClient, RouteProviderError
from src.evroute.services.stations.directory_client import StationDirectoryClient


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_geocode_returns_first_match_and_sends_country_bias():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["user_agent"] = request.headers.get("User-Agent")
        return httpx.Response(200, json=[{"lat": "48.8566", "lon": "2.3522"}, {"lat": "0", "lon": "0"}])

    geocoder = GeocodingClient("https://geo.test", country_codes="fr", query_suffix="France", client=_client(handler))

    point = geocoder.geocode("  Paris ")

    assert point == GeoPoint(lat=48.8566, lng=2.3522)
    assert seen["params"]["q"] == "Paris France"
    assert seen["params"]["countrycodes"] == "fr"
    assert seen["params"]["limit"] == "1"
    assert seen["user_agent"]


def test_geocode_unknown_place_raises():
    geocoder = GeocodingClient("https://geo.test", client=_client(lambda request: httpx.Response(200, json=[])))

    with pytest.raises(GeocodingError):
        geocoder.geocode("Atlantis")


def test_geocode_retries_server_errors():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json=[{"lat": "45.76", "lon": "4.83"}])

    geocoder = GeocodingClient("https://geo.test", client=_client(handler))
    geocoder.backoff_seconds = 0.0
    geocoder.max_retries = 1

    assert geocoder.geocode("Lyon") == GeoPoint(lat=45.76, lng=4.83)
    assert len(calls) == 2


def test_route_client_reads_polyline_and_distance():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"polyline": "_p~iF~ps|U_ulLnnqC", "total_distance": 465000})

    client = RouteClient("https://route.test/api/route/", api_key="secret", client=_client(handler))

    response = client.route(GeoPoint(lat=48.85, lng=2.35), GeoPoint(lat=45.76, lng=4.83))

    assert response.polyline == "_p~iF~ps|U_ulLnnqC"
    assert response.distance_km == pytest.approx(465.0)
    assert seen["params"]["origin"] == "48.85,2.35"
    assert seen["params"]["destination"] == "45.76,4.83"
    assert seen["params"]["key"] == "secret"


def test_route_client_without_distance_returns_none():
    client = RouteClient("https://route.test", api_key="", client=_client(lambda request: httpx.Response(200, json={"polyline": "??"})))

    assert client.route(GeoPoint(lat=0, lng=0), GeoPoint(lat=1, lng=1)).distance_km is None


def test_route_client_missing_polyline_raises():
    client = RouteClient(
        "https://route.test",
        client=_client(lambda request: httpx.Response(200, json={"status": "NOT_FOUND"})),
    )

    with pytest.raises(RouteProviderError, match="NOT_FOUND"):
        client.route(GeoPoint(lat=0, lng=0), GeoPoint(lat=1, lng=1))


def test_route_client_non_json_body_is_an_upstream_error():
    client = _client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))

    with pytest.raises(UpstreamServiceError, match="non-JSON"):
        RouteClient("https://route.test", api_key="", client=client).route(GeoPoint(45.0, 4.0), GeoPoint(45.0, 5.0))


def test_directory_search_sends_geofilter_and_parses_records():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "nhits": 2,
                "records": [
                    {"recordid": "r1", "fields": {"geo_point_borne": [45.0, 2.5], "puiss_max": 22, "n_enseigne": "Tesla"}},
                    {"recordid": "r2", "fields": {"n_amenageur": "City"}},
                ],
            },
        )

    corridor = Corridor(center=GeoPoint(lat=45.0, lng=2.5), radius_km=30.0)
    directory = StationDirectoryClient("https://stations.test", dataset="bornes-irve", max_rows=100, client=_client(handler))

    records = directory.search(corridor)

    assert seen["params"]["dataset"] == "bornes-irve"
    assert seen["params"]["rows"] == "100"
    assert seen["params"]["geofilter.distance"] == "45.000000,2.500000,30000"
    assert [record.record_id for record in records] == ["r1", "r2"]
    assert records[0].brand == "Tesla"
    assert records[1].lat is None


def test_directory_client_errors_propagate():
    directory = StationDirectoryClient("https://stations.test", client=_client(lambda request: httpx.Response(400)))

    with pytest.raises(httpx.HTTPStatusError):
        directory.search(Corridor(center=GeoPoint(lat=45.0, lng=2.5), radius_km=30.0))
