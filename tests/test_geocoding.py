import requests

import geocoding


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def _fake_get(payload, calls=None, status_code=200):
    def fake_get(url, params=None, headers=None, timeout=None):
        if calls is not None:
            calls.append({"url": url, "params": params, "headers": headers})
        return FakeResponse(payload, status_code)

    return fake_get


def test_address_inside_region(monkeypatch, settings):
    calls = []
    monkeypatch.setattr(
        geocoding.requests,
        "get",
        _fake_get(
            {"display_name": "FC Road, Pune, Maharashtra, India", "address": {"state": "Maharashtra"}},
            calls,
        ),
    )

    result = geocoding.reverse_geocode(18.52, 73.85, settings)
    assert result["address"] == "FC Road, Pune, Maharashtra, India"
    assert result["in_service_region"] is True
    assert result["warning"] is None
    assert calls[0]["url"] == "https://geocoder.test/reverse"
    assert calls[0]["params"]["lat"] == 18.52
    assert "User-Agent" in calls[0]["headers"]


def test_address_outside_region_is_annotated_not_rejected(monkeypatch, settings):
    monkeypatch.setattr(
        geocoding.requests,
        "get",
        _fake_get({"display_name": "MG Road, Bengaluru, Karnataka, India", "address": {"state": "Karnataka"}}),
    )

    result = geocoding.reverse_geocode(12.97, 77.59, settings)
    assert result["address"] == (
        "MG Road, Bengaluru, Karnataka, India (Note: This location may be outside Maharashtra)"
    )
    assert result["in_service_region"] is False
    assert result["warning"] == "Location may be outside Maharashtra"
    assert result["error"] is None


def test_network_failure_falls_back_to_coordinates(monkeypatch, settings):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(geocoding.requests, "get", boom)

    result = geocoding.reverse_geocode(18.5, 73.8, settings)
    assert result["address"] == "18.5, 73.8"
    assert "no route to host" in result["error"]


def test_provider_error_falls_back_to_coordinates(monkeypatch, settings):
    monkeypatch.setattr(geocoding.requests, "get", _fake_get({"error": "Unable to geocode"}))

    result = geocoding.reverse_geocode(0.0, 0.0, settings)
    assert result["address"] == "0.0, 0.0"
    assert result["error"] == "Unable to geocode"


def test_http_error_falls_back_to_coordinates(monkeypatch, settings):
    monkeypatch.setattr(geocoding.requests, "get", _fake_get({}, status_code=503))

    result = geocoding.reverse_geocode(1.0, 2.0, settings)
    assert result["address"] == "1.0, 2.0"
    assert result["error"]


def test_reverse_endpoint(monkeypatch, anon, individual):
    monkeypatch.setattr(
        geocoding.requests,
        "get",
        _fake_get({"display_name": "Camp, Pune, Maharashtra", "address": {"state": "Maharashtra"}}),
    )

    assert anon.get("/api/geocode/reverse", params={"lat": 18.5, "lon": 73.8}).status_code == 401

    r = individual.get("/api/geocode/reverse", params={"lat": 18.5, "lon": 73.8})
    assert r.status_code == 200
    assert r.json()["address"] == "Camp, Pune, Maharashtra"
    assert r.json()["inServiceRegion"] is True

    assert individual.get("/api/geocode/reverse", params={"lat": 123, "lon": 0}).status_code == 400


def test_non_object_payload_falls_back_to_coordinates(monkeypatch, settings):
    monkeypatch.setattr(geocoding.requests, "get", _fake_get([]))

    result = geocoding.reverse_geocode(18.5, 73.8, settings)
    assert result["address"] == "18.5, 73.8"
    assert result["error"] == "Unexpected response from geocoder"
