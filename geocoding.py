import requests
import structlog

from config import Settings

logger = structlog.get_logger(__name__)

USER_AGENT = "StrayCare/0.1 (animal rescue reports)"
TIMEOUT_SECONDS = 10


def _in_region(data: dict, region: str) -> bool:
    address = data.get("address") or {}
    if address.get("state") == region:
        return True
    return region in (data.get("display_name") or "")


def reverse_geocode(latitude: float, longitude: float, settings: Settings) -> dict:
    """
    Turn coordinates into a readable address.

    A location outside the service region is annotated, not rejected.
    When the provider fails the raw coordinates come back as the address
    and "error" says why.
    """
    fallback = f"{latitude}, {longitude}"
    result = {
        "latitude": latitude,
        "longitude": longitude,
        "address": fallback,
        "in_service_region": False,
        "warning": None,
        "error": None,
    }

    try:
        resp = requests.get(
            settings.geocoder_url,
            params={
                "format": "json",
                "lat": latitude,
                "lon": longitude,
                "zoom": 18,
                "addressdetails": 1,
            },
            headers={"User-Agent": USER_AGENT},
            timeout=TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("reverse_geocode_failed", error=str(exc))
        result["error"] = str(exc)
        return result

    if not isinstance(data, dict):
        logger.warning("reverse_geocode_failed", error="unexpected payload")
        result["error"] = "Unexpected response from geocoder"
        return result

    if data.get("error") or not data.get("display_name"):
        error = data.get("error") or "No address found"
        logger.warning("reverse_geocode_failed", error=error)
        result["error"] = error
        return result

    region = settings.service_region
    if _in_region(data, region):
        result["address"] = data["display_name"]
        result["in_service_region"] = True
    else:
        result["address"] = (
            f"{data['display_name']} (Note: This location may be outside {region})"
        )
        result["warning"] = f"Location may be outside {region}"
    return result
