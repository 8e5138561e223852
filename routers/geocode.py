from fastapi import APIRouter, Query

from config import SettingsDep
from geocoding import reverse_geocode
from schemas import ReverseGeocodeResult
from .auth import CurrentUserDep

router = APIRouter(prefix="/api/geocode", tags=["geocode"])


@router.get("/reverse", response_model=ReverseGeocodeResult)
def reverse(
    settings: SettingsDep,
    user: CurrentUserDep,
    lat: float = Query(ge=-90, le=90),
    lon: float = Query(ge=-180, le=180),
):
    """
    Address for the browser's coordinates, used to prefill report locations.
    Out-of-region results carry a warning rather than an error.
    """
    return reverse_geocode(lat, lon, settings)
