import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.models.geo import GeocodedLocation, ImageResult, ImageSource, LocationCandidate


@pytest_asyncio.fixture
async def client():
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def make_location():
    def _make(name, lat=37.5, lon=127.0, address=None):
        return GeocodedLocation(display_name=name, lat=lat, lon=lon, address=address)
    return _make


@pytest.fixture
def make_candidate():
    def _make(query, confidence=0.85, hints=None, source="AI OCR"):
        return LocationCandidate(query=query, confidence=confidence, source=source, country_hints=hints or [])
    return _make


@pytest.fixture
def make_image():
    def _make(full_url, source=ImageSource.GEO_PROXIMITY, distance=None):
        geo = source == ImageSource.GEO_PROXIMITY
        return ImageResult(
            url=full_url + "?thumb",
            full_url=full_url,
            title=full_url.rsplit("/", 1)[-1],
            lat=48.8584 if geo else None,
            lon=2.2945 if geo else None,
            distance_meters=distance,
            source=source,
        )
    return _make
