import pytest

from app.domain.errors import NoCandidates, NoResolution
from app.models.geo import GeocodedLocation, LocationCandidate
from app.services import location_estimator as le


def _no_gps(monkeypatch):
    monkeypatch.setattr(le.exif_reader, "read_gps", lambda b: None)


@pytest.mark.asyncio
async def test_exif_gps_short_circuits_extraction(monkeypatch):
    async def fake_reverse(session, lat, lon, zoom=10, address_details=False):
        assert zoom == 18 and address_details is True
        return {"display_name": "신사동, 강남구, 서울특별시, 대한민국", "address": {"country_code": "kr"}}

    async def must_not_run(*a, **kw):
        raise AssertionError("extraction should be skipped")

    monkeypatch.setattr(le.exif_reader, "read_gps", lambda b: (37.5163, 127.0203))
    monkeypatch.setattr(le.geocoder, "reverse_geocode", fake_reverse)
    monkeypatch.setattr(le.candidate_extractor, "extract_candidates", must_not_run)

    out = await le.estimate_location(b"jpeg", "photo.jpg", session=object())
    assert out.method == "exif"
    assert out.selection == "single"
    loc = out.locations[0]
    assert loc.confidence == 1.0
    assert loc.source == "EXIF GPS"
    assert loc.display_name.startswith("신사동")
    assert (loc.lat, loc.lon) == (37.5163, 127.0203)


@pytest.mark.asyncio
async def test_exif_gps_without_reverse_name(monkeypatch):
    async def empty_reverse(session, lat, lon, zoom=10, address_details=False):
        return {"display_name": "", "address": None}

    monkeypatch.setattr(le.exif_reader, "read_gps", lambda b: (37.5, 127.0))
    monkeypatch.setattr(le.geocoder, "reverse_geocode", empty_reverse)
    out = await le.estimate_location(b"jpeg", "photo.jpg", session=object())
    assert out.locations[0].display_name == "37.500000, 127.000000"


@pytest.mark.asyncio
async def test_no_candidates(monkeypatch):
    async def nothing(image_bytes, lane_timeout=None):
        return []

    _no_gps(monkeypatch)
    monkeypatch.setattr(le.candidate_extractor, "extract_candidates", nothing)
    with pytest.raises(NoCandidates):
        await le.estimate_location(b"img", "blank.png", session=object())


@pytest.mark.asyncio
async def test_no_resolution(monkeypatch):
    async def one_candidate(image_bytes, lane_timeout=None):
        return [LocationCandidate(query="Mystery Place", confidence=0.85)]

    async def nothing(query, country_hints=None, session=None):
        return []

    _no_gps(monkeypatch)
    monkeypatch.setattr(le.candidate_extractor, "extract_candidates", one_candidate)
    monkeypatch.setattr(le.candidate_ranker.geocoder, "resolve", nothing)
    with pytest.raises(NoResolution):
        await le.estimate_location(b"img", "sign.jpg", session=object())


@pytest.mark.asyncio
async def test_ai_path_reports_language_and_choice(monkeypatch):
    async def korean_candidates(image_bytes, lane_timeout=None):
        return [
            LocationCandidate(query="강남구", confidence=0.85, language_hint="kor", country_hints=["kr"]),
            LocationCandidate(query="도시 건물", kind="visual", confidence=0.5, source="Visual Analysis",
                              language_hint="kor", country_hints=["kr"]),
        ]

    async def fake_resolve(query, country_hints=None, session=None):
        if query == "강남구":
            return [
                GeocodedLocation(display_name="강남구, 서울특별시, 대한민국", lat=37.51, lon=127.04,
                                 address={"country_code": "kr"}),
                GeocodedLocation(display_name="강남구, 다른 곳", lat=1.0, lon=1.0),
            ]
        return []

    _no_gps(monkeypatch)
    monkeypatch.setattr(le.candidate_extractor, "extract_candidates", korean_candidates)
    monkeypatch.setattr(le.candidate_ranker.geocoder, "resolve", fake_resolve)

    out = await le.estimate_location(b"img", "street.jpg", session=object())
    assert out.method == "ai"
    assert out.selection == "choice"
    assert out.candidate_count == 2
    assert out.language.language == "kor"
    assert out.locations[0].display_name == "강남구, 서울특별시, 대한민국"
    assert out.broad_search is False
