import pytest

from app.domain.errors import SourceUnavailable
from app.models.geo import ImageSource
from app.services import image_aggregator as agg

EIFFEL_NAME = "Champ de Mars, 5, Avenue Anatole France, Gros-Caillou, Paris, France"


def test_extract_location_keywords():
    assert agg.extract_location_keywords(EIFFEL_NAME) == ["Champ de Mars"]
    assert agg.extract_location_keywords("강남구, 서울특별시, 대한민국") == ["강남구", "서울특별시"]
    assert agg.extract_location_keywords("South Korea, Republic of Korea, Seoul") == []
    assert agg.extract_location_keywords("x, Seoul") == ["Seoul"]
    assert agg.extract_location_keywords("Korea University, Seongbuk-gu, Seoul") == ["Korea University", "Seongbuk-gu"]
    assert agg.extract_location_keywords("Koreatown, Los Angeles") == ["Koreatown", "Los Angeles"]
    assert agg.extract_location_keywords("") == []


def test_build_text_queries():
    assert agg.build_text_queries(["강남구", "서울특별시"]) == ["강남구 street", "강남구 road", "서울특별시 street"]
    assert agg.build_text_queries(["Gros-Caillou"]) == ["Gros-Caillou street", "Gros-Caillou road"]
    assert agg.build_text_queries([]) == []


def test_sort_by_distance_puts_unknown_last(make_image):
    items = [
        make_image("u/a", ImageSource.GENERAL_IMAGE_SEARCH),
        make_image("u/b", distance=300.0),
        make_image("u/c", ImageSource.TEXT_SEARCH),
        make_image("u/d", distance=12.5),
    ]
    out = agg.sort_by_distance(items)
    assert [i.full_url for i in out] == ["u/d", "u/b", "u/a", "u/c"]


def _patch_sources(monkeypatch, geo=None, text=None, general=None, place=None):
    async def fake_geo(session, lat, lon, radius, limit):
        if isinstance(geo, Exception):
            raise geo
        return geo or []

    async def fake_text(session, query, limit):
        out = (text or {}).get(query, [])
        if isinstance(out, Exception):
            raise out
        return out

    async def fake_general(session, query, limit):
        if isinstance(general, Exception):
            raise general
        return general or []

    async def fake_reverse(session, lat, lon, zoom=10, address_details=False):
        if isinstance(place, Exception):
            raise place
        return {"display_name": place or "", "address": None}

    monkeypatch.setattr(agg.image_sources, "geo_search_images", fake_geo)
    monkeypatch.setattr(agg.image_sources, "text_search_images", fake_text)
    monkeypatch.setattr(agg.image_sources, "openverse_search", fake_general)
    monkeypatch.setattr(agg.geocoder, "reverse_geocode", fake_reverse)


@pytest.mark.asyncio
async def test_geotagged_results_precede_general_results(monkeypatch, make_image):
    geo = [make_image("c/eiffel2.jpg", distance=840.0), make_image("c/eiffel1.jpg", distance=120.0)]
    text = {
        "Champ de Mars street": [
            make_image("c/eiffel1.jpg", ImageSource.TEXT_SEARCH),
            make_image("c/champ.jpg", ImageSource.TEXT_SEARCH),
        ],
    }
    general = [make_image("o/paris.jpg", ImageSource.GENERAL_IMAGE_SEARCH)]
    _patch_sources(monkeypatch, geo=geo, text=text, general=general, place=EIFFEL_NAME)

    out = await agg.aggregate(48.8584, 2.2945, session=object())

    assert [r.full_url for r in out] == ["c/eiffel1.jpg", "c/eiffel2.jpg", "c/champ.jpg", "o/paris.jpg"]
    assert out[0].source == ImageSource.GEO_PROXIMITY
    assert out[0].distance_meters is not None
    assert len({r.full_url for r in out}) == len(out)
    assert out[-1].distance_meters is None


@pytest.mark.asyncio
async def test_all_tiers_failing_returns_empty(monkeypatch):
    err = SourceUnavailable("commons", "ClientConnectorError")
    _patch_sources(
        monkeypatch,
        geo=err,
        text={"Champ de Mars street": err, "Champ de Mars road": err},
        general=err,
        place=EIFFEL_NAME,
    )
    assert await agg.aggregate(48.8584, 2.2945, session=object()) == []


@pytest.mark.asyncio
async def test_reverse_geocode_failure_skips_keyword_tiers(monkeypatch, make_image):
    _patch_sources(monkeypatch, geo=[make_image("c/a.jpg", distance=5.0)], place=RuntimeError("down"))
    out = await agg.aggregate(48.8584, 2.2945, session=object())
    assert [r.full_url for r in out] == ["c/a.jpg"]


@pytest.mark.asyncio
async def test_text_subquery_failure_is_isolated(monkeypatch, make_image):
    text = {
        "강남구 street": [make_image("c/gangnam-street.jpg", ImageSource.TEXT_SEARCH)],
        "강남구 road": SourceUnavailable("commons", "status=500"),
        "서울특별시 street": [make_image("c/seoul.jpg", ImageSource.TEXT_SEARCH)],
    }
    _patch_sources(monkeypatch, text=text, place="강남구, 서울특별시, 대한민국")
    out = await agg.aggregate(37.5172, 127.0473, session=object())
    assert [r.full_url for r in out] == ["c/gangnam-street.jpg", "c/seoul.jpg"]
    assert all(r.lat is None and r.distance_meters is None for r in out)


@pytest.mark.asyncio
async def test_general_tier_uses_first_keyword(monkeypatch):
    seen = []

    async def fake_general(session, query, limit):
        seen.append((query, limit))
        return []

    _patch_sources(monkeypatch, place="강남구, 서울특별시, 대한민국")
    monkeypatch.setattr(agg.image_sources, "openverse_search", fake_general)
    await agg.aggregate(37.5172, 127.0473, session=object())
    assert seen == [("강남구", 10)]
