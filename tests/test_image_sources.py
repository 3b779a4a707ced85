import pytest

from app.domain.errors import SourceUnavailable
from app.models.geo import ImageSource
from app.services import image_sources

GEOSEARCH = {"query": {"geosearch": [
    {"pageid": 11, "title": "File:Tour Eiffel.jpg", "lat": 48.8583, "lon": 2.2944, "dist": 85.3},
    {"pageid": 12, "title": "File:Champ de Mars.jpg", "lat": 48.8556, "lon": 2.2986},
    {"pageid": 13, "title": "File:Missing info.jpg", "lat": 48.85, "lon": 2.29, "dist": 400.0},
]}}

IMAGEINFO = {"query": {"pages": {
    "11": {"pageid": 11, "title": "File:Tour Eiffel.jpg", "imageinfo": [{
        "url": "https://upload.wikimedia.org/eiffel.jpg",
        "thumburl": "https://upload.wikimedia.org/640px-eiffel.jpg",
    }]},
    "12": {"pageid": 12, "title": "File:Champ de Mars.jpg", "imageinfo": [{
        "url": "https://upload.wikimedia.org/champ.jpg",
    }]},
    "13": {"pageid": 13, "title": "File:Missing info.jpg"},
}}}


def _patch_fetch(monkeypatch, routes, seen=None):
    async def fake_fetch(session, url, params=None, headers=None):
        if seen is not None:
            seen.append(dict(params or {}))
        key = (params or {}).get("list") or (params or {}).get("prop") or "openverse"
        out = routes[key]
        if isinstance(out, Exception):
            raise out
        return out

    monkeypatch.setattr(image_sources.http_client, "fetch_json", fake_fetch)


@pytest.mark.asyncio
async def test_geo_search_joins_imageinfo_by_pageid(monkeypatch):
    seen = []
    _patch_fetch(monkeypatch, {"geosearch": GEOSEARCH, "imageinfo": IMAGEINFO}, seen)

    out = await image_sources.geo_search_images(object(), 48.8584, 2.2945, 5000, 20)

    assert [r.full_url for r in out] == [
        "https://upload.wikimedia.org/eiffel.jpg",
        "https://upload.wikimedia.org/champ.jpg",
    ]
    eiffel, champ = out
    assert eiffel.url == "https://upload.wikimedia.org/640px-eiffel.jpg"
    assert eiffel.title == "Tour Eiffel.jpg"
    assert eiffel.distance_meters == 85.3
    assert (eiffel.lat, eiffel.lon) == (48.8583, 2.2944)
    assert eiffel.source == ImageSource.GEO_PROXIMITY
    # no thumbnail -> original url, missing dist -> 0
    assert champ.url == champ.full_url
    assert champ.distance_meters == 0.0

    assert seen[0]["gsradius"] == 5000
    assert seen[0]["gsnamespace"] == 6
    assert seen[1]["pageids"] == "11|12|13"
    assert seen[1]["iiurlwidth"] == 640


@pytest.mark.asyncio
async def test_geo_search_without_hits_skips_imageinfo(monkeypatch):
    seen = []
    _patch_fetch(monkeypatch, {"geosearch": {"query": {"geosearch": []}}}, seen)
    assert await image_sources.geo_search_images(object(), 0.0, 0.0, 5000, 20) == []
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_text_search_has_no_geotag_and_is_capped(monkeypatch):
    hits = [{"pageid": i, "title": f"File:Street {i}.jpg"} for i in range(1, 7)]
    pages = {
        str(i): {"pageid": i, "title": f"File:Street {i}.jpg",
                 "imageinfo": [{"url": f"https://upload.wikimedia.org/street{i}.jpg"}]}
        for i in range(1, 7)
    }
    seen = []
    _patch_fetch(monkeypatch, {"search": {"query": {"search": hits}}, "imageinfo": {"query": {"pages": pages}}}, seen)

    out = await image_sources.text_search_images(object(), "Champ de Mars street", 4)

    assert len(out) == 4
    assert [r.title for r in out] == ["Street 1.jpg", "Street 2.jpg", "Street 3.jpg", "Street 4.jpg"]
    assert all(r.source == ImageSource.TEXT_SEARCH for r in out)
    assert all(r.lat is None and r.lon is None and r.distance_meters is None for r in out)
    assert seen[0]["srsearch"] == "Champ de Mars street"
    assert seen[0]["srnamespace"] == 6


@pytest.mark.asyncio
async def test_openverse_maps_urls_and_fallbacks(monkeypatch):
    payload = {"results": [
        {"url": "https://img.example/full1.jpg", "thumbnail": "https://img.example/t1.jpg",
         "title": "Paris street", "description": "Rue Cler"},
        {"thumbnail": "https://img.example/t2.jpg", "alt": "Seine at dusk"},
        {"title": "no urls at all"},
    ]}
    seen = []
    _patch_fetch(monkeypatch, {"openverse": payload}, seen)

    out = await image_sources.openverse_search(object(), "Champ de Mars", 10)

    assert seen[0]["q"] == "Champ de Mars street city"
    assert seen[0]["page_size"] == 10
    assert len(out) == 2
    first, second = out
    assert (first.full_url, first.url) == ("https://img.example/full1.jpg", "https://img.example/t1.jpg")
    assert first.description == "Rue Cler"
    assert (second.full_url, second.url) == ("https://img.example/t2.jpg", "https://img.example/t2.jpg")
    assert second.title == "Champ de Mars"
    assert second.description == "Seine at dusk"
    assert all(r.source == ImageSource.GENERAL_IMAGE_SEARCH and r.distance_meters is None for r in out)


@pytest.mark.asyncio
async def test_upstream_failure_propagates_to_caller(monkeypatch):
    _patch_fetch(monkeypatch, {"geosearch": SourceUnavailable("commons", "status=503")})
    with pytest.raises(SourceUnavailable):
        await image_sources.geo_search_images(object(), 48.8584, 2.2945, 5000, 20)
