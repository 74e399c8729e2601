# tests/test_jikan_routes.py
import pytest


def _info(status):
    return {"data": {"mal_id": 42, "title": "Cowboy Bebop", "status": status}}


def test_finished_anime_is_cached_permanently(make_client, fake_provider, cache):
    jikan = fake_provider(fetch_info=_info("Finished Airing"))
    client = make_client(providers={"jikan": jikan})

    first = client.get("/api/jikan/anime/42")
    second = client.get("/api/jikan/anime/42")

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json() == _info("Finished Airing")
    assert first.headers["cache-control"] == "public, s-maxage=86400, stale-while-revalidate=300"
    assert cache.writes == [("mal-info-42", 0)]
    assert jikan.called("fetch_info") == [(42,)]


def test_airing_anime_is_cached_for_a_week(make_client, fake_provider, cache):
    client = make_client(providers={"jikan": fake_provider(fetch_info=_info("Currently Airing"))})

    assert client.get("/api/jikan/anime/42").status_code == 200
    assert cache.writes == [("mal-info-42", 168)]


def test_non_numeric_id_is_rejected(make_client, fake_provider):
    res = make_client(providers={"jikan": fake_provider()}).get("/api/jikan/anime/abc")
    assert res.status_code == 400
    assert res.json() == {"error": "Missing required path parameter: 'id'."}


def test_provider_error_is_passed_through(make_client, fake_provider, cache):
    payload = {"error": "Resource not found", "data": None}
    client = make_client(providers={"jikan": fake_provider(fetch_info=payload)})

    res = client.get("/api/jikan/anime/9999")
    assert res.status_code == 500
    assert res.json() == payload
    assert cache.writes == []


def test_search_is_never_cached(make_client, fake_provider, cache):
    jikan = fake_provider(search={"data": [{"mal_id": 1}], "hasNextPage": False})
    client = make_client(providers={"jikan": jikan})

    client.get("/api/jikan/anime/search", params={"q": "bebop", "perPage": "999"})
    client.get("/api/jikan/anime/search", params={"q": "bebop", "perPage": "999"})

    assert jikan.called("search") == [("bebop", 1, 25), ("bebop", 1, 25)]
    assert cache.writes == []


def test_top_airing_key_covers_every_parameter(make_client, fake_provider, cache):
    jikan = fake_provider(default={"data": [{"mal_id": 1}]})
    client = make_client(providers={"jikan": jikan})

    res = client.get("/api/jikan/anime/top/airing", params={"format": "tv", "page": "2", "perPage": "999"})
    assert res.status_code == 200
    assert res.headers["cache-control"] == "public, s-maxage=21600, stale-while-revalidate=300"
    assert jikan.called("fetch_top_airing") == [(2, 25, "TV")]
    assert cache.writes == [("mal-top-airing-TV-2-25", 12)]

    client.get("/api/jikan/anime/top/favorite")
    assert cache.writes[-1] == ("mal-top-favorite-TV-1-20", 168)


def test_unknown_top_category(make_client, fake_provider):
    res = make_client(providers={"jikan": fake_provider()}).get("/api/jikan/anime/top/worst")
    assert res.status_code == 400
    assert res.json()["error"].startswith("Invalid category: 'worst'.")


def test_relative_and_dated_seasons(make_client, fake_provider, cache):
    jikan = fake_provider(default={"data": [{"mal_id": 1}]})
    client = make_client(providers={"jikan": jikan})

    assert client.get("/api/jikan/seasons/current").status_code == 200
    assert jikan.called("fetch_current_season") == [(1, 20, "TV")]

    assert client.get("/api/jikan/seasons/winter/2024", params={"format": "movie"}).status_code == 200
    assert jikan.called("fetch_seasonal_anime") == [("winter", 2024, "MOVIE", 1, 20)]

    assert cache.writes == [("mal-season-current-TV-1-20", 168), ("mal-seasons-2024-winter-MOVIE-1-20", 168)]


def test_named_season_needs_a_year(make_client, fake_provider):
    res = make_client(providers={"jikan": fake_provider()}).get("/api/jikan/seasons/winter")
    assert res.status_code == 400
    assert res.json() == {"error": "Missing required path parameter: 'year'."}


def test_movie_episodes_are_served_but_not_cached(make_client, fake_provider, cache):
    result = {"data": {"mal_id": 1, "format": "Movie"}, "providerEpisodes": [{"episodeId": "x"}]}
    jikan = fake_provider(fetch_anime_provider_episodes=result)
    client = make_client(providers={"jikan": jikan})

    res = client.get("/api/jikan/episodes/1", params={"provider": "allanime"})
    assert res.status_code == 200
    assert res.headers["cache-control"] == "public, s-maxage=1800, stale-while-revalidate=300"
    assert jikan.called("fetch_anime_provider_episodes") == [(1, "allanime")]
    assert cache.writes == []


def test_finished_series_episodes_are_cached_for_a_week(make_client, fake_provider, cache):
    result = {
        "data": {"mal_id": 1, "format": "TV", "status": "Finished Airing"},
        "providerEpisodes": [{"episodeId": "ep-1"}, {"episodeId": "ep-2"}],
    }
    client = make_client(providers={"jikan": fake_provider(fetch_anime_provider_episodes=result)})

    client.get("/api/jikan/episodes/1")
    assert cache.writes == [("mal-episodes-1-hianime", 168)]


def test_mapping_without_provider_is_not_cached(make_client, fake_provider, cache):
    result = {"data": {"mal_id": 1, "format": "TV"}, "provider": None}
    client = make_client(providers={"jikan": fake_provider(fetch_provider_id=result)})

    res = client.get("/api/jikan/mappings/1")
    assert res.status_code == 200
    assert cache.writes == []


@pytest.mark.parametrize(
    "episode_id, source, expected_args",
    [
        ("hianime-one-piece-100-ep-2142", "hianime", ("hianime-one-piece-100-ep-2142", "hd-2", "sub")),
        ("allanime-abc-1", "allanime", ("allanime-abc-1", "sub")),
        ("pahe-abc-1", "animepahe", ("pahe-abc-1", "sub")),
        ("anizone-abc-1", "anizone", ("anizone-abc-1",)),
    ],
)
def test_sources_are_routed_by_episode_id(make_client, fake_provider, cache, episode_id, source, expected_args):
    upstream = fake_provider(fetch_sources={"data": {"sources": [{"url": "https://x/master.m3u8"}]}})
    client = make_client(providers={source: upstream})

    res = client.get(f"/api/jikan/sources/{episode_id}")
    assert res.status_code == 200
    assert res.headers["cache-control"] == "public, s-maxage=600, stale-while-revalidate=60"
    assert upstream.called("fetch_sources") == [expected_args]
    assert cache.writes == []


def test_unsupported_episode_id(make_client):
    res = make_client().get("/api/jikan/sources/crunchyroll-1")
    assert res.status_code == 400
    assert res.json()["error"].startswith("Unsupported episodeId: 'crunchyroll-1'.")
