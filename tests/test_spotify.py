"""Tests for Spotify API calls and the owner authorization flow."""

import json
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from sqlmodel import Session

from app.core.config import settings
from app.core.errors import AuthError, ConfigurationError, UpstreamError, ValidationError
from app.spotify import auth as spotify_auth
from app.spotify.auth import (
    build_authorize_url,
    load_refresh_token,
    persist_rotated_refresh_token,
    store_refresh_token,
    verify_state,
)
from app.spotify.client import add_track_to_playlist, parse_track_uri, search_tracks, track_url
from app.spotify.token import SpotifyTokenCache

SPOTIFY_API_URL = "https://api.spotify.com/v1"
TRACK_URI = "spotify:track:4uLU6hMCjMI75M1A2tKUQC"

SEARCH_RESULT = {
    "tracks": {
        "items": [
            {
                "id": "4uLU6hMCjMI75M1A2tKUQC",
                "name": "Never Gonna Give You Up",
                "artists": [{"name": "Rick Astley"}],
                "album": {"name": "Whenever You Need Somebody", "images": [{"url": "https://i.scdn.co/a.jpg"}]},
                "uri": TRACK_URI,
                "preview_url": None,
            },
            {
                "id": "abc",
                "name": "Duet",
                "artists": [{"name": "A"}, {"name": "B"}],
                "album": {"name": "Pairs", "images": []},
                "uri": "spotify:track:abc",
            },
        ]
    }
}


class TestTrackUri:
    def test_parse(self):
        assert parse_track_uri(TRACK_URI) == "4uLU6hMCjMI75M1A2tKUQC"

    @pytest.mark.parametrize(
        "uri",
        ["", "spotify:album:123", "spotify:track:", "https://open.spotify.com/track/123", "a:b:c:d"],
    )
    def test_rejects_non_track_uris(self, uri):
        with pytest.raises(ValidationError):
            parse_track_uri(uri)

    def test_track_url(self):
        assert track_url(TRACK_URI) == "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC"


class TestAuthorizeUrl:
    def test_contains_scopes_and_state(self, configured):
        url = urlparse(build_authorize_url("state123"))
        params = parse_qs(url.query)

        assert url.netloc == "accounts.spotify.com"
        assert url.path == "/authorize"
        assert params["client_id"] == ["client-id"]
        assert params["state"] == ["state123"]
        assert params["response_type"] == ["code"]
        assert "playlist-modify-private" in params["scope"][0].split(" ")

    def test_requires_client_id(self, configured, monkeypatch):
        monkeypatch.setattr(settings, "spotify_client_id", "")
        with pytest.raises(ConfigurationError):
            build_authorize_url("state123")

    def test_state_mismatch(self):
        verify_state("abc", "abc")
        with pytest.raises(AuthError):
            verify_state("abc", "xyz")
        with pytest.raises(AuthError):
            verify_state("abc", None)


class TestStoredRefreshToken:
    def test_store_and_load(self, configured, session: Session):
        first = store_refresh_token(session, {"access_token": "a", "refresh_token": "r1", "expires_in": 3600})
        first.created_at = first.created_at - timedelta(hours=1)
        session.add(first)
        session.commit()
        store_refresh_token(session, {"access_token": "b", "refresh_token": "r2", "expires_in": 3600})

        assert load_refresh_token(session) == "r2"

    def test_environment_wins(self, configured, session: Session, monkeypatch):
        monkeypatch.setattr(settings, "spotify_refresh_token", "from-env")
        store_refresh_token(session, {"refresh_token": "stored"})
        assert load_refresh_token(session) == "from-env"

    def test_nothing_stored(self, configured, session: Session):
        assert load_refresh_token(session) == ""

    def test_rotation_followed_from_environment(self, configured, session: Session, monkeypatch):
        monkeypatch.setattr(settings, "spotify_refresh_token", "from-env")
        store_refresh_token(session, {"refresh_token": "rotated-1"}, replaces="from-env")
        store_refresh_token(session, {"refresh_token": "rotated-2"}, replaces="rotated-1")

        assert load_refresh_token(session) == "rotated-2"

    def test_rotation_followed_from_stored_grant(self, configured, session: Session):
        grant = store_refresh_token(session, {"refresh_token": "granted"})
        grant.created_at = grant.created_at - timedelta(hours=1)
        session.add(grant)
        session.commit()
        store_refresh_token(session, {"refresh_token": "rotated"}, replaces="granted")

        assert load_refresh_token(session) == "rotated"

    def test_rotation_cycle_terminates(self, configured, session: Session, monkeypatch):
        monkeypatch.setattr(settings, "spotify_refresh_token", "a")
        store_refresh_token(session, {"refresh_token": "b"}, replaces="a")
        store_refresh_token(session, {"refresh_token": "a"}, replaces="b")

        assert load_refresh_token(session) == "b"

    def test_persist_rotated_refresh_token(self, configured, engine, session: Session, monkeypatch):
        monkeypatch.setattr(spotify_auth, "engine", engine)
        monkeypatch.setattr(settings, "spotify_refresh_token", "from-env")

        persist_rotated_refresh_token("from-env", {"access_token": "a", "refresh_token": "rotated"})

        assert load_refresh_token(session) == "rotated"

    def test_missing_refresh_token_rejected(self, configured, session: Session):
        with pytest.raises(AuthError):
            store_refresh_token(session, {"access_token": "a"})


@pytest.mark.anyio
class TestSpotifyCalls:
    async def test_search_tracks(self, token_cache, upstream, http):
        upstream.add("GET", f"{SPOTIFY_API_URL}/search", json=SEARCH_RESULT)

        tracks = await search_tracks(http, token_cache, " never gonna ")

        assert [t.name for t in tracks] == ["Never Gonna Give You Up", "Duet"]
        assert tracks[0].album_art == "https://i.scdn.co/a.jpg"
        assert tracks[1].artist == "A, B"
        assert tracks[1].album_art is None
        request = upstream.requests_to("GET", f"{SPOTIFY_API_URL}/search")[0]
        assert request.url.params["q"] == "never gonna"
        assert request.url.params["type"] == "track"
        assert request.headers["Authorization"] == "Bearer access-1"

    async def test_search_requires_query(self, token_cache, http):
        with pytest.raises(ValidationError):
            await search_tracks(http, token_cache, "  ")

    async def test_add_track(self, token_cache, upstream, http):
        playlist_url = f"{SPOTIFY_API_URL}/playlists/playlist123/tracks"
        upstream.add("POST", playlist_url, status_code=201, json={"snapshot_id": "s1"})

        result = await add_track_to_playlist(http, token_cache, TRACK_URI)

        assert result.track_url == "https://open.spotify.com/track/4uLU6hMCjMI75M1A2tKUQC"
        assert result.playlist_id == "playlist123"
        body = json.loads(upstream.requests_to("POST", playlist_url)[0].content)
        assert body == {"uris": [TRACK_URI]}

    async def test_add_track_needs_owner_grant(self, configured, upstream, http):
        cache = SpotifyTokenCache("client-id", "client-secret")
        with pytest.raises(AuthError):
            await add_track_to_playlist(http, cache, TRACK_URI)
        assert upstream.requests == []

    async def test_add_track_needs_playlist(self, token_cache, http, monkeypatch):
        monkeypatch.setattr(settings, "spotify_playlist_id", "")
        with pytest.raises(ConfigurationError):
            await add_track_to_playlist(http, token_cache, TRACK_URI)

    async def test_unauthorized_invalidates_cache(self, token_cache, upstream, http):
        upstream.add("POST", f"{SPOTIFY_API_URL}/playlists", status_code=401, json={"error": "expired"})

        with pytest.raises(UpstreamError):
            await add_track_to_playlist(http, token_cache, TRACK_URI)
        assert token_cache.cached is None

    async def test_non_json_body_raises(self, token_cache, upstream, http):
        upstream.add(
            "GET",
            f"{SPOTIFY_API_URL}/search",
            handler=lambda request: httpx.Response(200, text="<html>gateway</html>"),
        )

        with pytest.raises(UpstreamError) as exc_info:
            await search_tracks(http, token_cache, "september")
        assert exc_info.value.service == "spotify"
        assert exc_info.value.status_code == 200
