"""Authorization-code flow that lets the playlist owner grant access."""
import logging
import secrets
from datetime import UTC, datetime, timedelta

import httpx
from sqlmodel import Session, select

from app.core.config import settings
from app.core.database import engine
from app.core.errors import AuthError, ConfigurationError, UpstreamError
from app.core.http import decode_json
from app.models import OAuthToken

logger = logging.getLogger(__name__)

SCOPES = [
    "playlist-modify-public",
    "playlist-modify-private",
    "playlist-read-private",
]

STATE_COOKIE = "spotify_auth_state"
STATE_MAX_AGE_SECONDS = 60 * 5


def has_spotify_credentials() -> bool:
    """Check if the app's Spotify client is configured."""
    return bool(settings.spotify_client_id and settings.spotify_client_secret)


def new_state() -> str:
    return secrets.token_hex(16)


def build_authorize_url(state: str, redirect_uri: str | None = None) -> str:
    """Spotify consent URL for the playlist owner."""
    if not settings.spotify_client_id:
        raise ConfigurationError("Missing SPOTIFY_CLIENT_ID")

    url = httpx.URL(
        f"{settings.spotify_accounts_url}/authorize",
        params={
            "client_id": settings.spotify_client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri or settings.spotify_redirect_uri,
            "scope": " ".join(SCOPES),
            "state": state,
        },
    )
    return str(url)


def verify_state(returned: str | None, stored: str | None) -> None:
    """
    Reject callbacks whose ``state`` does not match the cookie we set.

    Raises:
        AuthError: On a missing or mismatched state.
    """
    if not returned or not stored or not secrets.compare_digest(returned, stored):
        logger.error("Spotify OAuth state mismatch")
        raise AuthError("OAuth state mismatch")


async def exchange_code(
    http: httpx.AsyncClient, code: str, redirect_uri: str | None = None
) -> dict:
    """
    Exchange an authorization code for access and refresh tokens.

    Raises:
        ConfigurationError: If client credentials are missing.
        UpstreamError: If Spotify rejects the exchange.
    """
    if not has_spotify_credentials():
        raise ConfigurationError("Missing SPOTIFY_CLIENT_ID or SPOTIFY_CLIENT_SECRET")

    try:
        response = await http.post(
            f"{settings.spotify_accounts_url}/api/token",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri or settings.spotify_redirect_uri,
            },
            auth=(settings.spotify_client_id, settings.spotify_client_secret),
        )
    except httpx.HTTPError as e:
        raise UpstreamError("spotify", detail=str(e)) from e

    if not response.is_success:
        logger.error(f"Spotify token error: {response.status_code} - {response.text}")
        raise UpstreamError("spotify", response.status_code, response.text)

    return decode_json("spotify", response)


def store_refresh_token(
    session: Session, payload: dict, replaces: str | None = None
) -> OAuthToken:
    """Persist the owner's grant so it survives restarts."""
    if not payload.get("refresh_token"):
        raise AuthError("Spotify did not return a refresh token")

    token = OAuthToken(
        provider="spotify",
        access_token=payload.get("access_token", ""),
        refresh_token=payload["refresh_token"],
        expires_at=datetime.now(UTC) + timedelta(seconds=payload.get("expires_in", 3600)),
        scopes=payload.get("scope", " ".join(SCOPES)),
        replaces=replaces,
    )
    session.add(token)
    session.commit()
    session.refresh(token)
    if replaces:
        logger.info("Stored rotated Spotify refresh token")
    else:
        logger.info("Stored Spotify refresh token for playlist owner")
    return token


def persist_rotated_refresh_token(previous: str, payload: dict) -> None:
    """Record a refresh token Spotify issued in place of ``previous``."""
    with Session(engine) as session:
        store_refresh_token(session, payload, replaces=previous)


def _latest_rotation(session: Session, refresh_token: str) -> str:
    seen = {refresh_token}
    while True:
        statement = (
            select(OAuthToken)
            .where(OAuthToken.provider == "spotify", OAuthToken.replaces == refresh_token)
            .order_by(OAuthToken.created_at.desc())
        )
        successor = session.exec(statement).first()
        if successor is None or successor.refresh_token in seen:
            return refresh_token
        refresh_token = successor.refresh_token
        seen.add(refresh_token)


def load_refresh_token(session: Session) -> str:
    """
    Current refresh token for the playlist owner.

    Starts from ``SPOTIFY_REFRESH_TOKEN`` when set, else the newest stored
    grant, and follows any rotations recorded since.
    """
    if settings.spotify_refresh_token:
        return _latest_rotation(session, settings.spotify_refresh_token)

    statement = (
        select(OAuthToken)
        .where(OAuthToken.provider == "spotify")
        .order_by(OAuthToken.created_at.desc())
    )
    token = session.exec(statement).first()
    return _latest_rotation(session, token.refresh_token) if token else ""
