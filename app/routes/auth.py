"""Spotify authorization routes for the playlist owner."""
import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlmodel import Session

from app.core.config import settings
from app.core.database import get_session
from app.core.dependencies import get_http_client, get_token_cache
from app.core.errors import RsvpError
from app.spotify.auth import (
    STATE_COOKIE,
    STATE_MAX_AGE_SECONDS,
    build_authorize_url,
    exchange_code,
    has_spotify_credentials,
    new_state,
    store_refresh_token,
    verify_state,
)
from app.spotify.token import SpotifyTokenCache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

SUCCESS_PATH = "/auth/spotify/success"
ERROR_PATH = "/auth/spotify/error"


@router.get("/status")
async def auth_status(cache: SpotifyTokenCache = Depends(get_token_cache)):
    """
    Check if the playlist can be modified.

    Returns JSON with authentication status and a message indicating
    whether the owner's grant is configured or setup is required.
    """
    authenticated = cache.can_modify_playlist
    return {
        "authenticated": authenticated,
        "message": (
            "Spotify playlist access configured"
            if authenticated
            else "Visit /auth/spotify/login or run 'python scripts/get_token.py' to set up Spotify"
        ),
    }


@router.get("/setup", response_class=HTMLResponse)
async def setup_instructions(cache: SpotifyTokenCache = Depends(get_token_cache)):
    """
    Display setup instructions if the playlist is not authorized.

    If already authorized, displays a confirmation message with a link
    back to the RSVP page.
    """
    if cache.can_modify_playlist:
        return """
        <html>
        <head><title>Already Configured</title></head>
        <body>
            <h1>Spotify Already Configured</h1>
            <p>Song requests will be added to the wedding playlist.</p>
            <p><a href="/">Back to RSVP</a></p>
        </body>
        </html>
        """

    return """
    <html>
    <head>
        <title>Setup Required</title>
        <script src="https://cdn.tailwindcss.com"></script>
    </head>
    <body class="bg-gray-100 min-h-screen p-8">
        <div class="max-w-2xl mx-auto bg-white rounded-lg shadow p-6">
            <h1 class="text-2xl font-bold text-gray-800 mb-4">Setup Required</h1>
            <p class="text-gray-600 mb-4">
                Spotify playlist access needs to be granted by the playlist owner.
            </p>

            <h2 class="text-lg font-semibold text-gray-800 mt-6 mb-2">Steps:</h2>
            <ol class="list-decimal list-inside space-y-2 text-gray-700">
                <li>Create an app in the Spotify Developer Dashboard</li>
                <li>Set SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET and SPOTIFY_PLAYLIST_ID in .env</li>
                <li>Add SPOTIFY_REDIRECT_URI to the app's redirect URIs</li>
                <li>Log in as the playlist owner: <a href="/auth/spotify/login" class="text-blue-600">Connect Spotify</a></li>
                <li>Or run: <code class="bg-gray-100 px-2 py-1 rounded">python scripts/get_token.py</code>
                    and copy SPOTIFY_REFRESH_TOKEN to your .env file</li>
            </ol>
        </div>
    </body>
    </html>
    """


@router.get("/spotify/login")
async def spotify_login():
    """
    Start the Spotify authorization flow.

    Redirects to Spotify's consent page and stores a random ``state`` in a
    short-lived cookie for the callback to verify.
    """
    if not has_spotify_credentials():
        logger.error("Spotify login attempted without client credentials")
        return RedirectResponse(ERROR_PATH, status_code=303)

    state = new_state()
    response = RedirectResponse(build_authorize_url(state), status_code=303)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_MAX_AGE_SECONDS,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
    )
    return response


@router.get("/spotify/callback")
async def spotify_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    http: httpx.AsyncClient = Depends(get_http_client),
    cache: SpotifyTokenCache = Depends(get_token_cache),
    session: Session = Depends(get_session),
):
    """
    Finish the Spotify authorization flow.

    Verifies ``state``, exchanges the code, stores the refresh token and
    installs it in the token cache. Every failure redirects to the error
    page instead of returning JSON.
    """
    if error or not code:
        logger.error(f"Spotify auth error: {error or 'missing code'}")
        return RedirectResponse(ERROR_PATH, status_code=303)

    try:
        verify_state(state, request.cookies.get(STATE_COOKIE))
        payload = await exchange_code(http, code)
        token = store_refresh_token(session, payload)
    except RsvpError as e:
        logger.error(f"Spotify callback failed: {e}")
        return RedirectResponse(ERROR_PATH, status_code=303)

    cache.set_refresh_token(token.refresh_token)

    response = RedirectResponse(SUCCESS_PATH, status_code=303)
    response.delete_cookie(STATE_COOKIE)
    return response


@router.get("/spotify/success", response_class=HTMLResponse)
async def spotify_success():
    """Confirmation page after the owner granted playlist access."""
    return """
    <html>
    <head><title>Spotify Connected</title></head>
    <body>
        <h1>Spotify Connected</h1>
        <p>Song requests will now be added to the wedding playlist.</p>
        <p><a href="/">Back to RSVP</a></p>
    </body>
    </html>
    """


@router.get("/spotify/error", response_class=HTMLResponse)
async def spotify_error():
    """Shown when the Spotify authorization flow fails."""
    return HTMLResponse(
        """
        <html>
        <head><title>Spotify Authorization Failed</title></head>
        <body>
            <h1>Spotify Authorization Failed</h1>
            <p>Something went wrong connecting the playlist. Please try again.</p>
            <p><a href="/auth/setup">Setup instructions</a></p>
        </body>
        </html>
        """,
        status_code=400,
    )
