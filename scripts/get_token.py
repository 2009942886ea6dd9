#!/usr/bin/env python3
"""
One-time script to obtain the playlist owner's Spotify refresh token.

Run this script locally once to get a refresh token, then add it to your .env file.
The /auth/spotify/login route does the same from a browser.

Usage:
    python scripts/get_token.py

Requirements:
    - SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET must be set in .env
    - Or pass them as arguments: python scripts/get_token.py --client-id=XXX --client-secret=YYY
"""
import argparse
import os
import sys
from urllib.parse import parse_qs, urlparse

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx

from app.core.config import settings
from app.spotify.auth import SCOPES, new_state

REDIRECT_URI = "http://localhost:8080/callback"


def main():
    parser = argparse.ArgumentParser(description="Get Spotify OAuth refresh token")
    parser.add_argument("--client-id", help="Spotify Client ID")
    parser.add_argument("--client-secret", help="Spotify Client Secret")
    parser.add_argument("--redirect-uri", default=REDIRECT_URI, help="Registered redirect URI")
    args = parser.parse_args()

    client_id = args.client_id or settings.spotify_client_id
    client_secret = args.client_secret or settings.spotify_client_secret

    if not client_id or not client_secret:
        print("Error: SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET are required.")
        print()
        print("Either:")
        print("  1. Set them in .env file, or")
        print("  2. Pass them as arguments:")
        print("     python scripts/get_token.py --client-id=XXX --client-secret=YYY")
        sys.exit(1)

    state = new_state()
    auth_url = httpx.URL(
        f"{settings.spotify_accounts_url}/authorize",
        params={
            "client_id": client_id,
            "response_type": "code",
            "redirect_uri": args.redirect_uri,
            "scope": " ".join(SCOPES),
            "state": state,
        },
    )

    print("=" * 60)
    print("Spotify Playlist OAuth Setup")
    print("=" * 60)
    print()
    print("Copy the URL below and open it in a browser (on any machine).")
    print("Log in with the Spotify account that OWNS the wedding playlist.")
    print(f"After authorizing, you'll be redirected to {args.redirect_uri}.")
    print("The page may fail to load; copy the FULL redirect URL and paste it back here.")
    print()
    print(auth_url)
    print()

    redirect_response = input("Paste the full redirect URL here: ").strip()
    query = parse_qs(urlparse(redirect_response).query)

    if query.get("state", [""])[0] != state:
        print("Error: state mismatch, please start again.")
        sys.exit(1)
    code = query.get("code", [""])[0]
    if not code:
        print(f"Error: no authorization code in URL ({query.get('error', ['unknown'])[0]})")
        sys.exit(1)

    response = httpx.post(
        f"{settings.spotify_accounts_url}/api/token",
        data={
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": args.redirect_uri,
        },
        auth=(client_id, client_secret),
    )
    if not response.is_success:
        print(f"Error: token exchange failed: {response.status_code} {response.text}")
        sys.exit(1)

    tokens = response.json()

    print()
    print("=" * 60)
    print("SUCCESS! Add the following to your .env file:")
    print("=" * 60)
    print()
    print(f"SPOTIFY_REFRESH_TOKEN={tokens['refresh_token']}")
    print()
    print("=" * 60)


if __name__ == "__main__":
    main()
