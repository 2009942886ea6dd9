"""HTML pages for guests."""
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.core.config import settings

router = APIRouter(tags=["pages"])
templates = Jinja2Templates(directory=Path(__file__).resolve().parent.parent / "templates")


@router.get("/", response_class=HTMLResponse)
async def rsvp_wizard(request: Request):
    """
    Display the RSVP wizard.

    A three-step page: enter a phone number, answer for each guest, then
    a thank-you screen. All data is fetched from the JSON routes.
    """
    return templates.TemplateResponse(
        request,
        "index.html",
        {"app_name": settings.app_name},
    )
