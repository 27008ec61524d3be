import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from fastapi import Response
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateError

from ga_beacon.errors import TemplateRenderError
from ga_beacon.models.tracking import QueryParameters


logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parent
STATIC_DIR = PACKAGE_DIR / "static"
TEMPLATES_DIR = PACKAGE_DIR / "templates"

GIF = "image/gif"
SVG = "image/svg+xml"

NO_CACHE = "no-cache, no-store, must-revalidate, private"
WEB_SCHEMES = ("http://", "https://")

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@dataclass(frozen=True)
class Badge:
    flag: Optional[str]
    filename: str
    media_type: str


# First flag present in the query wins.
BADGES: Tuple[Badge, ...] = (
    Badge("pixel", "pixel.gif", GIF),
    Badge("gif", "badge.gif", GIF),
    Badge("flat", "badge-flat.svg", SVG),
    Badge("flat-gif", "badge-flat.gif", GIF),
)
DEFAULT_BADGE = Badge(None, "badge.svg", SVG)


@lru_cache(maxsize=None)
def asset_bytes(filename: str) -> bytes:
    return (STATIC_DIR / filename).read_bytes()


def preload_assets() -> None:
    for badge in BADGES + (DEFAULT_BADGE,):
        asset_bytes(badge.filename)


def select_badge(query: QueryParameters) -> Badge:
    for badge in BADGES:
        if badge.flag in query:
            return badge
    return DEFAULT_BADGE


def http_date(now: datetime) -> str:
    return format_datetime(now.astimezone(timezone.utc), usegmt=True)


def beacon_response(
    query: QueryParameters,
    client_id: str = "",
    now: Optional[datetime] = None,
) -> Response:
    """Serve the pixel or badge the query asks for.

    A tracked hit (non-empty ``client_id``) is never cached, so every view
    reaches the beacon again.
    """

    badge = select_badge(query)
    response = Response(content=asset_bytes(badge.filename), media_type=badge.media_type)
    if client_id:
        if now is None:
            now = datetime.now(timezone.utc)
        response.headers["Cache-Control"] = NO_CACHE
        response.headers["Expires"] = http_date(now)
        response.headers["CID"] = client_id
    return response


def render_account_page(account: str, referer: str = "") -> HTMLResponse:
    referer_url = referer if referer.startswith(WEB_SCHEMES) else ""
    try:
        content = templates.get_template("page.html").render(
            account=account, referer=referer, referer_url=referer_url
        )
    except TemplateError as e:
        raise TemplateRenderError(f"cannot render account page for {account}: {e}") from e
    return HTMLResponse(content)
