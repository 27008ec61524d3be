import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler, SysLogHandler

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse, RedirectResponse

from ga_beacon.config import get_settings
from ga_beacon.crud.events import build_page_view_event, build_payload, send_event
from ga_beacon.errors import ConfigError, DeliveryError, TemplateRenderError
from ga_beacon.interpreter import CID_COOKIE, interpret
from ga_beacon.models.tracking import BeaconRequest
from ga_beacon.responses import beacon_response, preload_assets, render_account_page

APP_NAME = "ga-beacon"
DEFAULT_PORT = "8080"


logger = logging.getLogger("ga_beacon")
logger.setLevel(logging.INFO)

file_handler = RotatingFileHandler(
    os.getenv("LOG_FILE", "ga-beacon.log"), maxBytes=1_000_000, backupCount=5, delay=True
)
file_handler.setLevel(logging.ERROR)

stream_handler = logging.StreamHandler()
stream_handler.setLevel(logging.INFO)

handlers = [file_handler, stream_handler]
try:
    from systemd.journal import JournalHandler

    journal_handler = JournalHandler(SYSLOG_IDENTIFIER=APP_NAME)
except Exception:  # pragma: no cover - fallback when systemd is unavailable
    journal_handler = SysLogHandler(address="/dev/log") if os.path.exists("/dev/log") else None
if journal_handler is not None:
    journal_handler.setLevel(logging.ERROR)
    handlers.append(journal_handler)

formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
for handler in handlers:
    handler.setFormatter(formatter)
    logger.addHandler(handler)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Refuse to serve without credentials; read-only state is loaded once here.
    get_settings()
    preload_assets()
    yield


# Every other path belongs to the beacon, so the interactive docs are off.
app = FastAPI(title=APP_NAME, lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)


def _client_ip(req: Request) -> str:
    xff = req.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    return req.client.host if req.client else "unknown"


def track_hit(hit: BeaconRequest, user_agent: str, ip: str, now: datetime) -> None:
    """Report one page view. Delivery problems never reach the caller."""

    event = build_page_view_event(hit.query, user_agent, ip, now)
    payload = build_payload(hit.client_id, event)
    try:
        send_event(payload, user_agent, ip)
    except DeliveryError:
        logger.debug("Page view for cid %s dropped", hit.client_id)
    except Exception:
        logger.exception("error processing tracking request")


@app.get("/healthz", response_class=PlainTextResponse)
def healthz() -> str:
    return "ok"


@app.get("/{path:path}")
def beacon(path: str, request: Request) -> Response:
    referer = request.headers.get("referer", "")
    hit = interpret(path, request.url.query, referer, request.cookies)

    # / -> project homepage
    if hit.path.is_root:
        return RedirectResponse(get_settings().homepage_url, status_code=302)

    # /account -> landing page
    if not hit.path.is_tracked:
        try:
            return render_account_page(hit.path.account, referer)
        except TemplateRenderError:
            logger.exception("Cannot execute template")
            return PlainTextResponse("could not show account page", status_code=500)

    # /account/page -> badge + page view
    now = datetime.now(timezone.utc)
    if hit.client_id:
        track_hit(hit, request.headers.get("user-agent", ""), _client_ip(request), now)

    response = beacon_response(hit.query, hit.client_id, now)
    if hit.new_client:
        response.set_cookie(CID_COOKIE, hit.client_id, path=hit.cookie_path)
    return response


def run() -> None:
    try:
        get_settings()
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    port = os.getenv("PORT", "")
    if not port:
        port = DEFAULT_PORT
        logger.info("Defaulting to port %s", port)
    logger.info("Listening on port %s", port)
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(port))


if __name__ == "__main__":
    run()
