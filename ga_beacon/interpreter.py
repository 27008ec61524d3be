"""Turn a raw beacon request into a tracked path, query and client id."""

import logging
from typing import Mapping, Optional
from urllib.parse import parse_qs

from ga_beacon.errors import RandomSourceError
from ga_beacon.identity import generate_client_id
from ga_beacon.models.tracking import BeaconRequest, QueryParameters, TrackedPath


logger = logging.getLogger(__name__)

CID_COOKIE = "cid"
USE_REFERER = "useReferer"

_SCHEMES = ("http://", "https://")


def split_path(path: str) -> TrackedPath:
    parts = path.strip("/").split("/", 1)
    if len(parts) == 1:
        return TrackedPath(account=parts[0])
    return TrackedPath(account=parts[0], page=parts[1])


def parse_query(raw_query: str) -> QueryParameters:
    return parse_qs(raw_query or "", keep_blank_values=True)


def strip_scheme(url: str) -> str:
    for scheme in _SCHEMES:
        if url.startswith(scheme):
            return url[len(scheme):]
    return url


def resolve_client_id(request: BeaconRequest, cookies: Mapping[str, str]) -> None:
    """Fill in the request's client id from the cookie, or mint a new one.

    A failure of the entropy source leaves the client id empty, which the
    caller reads as "do not track".
    """

    existing = cookies.get(CID_COOKIE, "")
    if existing:
        logger.debug("Existing cid found: %s", existing)
        request.client_id = existing
        return

    try:
        request.client_id = generate_client_id()
    except RandomSourceError:
        logger.exception("Failed to generate client id")
        return
    request.new_client = True
    logger.info("Generated new client id: %s", request.client_id)


def interpret(
    path: str,
    raw_query: str,
    referer: Optional[str],
    cookies: Mapping[str, str],
) -> BeaconRequest:
    tracked = split_path(path)
    query = parse_query(raw_query)
    referer = referer or ""

    if referer:
        query["referer"] = [referer]

    request = BeaconRequest(path=tracked, query=query, referer=referer)
    if tracked.is_root:
        return request

    if USE_REFERER in query and referer:
        stripped = strip_scheme(referer)
        if stripped:
            request.path = split_path(f"{tracked.account}/{stripped}")

    if request.path.is_tracked:
        resolve_client_id(request, cookies)
    return request
