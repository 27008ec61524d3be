import atexit
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

import httpx
from pydantic import ValidationError

from ga_beacon.config import get_settings
from ga_beacon.errors import ConfigError, DeliveryError
from ga_beacon.models.event import PAGE_VIEW, AnalyticsEvent, AnalyticsPayload
from ga_beacon.models.tracking import QueryParameters
from ga_beacon.schemas.event import MeasurementPayload


logger = logging.getLogger(__name__)

RESERVED_PARAMS = frozenset({"referer", "pixel", "gif", "flat", "flat-gif", "useReferer"})
CUSTOM_PREFIX = "custom_"


@lru_cache(maxsize=1)
def _http_client() -> httpx.Client:
    return httpx.Client(timeout=get_settings().timeout)


def close_client() -> None:
    if _http_client.cache_info().currsize:
        _http_client().close()
        _http_client.cache_clear()


def is_reserved_param(key: str) -> bool:
    return key in RESERVED_PARAMS


def custom_param_name(key: str) -> str:
    if key.startswith(CUSTOM_PREFIX):
        return key
    return CUSTOM_PREFIX + key


def session_id(now: datetime) -> str:
    # Epoch seconds: hits from one client within the same second share a session.
    return str(int(now.timestamp()))


def build_page_view_event(
    query: QueryParameters,
    user_agent: str,
    ip: str,
    now: Optional[datetime] = None,
) -> AnalyticsEvent:
    """Build the ``page_view`` event for one beacon hit.

    Every non-reserved query key is forwarded as ``custom_<key>`` with its
    first value; keys that already carry the prefix keep their name.
    """

    if now is None:
        now = datetime.now(timezone.utc)
    params = {
        "session_id": session_id(now),
        "user_agent": user_agent,
        "ip_address": ip,
        "timestamp": now.astimezone(timezone.utc).isoformat(timespec="seconds"),
    }
    for key, values in query.items():
        if values and not is_reserved_param(key):
            params[custom_param_name(key)] = values[0]
    return AnalyticsEvent(name=PAGE_VIEW, params=params)


def build_payload(client_id: str, event: AnalyticsEvent) -> AnalyticsPayload:
    return AnalyticsPayload(client_id=client_id, events=[event])


def send_event(payload: AnalyticsPayload, user_agent: str, ip: str) -> None:
    """POST the payload to the Measurement Protocol collector, once.

    The outcome is always logged. Serialization, configuration and network
    failures are raised as ``DeliveryError``; nothing is retried.
    """

    try:
        body = MeasurementPayload.model_validate(asdict(payload)).model_dump_json()
    except ValidationError as e:
        logger.error("Error marshaling payload for cid %s: %s", payload.client_id, e)
        raise DeliveryError(f"invalid payload: {e}") from e

    try:
        settings = get_settings()
        client = _http_client()
    except ConfigError as e:
        logger.error("Cannot reach GA collector for cid %s: %s", payload.client_id, e)
        raise DeliveryError(str(e)) from e

    try:
        resp = client.post(
            settings.collect_url,
            params={"measurement_id": settings.measurement_id, "api_secret": settings.api_secret},
            content=body,
            headers={"User-Agent": user_agent or "", "Content-Type": "application/json"},
        )
    except httpx.HTTPError as e:
        logger.error("GA collector POST error for cid %s, ip %s: %s", payload.client_id, ip, e)
        raise DeliveryError(str(e)) from e

    level = logging.WARNING if resp.is_error else logging.INFO
    logger.log(level, "GA collector status: %s, cid: %s, ip: %s", resp.status_code, payload.client_id, ip)
    logger.debug("Reported payload: %s", body)


atexit.register(close_client)
