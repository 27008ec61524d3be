import json
import os
import sys
from typing import List

import httpx
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from ga_beacon import config
from ga_beacon.crud import events


MEASUREMENT_ID = "G-TEST123"
API_SECRET = "s3cr3t"


@pytest.fixture
def settings_file(monkeypatch, tmp_path):
    for key in ("GA_MEASUREMENT_ID", "GA_API_SECRET", "GA_COLLECT_URL", "GA_HOMEPAGE_URL", "GA_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"measurement_id": MEASUREMENT_ID, "api_secret": API_SECRET}))
    monkeypatch.setenv("CONFIG_FILE", str(path))
    config.get_settings.cache_clear()
    yield path
    config.get_settings.cache_clear()


@pytest.fixture
def collector(monkeypatch, settings_file) -> List[httpx.Request]:
    """Capture collector POSTs instead of sending them."""

    received: List[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(204)

    client = httpx.Client(transport=httpx.MockTransport(_handler))
    monkeypatch.setattr(events, "_http_client", lambda: client)
    yield received
    client.close()
