from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class MeasurementEvent(BaseModel):
    name: str = Field(min_length=1)
    params: Dict[str, Any]


class MeasurementPayload(BaseModel):
    client_id: str = Field(min_length=1)
    events: List[MeasurementEvent] = Field(min_length=1)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "client_id": "3f2a9c1e5b7d4e0f8a6b2c4d6e8f0a1b",
                "events": [
                    {
                        "name": "page_view",
                        "params": {
                            "session_id": "1735689600",
                            "user_agent": "Mozilla/5.0",
                            "ip_address": "127.0.0.1",
                            "timestamp": "2025-01-01T00:00:00+00:00",
                            "custom_src": "newsletter",
                        },
                    }
                ],
            }
        }
    )
