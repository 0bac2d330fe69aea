"""
Beckn request bodies sent by the BAP
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

DEFAULT_GPS = "12.9715987,77.5945627"


class Country(BaseModel):
    code: str = "IND"


class City(BaseModel):
    code: str = "std:080"


class Location(BaseModel):
    country: Country = Field(default_factory=Country)
    city: City = Field(default_factory=City)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BecknContext(BaseModel):
    domain: str = "uei:charging"
    action: str
    location: Location = Field(default_factory=Location)
    core_version: str = "1.1.0"
    bap_id: str
    bap_uri: str
    transaction_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = Field(default_factory=_utc_timestamp)

    @classmethod
    def new(cls, action: str, bap_id: str, bap_uri: str, **overrides: Any) -> "BecknContext":
        """Fresh context with new transaction/message ids"""
        return cls(action=action, bap_id=bap_id, bap_uri=bap_uri, **overrides)


def build_search_payload(
    context: BecknContext,
    gps: Optional[str] = None,
    radius_km: str = "5",
) -> Dict[str, Any]:
    """Beckn /search body for charging stations around *gps*"""
    return {
        "context": context.model_dump(mode="json"),
        "message": {
            "intent": {
                "fulfillment": {
                    "start": {
                        "location": {
                            "gps": gps or DEFAULT_GPS,
                            "radius": {"type": "CONSTANT", "value": radius_km, "unit": "km"},
                        }
                    }
                }
            }
        },
    }
