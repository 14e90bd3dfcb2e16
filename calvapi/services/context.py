import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any

from calvapi.config import Settings, settings

logger = logging.getLogger(__name__)


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class RequestContext:
    """Credentials and defaults for a single inbound request.

    Caller overrides (``apiKey``, ``eventTypeId``, ``username``) land here and
    nowhere else, so two concurrent requests never see each other's key.
    """

    cal_api_key: str
    event_type_id: str
    cal_username: str
    time_zone: str
    request_id: str = field(default_factory=_new_request_id)

    @classmethod
    def from_params(
        cls,
        params: dict[str, Any],
        base: Settings | None = None,
        request_id: str | None = None,
    ) -> "RequestContext":
        cfg = base or settings
        ctx = cls(
            request_id=request_id or _new_request_id(),
            cal_api_key=str(params.get("apiKey") or cfg.cal_api_key),
            event_type_id=str(params.get("eventTypeId") or cfg.cal_event_type_id),
            cal_username=str(params.get("username") or cfg.cal_username),
            time_zone=str(params.get("timeZone") or cfg.time_zone),
        )
        if params.get("apiKey"):
            logger.info("[%s] Using caller-supplied Cal.com API key for this request", ctx.request_id)
        return ctx

    def with_overrides(self, params: dict[str, Any]) -> "RequestContext":
        """Context for a nested call (e.g. a Vapi function call) inside this request."""
        return replace(
            self,
            cal_api_key=str(params.get("apiKey") or self.cal_api_key),
            event_type_id=str(params.get("eventTypeId") or self.event_type_id),
            cal_username=str(params.get("username") or self.cal_username),
            time_zone=str(params.get("timeZone") or self.time_zone),
        )
