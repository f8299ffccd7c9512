# app/client/api.py
"""
Thin async HTTP client for the collaboration API.

Every non-2xx response is turned back into the error taxonomy from
`app.core.errors`, so callers (workflows, the notification aggregator) can
branch on ForbiddenError / InvalidTransitionError / ... instead of status codes.
Transport failures, timeouts and 5xx answers become NetworkFailureError.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.core.errors import (
    ERRORS_BY_CODE,
    CollaborationError,
    ForbiddenError,
    InvalidTransitionError,
    NetworkFailureError,
    NotFoundError,
)
from app.schemas import collaboration as collaboration_schemas
from app.schemas import journey as journey_schemas
from app.schemas import notification as notification_schemas
from app.schemas import suggestion as suggestion_schemas

logger = logging.getLogger(__name__)

_FALLBACK_BY_STATUS = {
    401: ForbiddenError,
    403: ForbiddenError,
    404: NotFoundError,
    409: InvalidTransitionError,
}


def error_from_response(response: httpx.Response) -> CollaborationError:
    """Rebuild the server-side error from `{"detail", "code"}`, falling back to the status code."""
    if response.status_code >= 500:
        return NetworkFailureError(f"Server error {response.status_code}")

    detail: Optional[str] = None
    code: Optional[str] = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code")
        if isinstance(body.get("detail"), str):
            detail = body["detail"]

    error_cls = ERRORS_BY_CODE.get(code) or _FALLBACK_BY_STATUS.get(response.status_code, CollaborationError)
    return error_cls(detail)


class CollaborationAPI:
    """
    One authenticated session against the API.

    `transport` is handed to httpx; tests pass `httpx.MockTransport` or
    `httpx.ASGITransport(app=...)`.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.COLLABORATION_API_URL,
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CollaborationAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out", method, url)
            raise NetworkFailureError("Request timed out") from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise NetworkFailureError(str(exc) or None) from exc

        if response.is_error:
            error = error_from_response(response)
            logger.debug("%s %s -> %s %s", method, url, response.status_code, error.code)
            raise error
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # --------------------------------------------------------------------- #
    #  Journeys                                                             #
    # --------------------------------------------------------------------- #
    async def create_journey(self, journey_in: journey_schemas.JourneyCreate) -> journey_schemas.JourneyOut:
        data = await self._request("POST", "/journeys", json=journey_in.model_dump(mode="json", by_alias=True))
        return journey_schemas.JourneyOut.model_validate(data)

    async def list_journeys(self) -> List[journey_schemas.JourneyOut]:
        data = await self._request("GET", "/journeys")
        return journey_schemas.JourneyListResponse.model_validate(data).items

    # --------------------------------------------------------------------- #
    #  Collaborators / invitations                                          #
    # --------------------------------------------------------------------- #
    async def list_collaborators(self, journey_id: int) -> List[collaboration_schemas.CollaboratorOut]:
        data = await self._request("GET", f"/journeys/{journey_id}/collaborators")
        return [collaboration_schemas.CollaboratorOut.model_validate(item) for item in data]

    async def invite(
        self, journey_id: int, email: str, message: Optional[str] = None
    ) -> collaboration_schemas.CollaboratorOut:
        payload: Dict[str, Any] = {"email": email}
        if message is not None:
            payload["message"] = message
        data = await self._request("POST", f"/journeys/{journey_id}/collaborators/invite", json=payload)
        return collaboration_schemas.CollaboratorOut.model_validate(data)

    async def remove_collaborator(self, journey_id: int, collaborator_id: int) -> None:
        await self._request("DELETE", f"/journeys/{journey_id}/collaborators/{collaborator_id}")

    async def list_pending_invitations(self) -> List[collaboration_schemas.InvitationOut]:
        data = await self._request("GET", "/invitations/pending")
        return [collaboration_schemas.InvitationOut.model_validate(item) for item in data]

    async def respond_to_invitation(
        self, invitation_id: int, decision: collaboration_schemas.InvitationDecision
    ) -> collaboration_schemas.CollaboratorOut:
        data = await self._request(
            "POST", f"/invitations/{invitation_id}/respond", json={"decision": decision.value},
        )
        return collaboration_schemas.CollaboratorOut.model_validate(data)

    # --------------------------------------------------------------------- #
    #  Experiences / suggestions                                            #
    # --------------------------------------------------------------------- #
    async def propose(
        self, journey_id: int, suggestion_in: suggestion_schemas.SuggestionCreate
    ) -> suggestion_schemas.SuggestionOut:
        data = await self._request(
            "POST",
            f"/journeys/{journey_id}/experiences",
            json=suggestion_in.model_dump(mode="json", by_alias=True),
        )
        return suggestion_schemas.SuggestionOut.model_validate(data)

    async def list_approved(self, journey_id: int) -> List[suggestion_schemas.SuggestionOut]:
        data = await self._request("GET", f"/journeys/{journey_id}/experiences")
        return [suggestion_schemas.SuggestionOut.model_validate(item) for item in data]

    async def list_pending_suggestions(self, journey_id: int) -> List[suggestion_schemas.SuggestionOut]:
        data = await self._request("GET", f"/journeys/{journey_id}/suggestions")
        return [suggestion_schemas.SuggestionOut.model_validate(item) for item in data]

    async def list_my_suggestions(self, journey_id: int) -> List[suggestion_schemas.SuggestionOut]:
        data = await self._request("GET", f"/journeys/{journey_id}/my-suggestions")
        return [suggestion_schemas.SuggestionOut.model_validate(item) for item in data]

    async def review(
        self,
        journey_id: int,
        suggestion_id: int,
        action: suggestion_schemas.ReviewAction,
        notes: Optional[str] = None,
    ) -> suggestion_schemas.SuggestionOut:
        payload: Dict[str, Any] = {"action": action.value}
        if notes is not None:
            payload["notes"] = notes
        data = await self._request(
            "POST", f"/journeys/{journey_id}/suggestions/{suggestion_id}/review", json=payload,
        )
        return suggestion_schemas.SuggestionOut.model_validate(data)

    async def update_suggestion(
        self, suggestion_id: int, suggestion_in: suggestion_schemas.SuggestionUpdate
    ) -> suggestion_schemas.SuggestionOut:
        data = await self._request(
            "PUT",
            f"/suggestions/{suggestion_id}",
            json=suggestion_in.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return suggestion_schemas.SuggestionOut.model_validate(data)

    async def withdraw_suggestion(self, suggestion_id: int) -> None:
        await self._request("DELETE", f"/suggestions/{suggestion_id}")

    # --------------------------------------------------------------------- #
    #  Notifications                                                        #
    # --------------------------------------------------------------------- #
    async def notification_counts(self) -> notification_schemas.NotificationCounts:
        data = await self._request("GET", "/notifications")
        return notification_schemas.NotificationCounts.model_validate(data)

    async def notification_details(self) -> notification_schemas.NotificationDetails:
        data = await self._request("GET", "/notifications/details")
        return notification_schemas.NotificationDetails.model_validate(data)
