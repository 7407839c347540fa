"""
Zoho Desk API Service for ticket operations.
Handles authenticated requests, response parsing and error mapping.
Low-level Desk API client; no job or dashboard concerns live here.
"""

from typing import Any

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.profile_domain import Profile
from app.services.zoho_errors import ZohoApiError
from app.services.zoho_oauth_service import ZohoOAuthService

logger = get_logger(__name__)

WORKFLOW_HISTORY = "WorkflowHistory"
NOTIFICATION_RULE_HISTORY = "NotificationRuleHistory"


class ZohoDeskService:
    """
    Service for Zoho Desk REST operations scoped to a profile's organization.

    Every call fetches a bearer token from the shared ZohoOAuthService and sends
    the profile's orgId header.
    """

    def __init__(self, oauth: ZohoOAuthService, http_client: httpx.AsyncClient | None = None):
        self.oauth = oauth
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.ZOHO_DESK_URL, timeout=settings.ZOHO_REQUEST_TIMEOUT
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_auth_headers(self, profile: Profile) -> dict:
        access_token = await self.oauth.get_access_token(profile)
        return {
            "Authorization": f"Zoho-oauthtoken {access_token}",
            "orgId": profile.org_id,
        }

    async def _request(
        self,
        method: str,
        path: str,
        profile: Profile,
        *,
        json: dict | None = None,
        params: dict | None = None,
    ) -> Any:
        headers = await self._get_auth_headers(profile)
        response = await self._client.request(method, path, json=json, params=params, headers=headers)
        return self._handle_api_response(response, f"{method} {path}")

    def _handle_api_response(self, response: httpx.Response, operation: str) -> Any:
        """
        Parse a Desk response or raise ZohoApiError for HTTP errors.

        Empty bodies (204 from PATCH endpoints) come back as an empty dict.
        """
        if not response.content:
            data: Any = {}
        else:
            try:
                data = response.json()
            except ValueError:
                data = response.text

        if response.is_success:
            return data

        logger.warning(
            "Zoho Desk request failed",
            operation=operation,
            status_code=response.status_code,
        )
        raise ZohoApiError(
            f"Zoho Desk {operation} failed (HTTP {response.status_code})",
            status_code=response.status_code,
            reason=response.reason_phrase,
            response_data=data,
        )

    async def create_ticket(
        self, profile: Profile, email: str, subject: str, description: str
    ) -> dict:
        ticket_data = {
            "subject": subject,
            "description": description,
            "departmentId": profile.default_department_id,
            "contact": {"email": email},
            "channel": "Email",
        }
        return await self._request("POST", "/api/v1/tickets", profile, json=ticket_data)

    async def send_reply(self, profile: Profile, ticket_id: str, to: str, content: str) -> dict:
        reply_data = {
            "fromEmailAddress": profile.from_email_address,
            "to": to,
            "content": content,
            "contentType": "html",
            "channel": "EMAIL",
        }
        return await self._request(
            "POST", f"/api/v1/tickets/{ticket_id}/sendReply", profile, json=reply_data
        )

    async def get_ticket_history(self, profile: Profile, ticket_id: str, event_filter: str) -> dict:
        return await self._request(
            "GET",
            f"/api/v1/tickets/{ticket_id}/History",
            profile,
            params={"eventFilter": event_filter},
        )

    async def list_email_failure_alerts(self, profile: Profile, limit: int | None = None) -> dict:
        params: dict = {"department": profile.default_department_id}
        if limit:
            params["limit"] = limit
        return await self._request("GET", "/api/v1/emailFailureAlerts", profile, params=params)

    async def clear_email_failure_alerts(self, profile: Profile) -> dict:
        return await self._request(
            "PATCH",
            "/api/v1/emailFailureAlerts",
            profile,
            params={"department": profile.default_department_id},
        )

    async def get_mail_reply_address(self, profile: Profile) -> dict:
        return await self._request(
            "GET", f"/api/v1/mailReplyAddress/{profile.mail_reply_address_id}", profile
        )

    async def update_mail_reply_address(self, profile: Profile, display_name: str) -> dict:
        return await self._request(
            "PATCH",
            f"/api/v1/mailReplyAddress/{profile.mail_reply_address_id}",
            profile,
            json={"displayName": display_name},
        )
