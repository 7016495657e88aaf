"""Read issue status from Jira Cloud REST API using httpx."""

import base64
from dataclasses import dataclass
from datetime import datetime

import httpx
import structlog

from friction_intel.config import settings
from friction_intel.errors import ConfigurationError, ServiceDegradedError

logger = structlog.get_logger()

MAX_KEYS_PER_QUERY = 50


@dataclass(frozen=True)
class JiraIssueState:
    issue_key: str
    status: str
    resolution_date: datetime | None


class JiraClient:
    def __init__(
        self,
        site_url: str | None = None,
        user_email: str | None = None,
        api_token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.site_url = (site_url if site_url is not None else settings.JIRA_SITE_URL).rstrip("/")
        self.user_email = user_email if user_email is not None else settings.JIRA_USER_EMAIL
        self.api_token = api_token if api_token is not None else settings.JIRA_API_TOKEN
        self._http_client = http_client

    def _auth_header(self) -> str:
        credentials = f"{self.user_email}:{self.api_token}"
        return f"Basic {base64.b64encode(credentials.encode()).decode()}"

    async def fetch_issue_states(self, issue_keys: list[str]) -> dict[str, JiraIssueState]:
        if not issue_keys:
            return {}
        if not (self.site_url and self.user_email and self.api_token):
            raise ConfigurationError("Jira is not configured. Set JIRA_SITE_URL, JIRA_USER_EMAIL and JIRA_API_TOKEN.")

        states: dict[str, JiraIssueState] = {}
        try:
            if self._http_client is not None:
                await self._fetch_into(self._http_client, issue_keys, states)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    await self._fetch_into(client, issue_keys, states)
        except httpx.HTTPError as e:
            logger.error("jira_fetch_failed", error=str(e))
            raise ServiceDegradedError(f"Jira request failed: {e}") from e
        return states

    async def _fetch_into(
        self,
        client: httpx.AsyncClient,
        issue_keys: list[str],
        states: dict[str, JiraIssueState],
    ) -> None:
        headers = {
            "Authorization": self._auth_header(),
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        url = f"{self.site_url}/rest/api/3/search/jql"

        for i in range(0, len(issue_keys), MAX_KEYS_PER_QUERY):
            chunk = issue_keys[i:i + MAX_KEYS_PER_QUERY]
            next_page_token: str | None = None
            while True:
                body: dict = {
                    "jql": f"key in ({', '.join(chunk)})",
                    "maxResults": MAX_KEYS_PER_QUERY,
                    "fields": ["status", "resolutiondate"],
                }
                if next_page_token:
                    body["nextPageToken"] = next_page_token

                resp = await client.post(url, headers=headers, json=body)
                resp.raise_for_status()
                data = resp.json()

                for raw_issue in data.get("issues", []):
                    state = _normalize_issue(raw_issue)
                    if state.issue_key:
                        states[state.issue_key] = state

                next_page_token = data.get("nextPageToken")
                if not next_page_token or data.get("isLast", True):
                    break

        logger.info("jira_issue_states_fetched", requested=len(issue_keys), found=len(states))


def _normalize_issue(raw: dict) -> JiraIssueState:
    fields = raw.get("fields", {})
    return JiraIssueState(
        issue_key=raw.get("key", ""),
        status=(fields.get("status") or {}).get("name", ""),
        resolution_date=_parse_jira_datetime(fields.get("resolutiondate")),
    )


def _parse_jira_datetime(dt_str: str | None) -> datetime | None:
    """Parse a Jira timestamp such as 2024-03-01T10:15:00.000+0000."""
    if not dt_str:
        return None
    try:
        return datetime.fromisoformat(dt_str.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("jira_datetime_unparseable", value=dt_str)
        return None
