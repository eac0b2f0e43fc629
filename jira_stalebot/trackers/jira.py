"""Jira Server / Data Center REST API v2 tracker, authenticated with a personal access token."""

from datetime import datetime

import httpx

from jira_stalebot.errors import JiraError
from jira_stalebot.models import NEVER, ChangelogHistory, ChangelogItem, Issue, SearchPage, Transition
from jira_stalebot.trackers.base import IssueTracker

API_PATH = "/rest/api/2"
SEARCH_FIELDS = "key,issuetype,summary,labels,status,changelog,updated"

# Jira timestamps look like 2000-01-01T00:00:00.000+0000
_JIRA_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%f%z"


def parse_jira_time(value: str | None) -> datetime:
    """Parse a Jira timestamp. A missing value means the issue was never updated."""
    if not value:
        return NEVER
    try:
        return datetime.strptime(value, _JIRA_TIME_FORMAT)
    except ValueError as exc:
        raise JiraError(f"invalid Jira timestamp {value!r}") from exc


def _error_detail(response: httpx.Response) -> str:
    """Pull Jira's errorMessages / errors out of a failed response body, if any."""
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if not isinstance(body, dict):
        return str(body)
    messages = list(body.get("errorMessages") or [])
    messages += [f"{field}: {msg}" for field, msg in (body.get("errors") or {}).items()]
    return "; ".join(messages)


class JiraTracker(IssueTracker):
    def __init__(self, base_url: str, token: str, timeout: float = 30) -> None:
        try:
            url = httpx.URL(base_url)
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid Jira base URL {base_url!r}: {exc}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"invalid Jira base URL {base_url!r}")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def _request(self, method: str, path: str, params: dict | None = None, body: dict | None = None) -> httpx.Response:
        try:
            response = httpx.request(
                method,
                f"{self._base_url}{API_PATH}{path}",
                headers=self._headers,
                params=params,
                json=body,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise JiraError(f"{method} {path}: {exc}") from exc
        if response.status_code == 401:
            raise JiraError(
                f"{method} {path}: Jira API returned 401. Check the personal access token.",
                status_code=401,
            )
        if not response.is_success:
            detail = _error_detail(response)
            message = f"{method} {path}: Jira API returned {response.status_code}"
            raise JiraError(f"{message}: {detail}" if detail else message, status_code=response.status_code)
        return response

    def _json(self, response: httpx.Response, method: str, path: str) -> dict:
        message = f"{method} {path}: invalid JSON response from Jira"
        try:
            data = response.json()
        except ValueError as exc:
            raise JiraError(f"{message}: {exc}", status_code=response.status_code) from exc
        if not isinstance(data, dict):
            raise JiraError(f"{message}: expected an object", status_code=response.status_code)
        return data

    def _issue_from_node(self, node: dict) -> Issue:
        fields = node.get("fields") or {}
        status = fields.get("status") or {}
        histories = (node.get("changelog") or {}).get("histories") or []
        try:
            updated = parse_jira_time(fields.get("updated"))
        except JiraError as exc:
            raise JiraError(f"issue {node.get('key', '')}: {exc}") from exc
        return Issue(
            id=str(node.get("id", "")),
            key=node.get("key", ""),
            summary=fields.get("summary") or "",
            issue_type=(fields.get("issuetype") or {}).get("name", ""),
            status_category=(status.get("statusCategory") or {}).get("key", ""),
            labels=fields.get("labels") or [],
            updated=updated,
            changelog=[
                ChangelogHistory(
                    items=[
                        ChangelogItem(
                            field=item.get("field", ""),
                            from_string=item.get("fromString") or "",
                            to_string=item.get("toString") or "",
                        )
                        for item in history.get("items") or []
                    ]
                )
                for history in histories
            ],
        )

    def search(self, jql: str, start_at: int, max_results: int) -> SearchPage:
        params = {
            "jql": jql,
            "startAt": start_at,
            "maxResults": max_results,
            "fields": SEARCH_FIELDS,
            "expand": "changelog",
        }
        data = self._json(self._request("GET", "/search", params=params), "GET", "/search")
        issues = [self._issue_from_node(node) for node in data.get("issues", [])]
        return SearchPage(issues=issues, start_at=data.get("startAt", start_at), total=data.get("total", 0))

    def add_comment(self, issue_id: str, body: str) -> None:
        self._request("POST", f"/issue/{issue_id}/comment", body={"body": body})

    def update_labels(self, issue_id: str, add: str | None = None, remove: str | None = None) -> None:
        ops = []
        if add:
            ops.append({"add": add})
        if remove:
            ops.append({"remove": remove})
        self._request("PUT", f"/issue/{issue_id}", body={"update": {"labels": ops}})

    def get_transitions(self, issue_id: str) -> list[Transition]:
        path = f"/issue/{issue_id}/transitions"
        data = self._json(self._request("GET", path), "GET", path)
        return [
            Transition(id=str(t["id"]), to_name=(t.get("to") or {}).get("name", ""))
            for t in data.get("transitions", [])
        ]

    def do_transition(self, issue_id: str, transition_id: str) -> None:
        self._request("POST", f"/issue/{issue_id}/transitions", body={"transition": {"id": transition_id}})
