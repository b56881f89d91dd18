import httpx
import logging
from typing import Dict, Any, List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.jira_models import Issue, Project, Worklog
from ..util.jira_times import parse_jira_ts

logger = logging.getLogger(__name__)

ISSUE_FIELDS = [
    "project", "summary", "issuetype", "status", "assignee",
    "timeoriginalestimate", "timeestimate", "timespent",
]

class JiraClient:
    def __init__(self, base_url: str, email: str, api_token: str,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base = base_url.rstrip("/")
        self.auth = (email, api_token)
        self.headers = {"Accept": "application/json"}
        self.transport = transport

    def _client(self, timeout: float = 60.0) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self.transport)

    async def test_connection(self) -> bool:
        if not self.auth[1]:
            return False
        async with self._client(30.0) as client:
            r = await client.get(f"{self.base}/rest/api/3/myself", auth=self.auth, headers=self.headers)
            return r.status_code == 200

    async def get_project(self, key: str) -> Dict[str, Any]:
        async with self._client() as client:
            r = await client.get(f"{self.base}/rest/api/3/project/{key}", auth=self.auth, headers=self.headers)
            r.raise_for_status()
            return r.json()

    async def search_issues(self, jql: str, fields: List[str], max_total: Optional[int] = None) -> List[Dict[str, Any]]:
        start_at = 0
        max_results = 100
        issues: List[Dict[str, Any]] = []
        async with self._client() as client:
            while True:
                if max_total is not None:
                    remaining = max_total - len(issues)
                    if remaining <= 0:
                        break
                    max_results = min(max_results, max(1, remaining))
                params = {
                    "jql": jql,
                    "startAt": start_at,
                    "maxResults": max_results,
                    "fields": ",".join(fields),
                }
                r = await client.get(f"{self.base}/rest/api/3/search", params=params, auth=self.auth, headers=self.headers)
                r.raise_for_status()
                data = r.json()
                page = data.get("issues", [])
                issues.extend(page)
                if not page or start_at + len(page) >= data.get("total", 0):
                    break
                start_at += len(page)
        if max_total is not None and len(issues) > max_total:
            issues = issues[:max_total]
        return issues

    async def get_issue_worklogs(self, key: str) -> List[Dict[str, Any]]:
        start_at = 0
        max_results = 100
        worklogs: List[Dict[str, Any]] = []
        async with self._client() as client:
            while True:
                url = f"{self.base}/rest/api/3/issue/{key}/worklog"
                params = {"startAt": start_at, "maxResults": max_results}
                r = await client.get(url, params=params, auth=self.auth, headers=self.headers)
                r.raise_for_status()
                data = r.json()
                page = data.get("worklogs", [])
                worklogs.extend(page)
                if not page or start_at + len(page) >= data.get("total", 0):
                    break
                start_at += len(page)
        return worklogs

def adf_text(node: Any) -> str:
    """Flatten an Atlassian document (v3 comment bodies) into plain text."""
    if node is None:
        return ""
    if isinstance(node, str):
        return node
    if node.get("type") == "text":
        return node.get("text", "")
    parts = [adf_text(child) for child in node.get("content") or []]
    sep = "\n" if node.get("type") == "doc" else ""
    return sep.join(p for p in parts if p)

def _author_key(user: Optional[Dict[str, Any]]) -> str:
    user = user or {}
    return user.get("accountId") or user.get("emailAddress") or user.get("name") or ""

def build_jql(project_keys: List[str], updated_window_days: int) -> str:
    clauses = []
    keys = [k.strip().upper() for k in project_keys if k and k.strip()]
    if keys:
        clauses.append(f"project in ({', '.join(keys)})")
    if updated_window_days and updated_window_days > 0:
        clauses.append(f"updated >= -{updated_window_days}d")
    jql = " and ".join(clauses)
    return (jql + " order by updated desc").strip()

async def sync_projects(
    session: AsyncSession,
    client: JiraClient,
    project_keys: List[str],
    updated_window_days: int = 180,
    max_issues: int = 25000,
) -> Dict[str, int]:
    """Copy projects, issues with their time tracking fields and worklogs into the local tables."""
    projects_saved = 0
    for key in project_keys:
        p = await client.get_project(key.strip().upper())
        await session.merge(Project(
            id=int(p["id"]),
            pkey=p.get("key", key).upper(),
            pname=p.get("name") or "",
            description=p.get("description") or None,
            lead=_author_key(p.get("lead")) or None,
        ))
        projects_saved += 1
    await session.commit()

    issues = await client.search_issues(build_jql(project_keys, updated_window_days), ISSUE_FIELDS, max_total=max_issues)
    issues_saved = 0
    worklogs_saved = 0
    for raw in issues:
        f = raw.get("fields") or {}
        key = raw.get("key", "")
        _, _, num = key.rpartition("-")
        project = f.get("project") or {}
        if not project.get("id") or not num.isdigit():
            logger.warning("Skipping issue without project or number: %s", key)
            continue
        issue_id = int(raw["id"])
        await session.merge(Issue(
            id=issue_id,
            issuenum=int(num),
            project=int(project["id"]),
            summary=f.get("summary") or "",
            issuetype=(f.get("issuetype") or {}).get("name") or "",
            issuestatus=(f.get("status") or {}).get("name") or "",
            assignee=_author_key(f.get("assignee")) or None,
            timeoriginalestimate=f.get("timeoriginalestimate"),
            timeestimate=f.get("timeestimate"),
            timespent=f.get("timespent"),
        ))
        issues_saved += 1

        await session.execute(delete(Worklog).where(Worklog.issueid == issue_id))
        for w in await client.get_issue_worklogs(key):
            started = parse_jira_ts(w.get("started"))
            if started is None:
                continue
            session.add(Worklog(
                id=int(w["id"]),
                issueid=issue_id,
                author=_author_key(w.get("author")),
                worklogbody=adf_text(w.get("comment")),
                created=parse_jira_ts(w.get("created")) or started,
                updated=parse_jira_ts(w.get("updated")),
                startdate=started,
                timeworked=int(w.get("timeSpentSeconds") or 0),
            ))
            worklogs_saved += 1
        await session.commit()

    logger.info("Jira sync done: %d projects, %d issues, %d worklogs", projects_saved, issues_saved, worklogs_saved)
    return {"projects_saved": projects_saved, "issues_saved": issues_saved, "worklogs_saved": worklogs_saved}
