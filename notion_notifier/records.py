import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

import requests

logger = logging.getLogger(__name__)

NOTION_API_BASE = "https://api.notion.com/v1"

# Database property names
PROP_NOTIFY = "Notify"
PROP_NOTIFY_TIME = "Notify Time"
PROP_NOTIFY_DAYS = "Notify Days"
PROP_REPEAT = "Repeat"
PROP_TITLE = "Name"
PROP_MESSAGE = "Message template"
PROP_BUSINESS = "Business"
PROP_LAST_SENT = "LastSent"


class NotionError(Exception):
    """A Notion API call failed. ``payload`` holds the API error body, if any."""

    def __init__(self, message: str, payload: Optional[Any] = None, status: Optional[int] = None):
        super().__init__(message)
        self.payload = payload
        self.status = status


class RepeatPolicy(Enum):
    NONE = "None"
    DAILY = "Daily"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "RepeatPolicy":
        """Missing means NONE; any name other than "None" repeats."""
        if not name or name == cls.NONE.value:
            return cls.NONE
        if name != cls.DAILY.value:
            logger.debug("Unknown repeat policy %r treated as %s", name, cls.DAILY.value)
        return cls.DAILY


# ---------------------------------------------------------------------------
# Property accessors
# ---------------------------------------------------------------------------
def _prop(props: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = props.get(name)
    return value if isinstance(value, dict) else {}


def _first_plain_text(props: Dict[str, Any], name: str, kind: str) -> Optional[str]:
    items = _prop(props, name).get(kind)
    if not isinstance(items, list) or not items:
        return None
    first = items[0]
    if not isinstance(first, dict):
        return None
    return first.get("plain_text") or None


def _select_name(props: Dict[str, Any], name: str) -> Optional[str]:
    select = _prop(props, name).get("select")
    if not isinstance(select, dict):
        return None
    return select.get("name") or None


def _date_start(props: Dict[str, Any], name: str) -> Optional[str]:
    date = _prop(props, name).get("date")
    if not isinstance(date, dict):
        return None
    return date.get("start") or None


def _weekday_code(name: str) -> str:
    """Normalise "fri", "FRI" or "Friday" to the short code "Fri"."""
    return name.strip()[:3].title()


def _multi_select_names(props: Dict[str, Any], name: str) -> FrozenSet[str]:
    options = _prop(props, name).get("multi_select")
    if not isinstance(options, list):
        return frozenset()
    return frozenset(
        _weekday_code(opt["name"]) for opt in options if isinstance(opt, dict) and opt.get("name")
    )


@dataclass(frozen=True)
class NotificationRecord:
    """Typed view of a Notion page. Missing fields are None, never defaults."""

    id: str
    notify_flag: bool = False
    notify_time: Optional[str] = None
    notify_days: FrozenSet[str] = field(default_factory=frozenset)
    repeat_policy: RepeatPolicy = RepeatPolicy.NONE
    title: Optional[str] = None
    custom_message: Optional[str] = None
    business: Optional[str] = None

    @classmethod
    def from_page(cls, page: Dict[str, Any]) -> "NotificationRecord":
        props = page.get("properties") or {}
        return cls(
            id=page.get("id", ""),
            notify_flag=bool(_prop(props, PROP_NOTIFY).get("checkbox")),
            notify_time=_date_start(props, PROP_NOTIFY_TIME),
            notify_days=_multi_select_names(props, PROP_NOTIFY_DAYS),
            repeat_policy=RepeatPolicy.from_name(_select_name(props, PROP_REPEAT)),
            title=_first_plain_text(props, PROP_TITLE, "title"),
            custom_message=_first_plain_text(props, PROP_MESSAGE, "rich_text"),
            business=_select_name(props, PROP_BUSINESS),
        )


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------
class NotionClient:
    """Minimal Notion client: query one page of due records, patch a page."""

    def __init__(
        self,
        token: str,
        database_id: str,
        notion_version: str,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.database_id = database_id
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": notion_version,
            "Content-Type": "application/json",
        }

    def _request(self, method: str, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            r = self.session.request(method, url, headers=self.headers, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise NotionError(f"{method} {url} failed: {exc}") from exc

        try:
            data = r.json()
        except ValueError:
            data = {"message": r.text}

        if not 200 <= r.status_code < 300:
            msg = data.get("message") if isinstance(data, dict) else None
            raise NotionError(
                f"{method} {url} returned {r.status_code}: {msg or r.text}",
                payload=data,
                status=r.status_code,
            )
        return data

    def query_due(self, now_iso: str, page_size: int = 100) -> List[NotificationRecord]:
        """Records with Notify checked and Notify Time on or before ``now_iso``."""
        body = {
            "filter": {
                "and": [
                    {"property": PROP_NOTIFY, "checkbox": {"equals": True}},
                    {"property": PROP_NOTIFY_TIME, "date": {"on_or_before": now_iso}},
                ]
            },
            "page_size": page_size,
        }
        data = self._request("POST", f"{NOTION_API_BASE}/databases/{self.database_id}/query", body)
        results = data.get("results") or []
        if data.get("has_more"):
            logger.info("More than %d records due; the rest wait for the next run", page_size)
        return [NotificationRecord.from_page(page) for page in results]

    def update_page(self, page_id: str, properties: Dict[str, Any]) -> None:
        self._request("PATCH", f"{NOTION_API_BASE}/pages/{page_id}", {"properties": properties})
