import pytest

from notion_notifier.config import Settings


def build_page(
    page_id="page-1",
    title="Pay rent",
    notify=True,
    notify_time="2024-03-08T09:00:00Z",
    repeat=None,
    business=None,
    message=None,
    days=None,
):
    props = {
        "Name": {"title": [{"plain_text": title}] if title else []},
        "Notify": {"checkbox": notify},
        "Notify Time": {"date": {"start": notify_time} if notify_time else None},
        "Repeat": {"select": {"name": repeat} if repeat else None},
        "Business": {"select": {"name": business} if business else None},
        "Message template": {"rich_text": [{"plain_text": message}] if message else []},
    }
    if days is not None:
        props["Notify Days"] = {"multi_select": [{"name": d} for d in days]}
    return {"object": "page", "id": page_id, "properties": props}


@pytest.fixture
def page_factory():
    return build_page


@pytest.fixture
def settings():
    return Settings(
        notion_token="secret_test",
        database_id="db-123",
        telegram_token="123:abc",
        telegram_chat_id="-100200",
    )


class FakeResponse:
    def __init__(self, status_code=200, data=None, text=""):
        self.status_code = status_code
        self._data = data
        self.text = text

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


@pytest.fixture
def response_factory():
    return FakeResponse
