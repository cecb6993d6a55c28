import itertools
from typing import List, Tuple

import pytest

from apps.messenger import MessengerError
from apps.store import RecordStore


class RecordingMessenger:
    """Collects replies instead of sending them."""

    def __init__(self, fail_for: Tuple[int, ...] = ()):
        self.sent: List[Tuple[int, str]] = []
        self.fail_for = fail_for

    async def send_message(self, chat_id: int, text: str) -> None:
        if chat_id in self.fail_for:
            raise MessengerError("chat not found")
        self.sent.append((chat_id, text))

    def texts(self, chat_id: int) -> List[str]:
        return [text for cid, text in self.sent if cid == chat_id]


_update_ids = itertools.count(1)


def _make_update(chat_id: int, text: str) -> dict:
    update_id = next(_update_ids)
    return {
        "update_id": update_id,
        "message": {
            "message_id": update_id,
            "date": 1700000000,
            "chat": {"id": chat_id, "type": "private"},
            "from": {"id": chat_id, "is_bot": False, "username": "someone"},
            "text": text,
        },
    }


@pytest.fixture
def store():
    s = RecordStore.from_dsn("sqlite+pysqlite:///:memory:")
    s.ensure_schema()
    yield s
    s.dispose()


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture
def make_update():
    return _make_update
