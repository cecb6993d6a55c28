import asyncio
import re
import uuid

import pytest

from apps.commands import Command, CommandKind
from apps.dispatcher import LIST_HEADER, WELCOME, CommandDispatcher
from apps.store import StoreError
from apps.webhook.stream import UpdateStream
from lib.contracts.update import Update

UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")


def run(dispatcher, kind, chat_id, rattle_id=None):
    return asyncio.run(dispatcher.execute(Command(kind, rattle_id), chat_id))


def list_body(reply: str) -> str:
    header, _, body = reply.partition("\n")
    assert header == LIST_HEADER
    return body


class FailingStore:
    def __init__(self):
        self.calls = 0

    def _fail(self, *args):
        self.calls += 1
        raise StoreError("connection refused")

    add_association = remove_association = list_external_ids = _fail


class SpyStore:
    def __init__(self):
        self.calls = []

    def add_association(self, record):
        self.calls.append(("add", record))

    def remove_association(self, record):
        self.calls.append(("remove", record))
        return 0

    def list_external_ids(self, chat_id):
        self.calls.append(("list", chat_id))
        return []


def test_add_then_list_contains_id_once(store, messenger):
    d = CommandDispatcher(store, messenger)
    u = str(uuid.uuid4())
    assert run(d, CommandKind.ADD, 7, u) == f"ID: {u} added."
    assert list_body(run(d, CommandKind.LIST, 7)).split("\n").count(u) == 1


def test_records_do_not_leak_between_chats(store, messenger):
    d = CommandDispatcher(store, messenger)
    u = str(uuid.uuid4())
    run(d, CommandKind.ADD, 1, u)
    assert u not in run(d, CommandKind.LIST, 2)


def test_remove_is_idempotent(store, messenger):
    d = CommandDispatcher(store, messenger)
    u = str(uuid.uuid4())
    run(d, CommandKind.ADD, 3, u)
    assert run(d, CommandKind.REMOVE, 3, u) == f"ID: {u} removed"
    assert run(d, CommandKind.REMOVE, 3, u) == f"ID: {u} removed"
    assert list_body(run(d, CommandKind.LIST, 3)) == ""


def test_new_returns_retrievable_uuid(store, messenger):
    d = CommandDispatcher(store, messenger)
    reply = run(d, CommandKind.NEW, 9)
    new_id = UUID_RE.search(reply).group(0)
    assert str(uuid.UUID(new_id)) == new_id
    assert list_body(run(d, CommandKind.LIST, 9)) == new_id


def test_invalid_uuid_never_touches_store(messenger):
    spy = SpyStore()
    d = CommandDispatcher(spy, messenger)
    assert run(d, CommandKind.ADD, 1, "not-a-uuid") == "not-a-uuid looks like not UUID."
    assert spy.calls == []


@pytest.mark.parametrize(
    "spelling",
    [lambda u: str(u).upper(), lambda u: "{%s}" % u, lambda u: u.hex],
    ids=["upper", "braced", "no-hyphens"],
)
def test_non_canonical_uuid_is_listed_canonically(store, messenger, spelling):
    # List returns the canonical form, not the token as typed
    d = CommandDispatcher(store, messenger)
    u = uuid.uuid4()
    token = spelling(u)
    assert run(d, CommandKind.ADD, 4, token) == f"ID: {token} added."
    assert list_body(run(d, CommandKind.LIST, 4)) == str(u)
    run(d, CommandKind.REMOVE, 4, token)
    assert list_body(run(d, CommandKind.LIST, 4)) == ""


def test_duplicate_add_reports_store_error(store, messenger):
    d = CommandDispatcher(store, messenger)
    u = str(uuid.uuid4())
    run(d, CommandKind.ADD, 5, u)
    assert run(d, CommandKind.ADD, 5, u).startswith("Something goes wrong.")


def test_store_failures_become_replies(messenger):
    failing = FailingStore()
    d = CommandDispatcher(failing, messenger)
    u = str(uuid.uuid4())
    for kind, arg in [
        (CommandKind.ADD, u),
        (CommandKind.REMOVE, u),
        (CommandKind.NEW, None),
        (CommandKind.LIST, None),
    ]:
        assert run(d, kind, 1, arg) == "Something goes wrong.\n connection refused"
    assert failing.calls == 4


def test_help_and_start_have_no_side_effects(messenger):
    spy = SpyStore()
    d = CommandDispatcher(spy, messenger)
    assert run(d, CommandKind.HELP, 1).startswith("These commands are supported:")
    assert run(d, CommandKind.START, 1).startswith(WELCOME)
    assert spy.calls == []


def test_end_to_end_scenario(store, messenger, make_update):
    d = CommandDispatcher(store, messenger)

    def send(text):
        asyncio.run(d.handle_update(Update.model_validate(make_update(42, text))))
        return messenger.texts(42)[-1]

    x = UUID_RE.search(send("/new")).group(0)
    assert list_body(send("/list")) == x
    assert send(f"/remove {x}") == f"ID: {x} removed"
    assert list_body(send("/list")) == ""


def test_non_command_text_gets_no_reply(store, messenger, make_update):
    d = CommandDispatcher(store, messenger)
    asyncio.run(d.handle_update(Update.model_validate(make_update(1, "just chatting"))))
    asyncio.run(d.handle_update(Update.model_validate({"update_id": 99})))
    assert messenger.sent == []


def test_usage_error_is_reported(store, messenger, make_update):
    d = CommandDispatcher(store, messenger)
    asyncio.run(d.handle_update(Update.model_validate(make_update(1, "/add"))))
    assert messenger.texts(1) == ["Usage: /add <rattle_id>\nAdding existing ID."]


def test_messenger_failure_does_not_stop_the_loop(store, messenger, make_update):
    messenger.fail_for = (13,)
    d = CommandDispatcher(store, messenger)
    stream = UpdateStream()
    stream.push(Update.model_validate(make_update(13, "/help")))
    stream.push(Update.model_validate(make_update(14, "/help")))
    stream.close()

    asyncio.run(d.run(stream))

    assert messenger.texts(13) == []
    assert len(messenger.texts(14)) == 1
