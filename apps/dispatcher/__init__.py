"""Command dispatcher.

Consumes the update stream one update at a time, runs the parsed command
against the :class:`~apps.store.RecordStore` and sends exactly one reply per
recognised command.  Storage failures are turned into reply text and never
retried; messenger failures abort the current update only.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Awaitable, Callable, Dict, Optional, Protocol

from apps.commands import Command, CommandKind, CommandUsageError, descriptions, parse_command
from apps.store import AssociationRecord, RecordStore, StoreError
from lib.contracts.update import Update
from lib.telemetry.logger import get_logger
from lib.utils.validation import parse_uuid


logger = get_logger(__name__)

WELCOME = "Hi! Welcome to the RattleHead bot!"
LIST_HEADER = "ID list:"


class Messenger(Protocol):
    async def send_message(self, chat_id: int, text: str) -> None: ...


def _store_failure(exc: StoreError) -> str:
    return f"Something goes wrong.\n {exc}"


class CommandDispatcher:
    def __init__(self, store: RecordStore, messenger: Messenger, bot_name: Optional[str] = None):
        self.store = store
        self.messenger = messenger
        self.bot_name = bot_name
        self._handlers: Dict[CommandKind, Callable[[Command, int], Awaitable[str]]] = {
            CommandKind.HELP: self._help,
            CommandKind.START: self._start,
            CommandKind.ADD: self._add,
            CommandKind.REMOVE: self._remove,
            CommandKind.LIST: self._list,
            CommandKind.NEW: self._new,
        }

    # ─── Command handlers ─────────────────────────────────────────────────
    async def _help(self, command: Command, chat_id: int) -> str:
        return descriptions()

    async def _start(self, command: Command, chat_id: int) -> str:
        # nothing is persisted on first contact
        return f"{WELCOME}\n{descriptions()}"

    async def _add(self, command: Command, chat_id: int) -> str:
        token = command.rattle_id or ""
        parsed = parse_uuid(token)
        if parsed is None:
            return f"{token} looks like not UUID."
        try:
            await asyncio.to_thread(
                self.store.add_association, AssociationRecord(str(parsed), chat_id)
            )
        except StoreError as exc:
            return _store_failure(exc)
        return f"ID: {token} added."

    async def _remove(self, command: Command, chat_id: int) -> str:
        token = command.rattle_id or ""
        parsed = parse_uuid(token)
        external_id = str(parsed) if parsed is not None else token
        try:
            await asyncio.to_thread(
                self.store.remove_association, AssociationRecord(external_id, chat_id)
            )
        except StoreError as exc:
            return _store_failure(exc)
        return f"ID: {token} removed"

    async def _new(self, command: Command, chat_id: int) -> str:
        new_id = str(uuid.uuid4())
        try:
            await asyncio.to_thread(
                self.store.add_association, AssociationRecord(new_id, chat_id)
            )
        except StoreError as exc:
            return _store_failure(exc)
        return f"New ID: {new_id}"

    async def _list(self, command: Command, chat_id: int) -> str:
        """Header line followed by one id per line.

        Ids are listed in canonical form, so an id added as ``{ABC...}`` or
        without hyphens comes back lowercase and hyphenated rather than as
        typed.
        """

        try:
            ids = await asyncio.to_thread(self.store.list_external_ids, chat_id)
        except StoreError as exc:
            return _store_failure(exc)
        return f"{LIST_HEADER}\n" + "\n".join(ids)

    # ─── Public API ───────────────────────────────────────────────────────
    async def execute(self, command: Command, chat_id: int) -> str:
        """Run ``command`` for ``chat_id`` and return the reply text."""

        return await self._handlers[command.kind](command, chat_id)

    async def handle_update(self, update: Update) -> None:
        """Reply to a single update.

        Updates without message text and non-command text get no reply.
        :class:`~apps.messenger.MessengerError` is propagated to the caller.
        """

        message = update.message
        if message is None or not message.text:
            return
        chat_id = message.chat.id
        try:
            command = parse_command(message.text, self.bot_name)
        except CommandUsageError as exc:
            await self.messenger.send_message(chat_id, exc.reply)
            return
        if command is None:
            return

        reply = await self.execute(command, chat_id)
        await self.messenger.send_message(chat_id, reply)

    async def run(self, updates) -> None:
        """Consume ``updates`` until the stream ends.

        A failure while handling one update is logged and the loop moves on
        to the next one.
        """

        async for update in updates:
            try:
                await self.handle_update(update)
            except Exception:
                logger.exception("failed to handle update %s", update.update_id)
        logger.info("update stream drained")


__all__ = ["CommandDispatcher", "LIST_HEADER", "Messenger", "WELCOME"]
