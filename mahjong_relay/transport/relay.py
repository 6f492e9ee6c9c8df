# mahjong_relay/transport/relay.py
from __future__ import annotations

import asyncio
from typing import Set

from mahjong_relay.domain.common.events import Deferred, Outbox
from mahjong_relay.log import get_logger
from mahjong_relay.transport.protocols import dump_event
from mahjong_relay.transport.ws_manager import WSManager

logger = get_logger(__name__)


class BroadcastRelay:
    """
    Pushes a handler's Outbox to connections.
    - to_sender -> the requesting connection only
    - to_room   -> every member of outbox.room_id, sender included
    - to_others -> every member except the sender
    - deferred  -> scheduled as tracked tasks, cancelled on shutdown
    """
    def __init__(self, wsman: WSManager) -> None:
        self.wsman = wsman
        self._pending: Set[asyncio.Task] = set()

    async def deliver(self, pid: str, outbox: Outbox) -> None:
        for e in outbox.to_sender:
            await self.wsman.send_to_pid(pid, dump_event(e))

        if outbox.room_id:
            for e in outbox.to_room:
                await self.wsman.broadcast(outbox.room_id, dump_event(e))
            for e in outbox.to_others:
                await self.wsman.broadcast(outbox.room_id, dump_event(e), exclude_pid=pid)

        for d in outbox.deferred:
            self.schedule(pid, d)

    def schedule(self, pid: str, deferred: Deferred) -> asyncio.Task:
        task = asyncio.create_task(self._fire_later(pid, deferred))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _fire_later(self, pid: str, deferred: Deferred) -> None:
        await asyncio.sleep(deferred.delay_sec)
        events = deferred.build()
        if not events:
            logger.debug("deferred relay skipped room=%s pid=%s", deferred.room_id, pid)
            return
        exclude = pid if deferred.exclude_sender else None
        for e in events:
            await self.wsman.broadcast(deferred.room_id, dump_event(e), exclude_pid=exclude)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def shutdown(self) -> None:
        tasks = list(self._pending)
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
