# mahjong_relay/transport/ws_manager.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from fastapi import WebSocket

from mahjong_relay.log import get_logger

logger = get_logger(__name__)


@dataclass
class Conn:
    pid: str
    ws: WebSocket


class WSManager:
    """
    In-memory connection registry.
    - pid -> websocket
    - group (room_id) -> {pid}
    Transport-only: no room rules. Group membership is driven by RoomLifecycle.

    Registry changes are plain calls (no awaits), so they never interleave
    with other handlers on the event loop.
    """
    def __init__(self) -> None:
        self._conns: Dict[str, Conn] = {}
        self._groups: Dict[str, Set[str]] = {}

    # ---- connections ----

    def add(self, pid: str, ws: WebSocket) -> None:
        self._conns[pid] = Conn(pid=pid, ws=ws)

    def remove(self, pid: str) -> None:
        self._conns.pop(pid, None)
        for group in list(self._groups):
            self.unsubscribe(group, pid)

    def is_connected(self, pid: str) -> bool:
        return pid in self._conns

    @property
    def connection_count(self) -> int:
        return len(self._conns)

    # ---- groups ----

    def subscribe(self, group: str, pid: str) -> None:
        self._groups.setdefault(group, set()).add(pid)

    def unsubscribe(self, group: str, pid: str) -> None:
        members = self._groups.get(group)
        if not members:
            return
        members.discard(pid)
        if not members:
            self._groups.pop(group, None)

    def drop_group(self, group: str) -> None:
        self._groups.pop(group, None)

    def members(self, group: str) -> Set[str]:
        return set(self._groups.get(group, ()))

    # ---- sending ----

    async def send_to_pid(self, pid: str, event: dict) -> None:
        conn = self._conns.get(pid)
        if conn is None:
            return
        await self._send(conn, event)

    async def broadcast(self, group: str, event: dict, exclude_pid: Optional[str] = None) -> None:
        # copy targets first, sends may yield to other handlers
        conns: List[Conn] = [
            self._conns[pid] for pid in self._groups.get(group, ()) if pid in self._conns
        ]
        for c in conns:
            if exclude_pid and c.pid == exclude_pid:
                continue
            await self._send(c, event)

    async def _send(self, conn: Conn, event: dict) -> None:
        try:
            await conn.ws.send_json(event)
        except Exception as e:
            # dead socket: ws.py cleans up when its receive loop ends
            logger.warning("send failed pid=%s type=%s: %s", conn.pid, event.get("type"), e)

    async def close_pid(self, pid: str, code: int = 4000, reason: str = "closed") -> None:
        """
        Close a specific connection's websocket and forget it.
        """
        conn = self._conns.get(pid)
        if conn is None:
            return
        try:
            await conn.ws.close(code=code, reason=reason)
        except Exception as e:
            logger.warning("close failed pid=%s: %s", pid, e)
        self.remove(pid)
