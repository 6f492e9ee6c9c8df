# mahjong_relay/domain/common/events.py
from __future__ import annotations

"""
Handler results.
Events themselves are defined in mahjong_relay/transport/protocols.py; an
Outbox says who gets each one.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from mahjong_relay.transport.protocols import OutgoingEvent


@dataclass
class Deferred:
    """
    Events produced later, after `delay_sec`.
    `build` runs when the delay expires and must re-read the registry
    (ids only, no room references); returning [] cancels the send.
    """
    delay_sec: float
    room_id: str
    build: Callable[[], List[OutgoingEvent]]
    exclude_sender: bool = True


@dataclass
class Outbox:
    room_id: Optional[str] = None
    to_sender: List[OutgoingEvent] = field(default_factory=list)
    to_room: List[OutgoingEvent] = field(default_factory=list)      # every member, sender included
    to_others: List[OutgoingEvent] = field(default_factory=list)    # every member but the sender
    deferred: List[Deferred] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.to_sender or self.to_room or self.to_others or self.deferred)
