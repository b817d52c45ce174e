# =============================================================================
# Rocket.Chat Python Driver -- Message
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass
class Message:
    """Outgoing chat message.

    Attributes:
        msg: Message text.
        rid: Target room id.
        fields: Any other message properties (``attachments``, ``alias``,
            ``emoji``, ...), sent as-is.
    """

    msg: str | None = None
    rid: str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_content(cls, content: str | Mapping[str, Any] | Message) -> Message:
        """Build a message from text, a property mapping or another message."""
        if isinstance(content, Message):
            return cls(content.msg, content.rid, dict(content.fields))
        if isinstance(content, str):
            return cls(msg=content)
        props = dict(content)
        return cls(msg=props.pop("msg", None), rid=props.pop("rid", None), fields=props)

    def set_room_id(self, room_id: str) -> Message:
        self.rid = room_id
        return self

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.fields)
        if self.msg is not None:
            data["msg"] = self.msg
        if self.rid is not None:
            data["rid"] = self.rid
        return data
