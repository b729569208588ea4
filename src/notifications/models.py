from typing import Optional

from src.shared.utils import to_object_id, utc_now


class Notification:
    def __init__(self,
                 recipient: str,
                 type: str,
                 message: str,
                 link: Optional[str] = None,
                 sender: Optional[str] = None):
        self.recipient = to_object_id(recipient)
        self.sender = to_object_id(sender) if sender else None
        self.type = type
        self.message = message
        self.link = link
        self.isRead = False
        self.createdAt = utc_now()

    def to_dict(self) -> dict:
        return {
            "recipient": self.recipient,
            "sender": self.sender,
            "type": self.type,
            "message": self.message,
            "link": self.link,
            "isRead": self.isRead,
            "createdAt": self.createdAt
        }
