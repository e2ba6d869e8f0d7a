"""Voicemail model - one message in the remote mailbox."""

from pydantic import BaseModel, ConfigDict


class Voicemail(BaseModel):
    """
    A voicemail as reported by voip.ms.

    Every field arrives as a string. Entries are not sorted by
    message_num or date; message_num "0" marks the logical head.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    mailbox: str
    folder: str = "INBOX"
    message_num: str
    date: str
    callerid: str = ""
    duration: str = ""
    urgent: str = "no"
    listened: str = "no"

    @property
    def identity(self) -> tuple[str, str, str]:
        """Proxy identity used to detect a head that failed to advance."""
        return (self.date, self.callerid, self.duration)

    @property
    def locator(self) -> tuple[str, str, str]:
        """Handle used to address this message in remote calls."""
        return (self.mailbox, self.folder, self.message_num)
