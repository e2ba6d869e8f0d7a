"""MailDrain data models."""

from maildrain.models.enums import AcquireResult, DrainState, TerminatedBy
from maildrain.models.lease import Lease
from maildrain.models.outcome import DrainOutcome
from maildrain.models.voicemail import Voicemail

__all__ = [
    "AcquireResult",
    "DrainOutcome",
    "DrainState",
    "Lease",
    "TerminatedBy",
    "Voicemail",
]
