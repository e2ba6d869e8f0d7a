"""voip.ms integration."""

from maildrain.voipms.client import HEAD_MESSAGE_NUM, VoipMsClient

__all__ = ["HEAD_MESSAGE_NUM", "VoipMsClient"]
