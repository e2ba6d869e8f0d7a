"""Voicemail payload storage."""

from maildrain.archive.local import LocalArchive, voicemail_id

__all__ = ["LocalArchive", "voicemail_id"]
