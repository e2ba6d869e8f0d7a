"""Filesystem archive for downloaded voicemails."""

import asyncio
import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path

from maildrain.config import Settings
from maildrain.engine.errors import PayloadPersistenceError
from maildrain.models import Voicemail

logger = logging.getLogger("maildrain.archive")

VOIP_MS_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def voicemail_id(item: Voicemail) -> str:
    """
    Build an ID that names the voicemail uniquely and sorts by date.

    Format: ``YYYYMMDDHHmmssSSS-<md5 of the voicemail record>``. The date is
    voip.ms server local time; no timezone is attached.
    """
    try:
        parsed = datetime.strptime(item.date, VOIP_MS_DATE_FORMAT)
    except ValueError as e:
        raise PayloadPersistenceError(item.date, f"unparseable voicemail date: {e}") from e

    stamp = parsed.strftime("%Y%m%d%H%M%S") + f"{parsed.microsecond // 1000:03d}"
    record = json.dumps(item.model_dump(), separators=(",", ":"), ensure_ascii=False)
    digest = hashlib.md5(record.encode("utf-8")).hexdigest()
    return f"{stamp}-{digest}"


class LocalArchive:
    """
    Stores each voicemail as ``<mailbox>/<folder>/<id>.mp3`` with a JSON
    metadata sidecar next to it, under the configured archive directory.
    """

    def __init__(self, settings: Settings):
        self.base_dir = Path(settings.archive_dir).resolve()

    def _resolve_output_path(self, relative: str) -> Path:
        """Resolve output path inside the base directory."""
        resolved = (self.base_dir / relative).resolve()
        try:
            resolved.relative_to(self.base_dir)
        except ValueError:
            raise PayloadPersistenceError(
                relative, "path escapes the configured archive directory"
            )
        return resolved

    @staticmethod
    def metadata(item: Voicemail, vm_id: str) -> dict[str, str]:
        """Metadata stored alongside the audio, keyed in lower case."""
        return {
            "tenantid": item.mailbox,
            "voicemailid": vm_id,
            "mailbox": item.mailbox,
            "date": item.date,
            "callerid": item.callerid,
            "duration": item.duration,
            "urgent": item.urgent,
            "folder": item.folder,
        }

    async def store(self, item: Voicemail, payload: bytes) -> str:
        """Write the voicemail audio and metadata; return the audio key."""
        vm_id = voicemail_id(item)
        key = f"{item.mailbox}/{item.folder}/{vm_id}.mp3"
        audio_path = self._resolve_output_path(key)
        meta_path = audio_path.with_suffix(".json")
        meta = json.dumps(self.metadata(item, vm_id), indent=2, ensure_ascii=False)

        def _write() -> None:
            audio_path.parent.mkdir(parents=True, exist_ok=True)
            audio_path.write_bytes(payload)
            meta_path.write_text(meta, encoding="utf-8")

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise PayloadPersistenceError(vm_id, str(e)) from e

        logger.info(f"Stored voicemail {key} ({len(payload)} bytes)")
        return key
