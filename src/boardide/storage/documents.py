"""
Document store: namespaced CRUD of FileRecords over a KeyValueStore.

Keys are ``prefix + id``; every enumeration filters on the prefix so two
stores with different prefixes sharing one backend never see each other's
records.
"""
import time
import uuid
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from pydantic import ValidationError

from boardide.errors import CorruptedRecord, InvalidArgument, NotFound, QuotaExceeded, StorageWriteError
from boardide.logging import logger
from boardide.models.records import FileMetadata, FileRecord, FileSummary
from boardide.storage.files import Downloader, download_filename
from boardide.storage.kv import CapacityError, KeyValueStore

PATCH_FIELDS = ("content", "board_version", "name", "metadata")
_PATCH_ALIASES = {"boardVersion": "board_version"}
_METADATA_ALIASES = {"createdAt": "created_at", "updatedAt": "updated_at"}


def now_ms() -> int:
    return int(time.time() * 1000)


def _require_name(name: Any) -> str:
    """Names are stored without surrounding whitespace."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgument("File name cannot be empty.")
    return name.strip()


class DocumentStore:
    def __init__(
        self,
        kv: KeyValueStore,
        prefix: str,
        *,
        max_content_bytes: int = 0,
        default_extension: str = ".js",
        clock: Callable[[], int] = now_ms,
    ):
        if not prefix:
            raise ValueError("prefix must not be empty")
        self.kv = kv
        self.prefix = prefix
        self.max_content_bytes = max_content_bytes
        self.default_extension = default_extension
        self._clock = clock

    # ---------- helpers ----------
    def _key(self, file_id: str) -> str:
        return f"{self.prefix}{file_id}"

    def _new_id(self) -> str:
        while True:
            file_id = f"file_{self._clock()}_{uuid.uuid4().hex[:8]}"
            if self.kv.get(self._key(file_id)) is None:
                return file_id

    def _check_content(self, content: Any) -> None:
        if not isinstance(content, str):
            raise InvalidArgument("File content must be text.")
        if self.max_content_bytes and len(content.encode("utf-8")) > self.max_content_bytes:
            raise InvalidArgument(
                f"File content exceeds the limit of {self.max_content_bytes} bytes."
            )

    def _keys(self) -> Iterator[str]:
        for index in range(self.kv.count()):
            key = self.kv.key_at(index)
            if key is not None and key.startswith(self.prefix):
                yield key

    def _read(self, file_id: str) -> Optional[FileRecord]:
        raw = self.kv.get(self._key(file_id))
        if raw is None:
            return None
        try:
            return FileRecord.model_validate_json(raw)
        except ValidationError as exc:
            raise CorruptedRecord(file_id, f"{exc.error_count()} invalid field(s)") from exc

    def _write(self, record: FileRecord) -> None:
        try:
            self.kv.set(self._key(record.id), record.to_json())
        except CapacityError as exc:
            logger.error(f"Storage quota exceeded while writing {record.id}: {exc}")
            raise QuotaExceeded(
                "Storage is full. Delete or download old files to free space."
            ) from exc
        except Exception as exc:
            logger.error(f"Write failed for {record.id}: {exc}")
            raise StorageWriteError(f"Could not save file: {exc}") from exc

    # ---------- CRUD ----------
    def create(self, name: str, content: str = "", board_version: Optional[str] = None) -> str:
        """Persist a new record and return its generated id. The name is stored stripped."""
        name = _require_name(name)
        self._check_content(content)
        now = self._clock()
        record = FileRecord(
            id=self._new_id(),
            name=name,
            content=content,
            board_version=board_version,
            metadata=FileMetadata(created_at=now, updated_at=now),
        )
        self._write(record)
        logger.info(f"Created file {record.id} ({record.name!r})")
        return record.id

    def update(self, file_id: str, patch: Mapping[str, Any]) -> FileRecord:
        """
        Apply a partial patch to an existing record.

        Only keys in PATCH_FIELDS (``boardVersion`` is accepted for
        ``board_version``) are applied; ``metadata`` is shallow-merged and
        ``updated_at`` always moves forward. A patch with no recognized
        field writes nothing and returns the stored record.
        """
        if not isinstance(patch, Mapping):
            raise InvalidArgument("Patch must be a mapping of fields.")
        record = self._read(file_id)
        if record is None:
            raise NotFound(file_id)

        fields = {}
        for key, value in patch.items():
            key = _PATCH_ALIASES.get(key, key)
            if key in PATCH_FIELDS:
                fields[key] = value
        if not fields:
            logger.debug(f"Ignoring empty patch for {file_id}")
            return record

        if "name" in fields:
            fields["name"] = _require_name(fields["name"])
        if "content" in fields:
            self._check_content(fields["content"])
        if "board_version" in fields and fields["board_version"] is not None \
                and not isinstance(fields["board_version"], str):
            raise InvalidArgument("Board version must be a string.")

        metadata: Dict[str, Any] = record.metadata.model_dump()
        if "metadata" in fields:
            extra = fields.pop("metadata")
            if not isinstance(extra, Mapping):
                raise InvalidArgument("Patch metadata must be a mapping.")
            metadata.update({_METADATA_ALIASES.get(k, k): v for k, v in extra.items()})
        try:
            merged = FileMetadata.model_validate(metadata)
        except ValidationError as exc:
            raise InvalidArgument(f"Invalid metadata for {file_id}: {exc.error_count()} invalid field(s)") from exc
        merged.updated_at = max(self._clock(), record.metadata.updated_at + 1, merged.created_at)
        metadata = merged.model_dump()

        data = record.model_dump()
        data.update(fields)
        data["metadata"] = metadata
        try:
            updated = FileRecord.model_validate(data)
        except ValidationError as exc:
            raise InvalidArgument(f"Invalid patch for {file_id}: {exc.error_count()} invalid field(s)") from exc
        self._write(updated)
        logger.debug(f"Updated file {file_id}: {sorted(fields)}")
        return updated

    def load(self, file_id: str) -> Optional[FileRecord]:
        """Return the record, or None when nothing is stored under the id."""
        return self._read(file_id)

    def delete(self, file_id: str) -> None:
        self.kv.remove(self._key(file_id))
        logger.info(f"Deleted file {file_id}")

    def rename(self, file_id: str, new_name: str) -> FileRecord:
        return self.update(file_id, {"name": new_name})

    # ---------- listings ----------
    def list_files(self) -> List[FileSummary]:
        """All readable records under the prefix, newest created first."""
        summaries: List[FileSummary] = []
        for key in list(self._keys()):
            raw = self.kv.get(key)
            if raw is None:
                continue
            try:
                summaries.append(FileRecord.model_validate_json(raw).summary())
            except ValidationError:
                logger.warning(f"Skipping unreadable entry {key!r}")
        summaries.sort(key=lambda s: s.metadata.created_at, reverse=True)
        return summaries

    def search(self, term: str) -> List[FileSummary]:
        """Case-insensitive name filter over list_files()."""
        needle = (term or "").strip().lower()
        files = self.list_files()
        if not needle:
            return files
        return [f for f in files if needle in f.name.lower()]

    def recent(self, limit: int) -> List[FileSummary]:
        """Most recently modified files first."""
        files = sorted(self.list_files(), key=lambda s: s.metadata.updated_at, reverse=True)
        return files[:limit]

    def clear_all(self) -> int:
        """Remove every record under this prefix and return how many were removed."""
        keys = list(self._keys())
        for key in keys:
            self.kv.remove(key)
        logger.warning(f"Cleared {len(keys)} file(s) under {self.prefix!r}")
        return len(keys)

    # ---------- export ----------
    def export_file(self, file_id: str, downloader: Downloader) -> str:
        """Offer the record's content for download and return the file name used."""
        record = self._read(file_id)
        if record is None:
            raise NotFound(file_id)
        filename = download_filename(record.name, self.default_extension)
        downloader(filename, record.content.encode("utf-8"))
        logger.info(f"Exported {file_id} as {filename}")
        return filename
