import io
import re
import zipfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Protocol, Tuple

from boardide.errors import CorruptedRecord, InvalidArgument
from boardide.logging import logger


class Downloader(Protocol):
    """Collaborator that offers bytes to the user as a file."""
    def __call__(self, filename: str, data: bytes) -> None: ...


class Download(NamedTuple):
    filename: str
    data: bytes
    mime_type: str


def sanitize_filename(name: str) -> str:
    """Replace characters that are unsafe in archive or file names."""
    return re.sub(r'[\\/:*?"<>|]', '_', name)


def download_filename(name: Optional[str], default_extension: str = ".js") -> str:
    """File name for a download; adds the default extension when the name has none."""
    filename = (name or "").strip() or "untitled"
    if "." not in filename:
        filename += default_extension
    return filename


def guess_mime_type(filename: str) -> str:
    if filename.lower().endswith(".zip"):
        return "application/zip"
    return "application/octet-stream"


def zip_filename(now: Optional[datetime] = None) -> str:
    """Archive name like ide_files_20250101120000.zip."""
    now = now or datetime.now(timezone.utc)
    return f"ide_files_{now.strftime('%Y%m%d%H%M%S')}.zip"


class DownloadQueue:
    """Downloader that keeps offers until the UI renders them as download buttons."""

    def __init__(self):
        self.pending: List[Download] = []

    def __call__(self, filename: str, data: bytes) -> None:
        self.pending.append(Download(filename, data, guess_mime_type(filename)))

    def drain(self) -> List[Download]:
        items, self.pending = self.pending, []
        return items


class DirectoryDownloader:
    """Downloader that writes offers into a directory (used by the CLI)."""

    def __init__(self, target_dir: Path):
        self.target_dir = Path(target_dir)
        self.written: List[Path] = []

    def __call__(self, filename: str, data: bytes) -> None:
        self.target_dir.mkdir(parents=True, exist_ok=True)
        path = self.target_dir / sanitize_filename(filename)
        with open(path, "wb") as f:
            f.write(data)
        self.written.append(path)


def read_upload(uploaded_file) -> Tuple[str, str]:
    """
    Read an uploaded text file.

    Args:
        uploaded_file: Streamlit UploadedFile object (or similar with .getvalue() and .name).

    Returns:
        Tuple of (name, text content).
    """
    data = uploaded_file.getvalue()
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidArgument(f"{uploaded_file.name} is not a UTF-8 text file.") from exc
    return uploaded_file.name, text


def build_zip_archive(store, file_ids: Iterable[str]) -> Tuple[bytes, int, int]:
    """
    Pack the given records into a ZIP archive.

    Returns (archive bytes, files added, files that failed to load). Records that
    vanished or cannot be decoded are skipped.
    """
    buffer = io.BytesIO()
    added = failed = 0
    used_names = set()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for file_id in file_ids:
            try:
                record = store.load(file_id)
            except CorruptedRecord as e:
                logger.error(f"Failed to load file {file_id} for zipping: {e}")
                failed += 1
                continue
            if record is None:
                logger.warning(f"Skipping file {file_id} (no content or data)")
                continue
            name = sanitize_filename(record.name or f"unnamed_{record.id}")
            name = download_filename(name, store.default_extension)
            # Two records may share a display name
            if name in used_names:
                stem, dot, ext = name.rpartition(".")
                name = f"{stem}_{record.id}{dot}{ext}"
            used_names.add(name)
            archive.writestr(name, record.content)
            added += 1
    if added == 0:
        raise InvalidArgument("No valid files could be added to the ZIP archive.")
    return buffer.getvalue(), added, failed
