from boardide.models.kv import KeyValueEntry
from boardide.models.records import FileMetadata, FileRecord, FileSummary

__all__ = [
    "KeyValueEntry",
    "FileMetadata", "FileRecord", "FileSummary",
]
