from dataclasses import dataclass
from typing import Optional

from boardide.session.scheduler import TimerHandle


@dataclass
class SessionState:
    """In-memory binding between the open editor and (optionally) a stored record."""

    current_file_id: Optional[str] = None
    current_file_name: Optional[str] = None
    current_board_version: Optional[str] = None
    # Version shown in the selector; differs from current_board_version only mid-load
    selected_version: Optional[str] = None
    is_dirty: bool = False
    is_version_loading: bool = False
    pending_autosave: Optional[TimerHandle] = None
    last_saved_at: Optional[int] = None

    @property
    def is_bound(self) -> bool:
        return self.current_file_id is not None

    @property
    def phase(self) -> str:
        if not self.is_bound:
            return "unbound"
        return "dirty" if self.is_dirty else "clean"
