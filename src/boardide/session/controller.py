"""
Session controller.

Binds one open document to the editor buffer and the board library loader.
All handlers run on a single thread; the only suspension points are the
autosave timer and the awaited library load, so every resumption re-checks
the session state instead of trusting values captured earlier.
"""
from typing import Callable, Optional, Sequence

from boardide import share
from boardide.errors import CorruptedRecord, NotFound, VersionLoadFailure, WorkspaceError
from boardide.logging import logger
from boardide.session.editor import EditorWidget
from boardide.session.events import EventBus, NotificationCenter
from boardide.session.loader import LibraryHandle, VersionLoader
from boardide.session.scheduler import DeadlineScheduler
from boardide.session.state import SessionState
from boardide.storage.documents import DocumentStore, now_ms
from boardide.storage.files import Downloader, download_filename
from boardide.storage.kv import HandoffSlot
from boardide.templates import DEFAULT_TEMPLATE, get_template

DISCARD_PROMPT = "You have unsaved changes. Discard them and continue?"

ConfirmFn = Callable[[str], bool]


def refuse_discard(message: str) -> bool:
    return False


class SessionController:
    def __init__(
        self,
        store: DocumentStore,
        editor: EditorWidget,
        loader: VersionLoader,
        scheduler: DeadlineScheduler,
        *,
        supported_versions: Sequence[str],
        autosave_delay_ms: int = 2000,
        notifier: Optional[NotificationCenter] = None,
        bus: Optional[EventBus] = None,
        handoff: Optional[HandoffSlot] = None,
        downloader: Optional[Downloader] = None,
        confirm: ConfirmFn = refuse_discard,
        share_param: str = "data",
        clock: Callable[[], int] = now_ms,
    ):
        if not supported_versions:
            raise ValueError("supported_versions must not be empty")
        self.store = store
        self.editor = editor
        self.loader = loader
        self.scheduler = scheduler
        self.supported_versions = list(supported_versions)
        self.autosave_delay_ms = autosave_delay_ms
        self.bus = bus or EventBus()
        self.notifier = notifier or NotificationCenter(bus=self.bus)
        self.handoff = handoff
        self.downloader = downloader
        self.confirm = confirm
        self.share_param = share_param
        self._clock = clock

        self.state = SessionState()
        self.pending_initialize = False
        self._library: Optional[LibraryHandle] = None
        editor.on_content_change(self.handle_content_change)

    # ---------- queries ----------
    @property
    def newest_version(self) -> str:
        return self.supported_versions[0]

    @property
    def library(self) -> Optional[LibraryHandle]:
        return self._library

    @property
    def can_run(self) -> bool:
        return not self.state.is_version_loading and self._library is not None

    def is_supported(self, version: Optional[str]) -> bool:
        return version in self.supported_versions

    # ---------- lifecycle ----------
    def attach_pages(self, page_id: str) -> Callable[[], None]:
        """Request initialization whenever the bus reports page_id was shown."""
        def on_page_shown(shown: str) -> None:
            if shown == page_id:
                self.pending_initialize = True

        return self.bus.subscribe("page.shown", on_page_shown)

    async def initialize(self, share_token: Optional[str] = None) -> None:
        """
        Set up the session when the editor page is entered.

        A share token wins over a pending "open this file" handoff; the handoff
        key is consumed either way.
        """
        self.pending_initialize = False
        pending_id = self.handoff.take() if self.handoff else None
        if self.state.is_version_loading:
            self.notifier.alert("Please wait for the board library to finish loading.", "warning")
            return

        if share_token:
            payload = share.decode(share_token)
            if isinstance(payload, share.ShareFailure):
                logger.error(f"Shared link could not be decoded: {payload.message}")
                self.notifier.alert("The shared link is invalid or corrupted.", "error")
                await self._reset(get_template(DEFAULT_TEMPLATE))
                return
            version = payload.version
            if not self.is_supported(version):
                self.notifier.alert(
                    f"Shared code targets unknown board version {version}; using {self.newest_version}.",
                    "warning",
                )
                version = self.newest_version
            await self._reset(payload.content, version=version)
            self.notifier.alert("Loaded shared code.", "success")
            return

        if pending_id:
            await self._open(pending_id)
            return
        await self._reset(get_template(DEFAULT_TEMPLATE))

    async def exit(self) -> bool:
        if not self._guard_navigation():
            return False
        self._cancel_autosave()
        if self._library is not None:
            await self.loader.unload(self._library)
            self._library = None
        self.state = SessionState()
        self.bus.publish("session.exit", None)
        logger.info("Session closed")
        return True

    # ---------- navigation ----------
    def confirm_discard(self) -> bool:
        if not self.state.is_dirty:
            return True
        return bool(self.confirm(DISCARD_PROMPT))

    def _guard_navigation(self) -> bool:
        if self.state.is_version_loading:
            self.notifier.alert("Please wait for the board library to finish loading.", "warning")
            return False
        if not self.confirm_discard():
            logger.info("Navigation cancelled: unsaved changes kept")
            return False
        return True

    async def open_file(self, file_id: str) -> bool:
        if not self._guard_navigation():
            return False
        return await self._open(file_id)

    async def new_file(self, template: str = DEFAULT_TEMPLATE, version: Optional[str] = None) -> bool:
        if not self._guard_navigation():
            return False
        try:
            content = get_template(template)
        except WorkspaceError as exc:
            self.notifier.alert(str(exc), "error")
            return False
        await self._reset(content, version=version)
        return True

    async def load_external(self, name: str, content: str, version: Optional[str] = None) -> bool:
        """Start an unbound session from a file read from the user's disk."""
        if not self._guard_navigation():
            return False
        await self._reset(content, name=name, version=version)
        self.notifier.alert(f'Loaded "{name}" from your computer.', "success")
        return True

    async def _open(self, file_id: str) -> bool:
        try:
            record = self.store.load(file_id)
            if record is None:
                raise NotFound(file_id)
        except (NotFound, CorruptedRecord) as exc:
            logger.error(f"Open failed for {file_id}: {exc}")
            self.notifier.alert(f"Could not open file: {exc}", "error")
            await self._reset(get_template(DEFAULT_TEMPLATE))
            return False

        version = record.board_version
        if not self.is_supported(version):
            self.notifier.alert(
                f"File targets unknown board version {version}; using {self.newest_version}.",
                "warning",
            )
            version = self.newest_version

        self._cancel_autosave()
        self.editor.set_content(record.content)
        self.state.current_file_id = record.id
        self.state.current_file_name = record.name
        self.state.current_board_version = version
        self.state.selected_version = version
        self.state.is_dirty = False
        self.state.last_saved_at = record.metadata.updated_at
        logger.info(f"Opened {record.id} ({record.name!r}) on board {version}")
        self._changed()
        await self._ensure_library(version)
        return True

    async def _reset(self, content: str, *, name: Optional[str] = None,
                     version: Optional[str] = None) -> None:
        """Back to an unbound document holding content."""
        version = version or self.newest_version
        self._cancel_autosave()
        self.editor.set_content(content)
        self.state.current_file_id = None
        self.state.current_file_name = name
        self.state.current_board_version = version
        self.state.selected_version = version
        self.state.is_dirty = False
        self.state.last_saved_at = None
        self._changed()
        await self._ensure_library(version)

    # ---------- editing & autosave ----------
    def handle_content_change(self, content: str) -> None:
        if not self.state.is_dirty:
            self.state.is_dirty = True
            self._changed()
        if self.state.is_bound and not self.state.is_version_loading:
            self._schedule_autosave()

    def _schedule_autosave(self) -> None:
        self._cancel_autosave()
        self.state.pending_autosave = self.scheduler.call_later(
            self.autosave_delay_ms, self._autosave, label="autosave"
        )

    def _cancel_autosave(self) -> None:
        if self.state.pending_autosave is not None:
            self.state.pending_autosave.cancel()
            self.state.pending_autosave = None

    def _autosave(self) -> None:
        self.state.pending_autosave = None
        st = self.state
        # State may have moved on while the timer was pending
        if not st.is_bound or not st.is_dirty or st.is_version_loading:
            logger.debug(f"Autosave skipped (bound={st.is_bound} dirty={st.is_dirty} "
                         f"loading={st.is_version_loading})")
            return
        self._persist(quiet=True)

    def save(self) -> bool:
        """Persist the bound document now; unbound documents need save_as()."""
        if not self.state.is_bound:
            self.notifier.alert("This file has not been saved yet. Use Save As.", "info")
            return False
        if self.state.is_version_loading:
            self.notifier.alert("Please wait for the board library to finish loading.", "warning")
            return False
        self._cancel_autosave()
        return self._persist(quiet=False)

    def _persist(self, quiet: bool) -> bool:
        file_id = self.state.current_file_id
        try:
            self.store.update(file_id, {
                "content": self.editor.get_content(),
                "board_version": self.state.current_board_version,
            })
        except WorkspaceError as exc:
            logger.error(f"Save failed for {file_id}: {exc}")
            self.notifier.alert(f"Failed to save file: {exc}", "error", group="save")
            return False
        self.state.is_dirty = False
        self.state.last_saved_at = self._clock()
        logger.debug(f"Saved {file_id}")
        if not quiet:
            self.notifier.alert("File saved.", "success", group="save")
        self.bus.publish("session.saved", file_id)
        self._changed()
        return True

    def save_as(self, name: str) -> Optional[str]:
        """Store the current content as a new record and bind the session to it."""
        if not isinstance(name, str) or not name.strip():
            self.notifier.alert("File name cannot be empty.", "warning")
            return None
        if self.state.is_version_loading:
            self.notifier.alert("Please wait for the board library to finish loading.", "warning")
            return None
        try:
            file_id = self.store.create(name, self.editor.get_content(), self.state.current_board_version)
        except WorkspaceError as exc:
            logger.error(f"Save As failed: {exc}")
            self.notifier.alert(f"Failed to save file: {exc}", "error", group="save")
            return None
        self._cancel_autosave()
        self.state.current_file_id = file_id
        self.state.current_file_name = name.strip()
        self.state.is_dirty = False
        self.state.last_saved_at = self._clock()
        self.notifier.alert(f'Saved as "{name.strip()}".', "success", group="save")
        self.bus.publish("session.saved", file_id)
        self._changed()
        return file_id

    def save_to_computer(self) -> Optional[str]:
        """Offer the editor content as a download; session state is untouched."""
        if self.downloader is None:
            self.notifier.alert("Downloads are not available here.", "error")
            return None
        filename = download_filename(self.state.current_file_name, self.store.default_extension)
        self.downloader(filename, self.editor.get_content().encode("utf-8"))
        self.notifier.alert(f'Downloaded "{filename}".', "success", duration_ms=2000)
        return filename

    def share_link(self, base_url: str) -> Optional[str]:
        token = share.encode({
            "content": self.editor.get_content(),
            "version": self.state.current_board_version or self.newest_version,
        })
        if isinstance(token, share.ShareFailure):
            self.notifier.alert(f"Could not create share link: {token.message}", "error")
            return None
        return share.build_share_url(base_url, token, self.share_param)

    # ---------- versions ----------
    async def change_version(self, version: str) -> bool:
        """Switch the board library; returns True when the new version became current."""
        st = self.state
        if st.is_version_loading:
            logger.info(f"Ignoring version change to {version}: a load is in progress")
            return False
        if version == st.current_board_version and self._library is not None:
            return False
        if not self.is_supported(version):
            logger.warning(f"Rejected unsupported board version {version}")
            st.selected_version = st.current_board_version
            self.notifier.alert(f"Board version {version} is not supported.", "error")
            return False
        if not await self._load_library(version):
            self._after_load()
            return False
        if st.is_bound:
            # The version choice is part of the saved state
            st.is_dirty = True
        self._after_load()
        return True

    async def _ensure_library(self, version: str) -> None:
        if self._library is not None and self._library.version == version:
            return
        await self._load_library(version)
        self._after_load()

    async def _load_library(self, version: str) -> bool:
        st = self.state
        st.is_version_loading = True
        st.selected_version = version
        self._changed()
        try:
            if self._library is not None:
                previous, self._library = self._library, None
                await self.loader.unload(previous)
            handle = await self.loader.load(version)
        except Exception as exc:
            st.is_version_loading = False
            st.selected_version = st.current_board_version
            if isinstance(exc, VersionLoadFailure):
                logger.error(f"Version load failed: {exc}")
            else:
                logger.exception(f"Unexpected error while loading board version {version}")
            self.notifier.alert(f"Failed to load board version {version}.", "error", group="version")
            self._changed()
            return False
        self._library = handle
        st.current_board_version = version
        st.selected_version = version
        st.is_version_loading = False
        logger.info(f"Board version {version} active")
        self.bus.publish("session.version_loaded", version)
        return True

    def _after_load(self) -> None:
        # Edits made during the load were not scheduled
        if self.state.is_bound and self.state.is_dirty:
            self._schedule_autosave()
        self._changed()

    def _changed(self) -> None:
        self.bus.publish("session.changed", self.state)
