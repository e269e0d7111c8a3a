"""Wiring of the store, the handoff slot and the session controller from settings."""
from typing import Optional

from boardide.config import Settings, settings as default_settings
from boardide.session.controller import ConfirmFn, SessionController, refuse_discard
from boardide.session.editor import EditorBuffer
from boardide.session.events import EventBus, NotificationCenter
from boardide.session.loader import HttpLibraryLoader, VersionLoader
from boardide.session.scheduler import DeadlineScheduler
from boardide.storage.documents import DocumentStore
from boardide.storage.files import Downloader
from boardide.storage.kv import HandoffSlot, KeyValueStore, SqlKeyValueStore


def open_kv(engine=None, cfg: Settings = default_settings) -> KeyValueStore:
    if engine is None:
        from boardide.db import engine, init_db
        init_db()
    return SqlKeyValueStore(engine, quota_bytes=cfg.STORAGE_QUOTA_BYTES)


def open_store(kv: KeyValueStore, cfg: Settings = default_settings) -> DocumentStore:
    return DocumentStore(
        kv,
        cfg.STORAGE_PREFIX,
        max_content_bytes=cfg.MAX_CONTENT_BYTES,
        default_extension=cfg.DEFAULT_EXTENSION,
    )


def open_handoff(kv: KeyValueStore, cfg: Settings = default_settings) -> HandoffSlot:
    return HandoffSlot(kv, cfg.OPEN_FILE_KEY)


def build_controller(
    kv: KeyValueStore,
    *,
    cfg: Settings = default_settings,
    editor: Optional[EditorBuffer] = None,
    loader: Optional[VersionLoader] = None,
    scheduler: Optional[DeadlineScheduler] = None,
    bus: Optional[EventBus] = None,
    downloader: Optional[Downloader] = None,
    confirm: ConfirmFn = refuse_discard,
) -> SessionController:
    bus = bus or EventBus()
    return SessionController(
        open_store(kv, cfg),
        editor or EditorBuffer(),
        loader or HttpLibraryLoader(cfg.BOARD_LIBRARY_URL, timeout=cfg.LIBRARY_TIMEOUT_SECONDS),
        scheduler or DeadlineScheduler(),
        supported_versions=cfg.SUPPORTED_BOARD_VERSIONS,
        autosave_delay_ms=cfg.AUTOSAVE_DELAY_MS,
        notifier=NotificationCenter(bus=bus, default_duration_ms=cfg.ALERT_DURATION_MS),
        bus=bus,
        handoff=open_handoff(kv, cfg),
        downloader=downloader,
        confirm=confirm,
        share_param=cfg.SHARE_PARAM_NAME,
    )
