import asyncio
import pytest
from unittest.mock import patch
from boardide import share
from boardide.errors import QuotaExceeded
from conftest import OPEN_FILE_KEY, PREFIX


def _messages(controller, status=None):
    return [n.message for n in controller.notifier.drain() if status is None or n.status == status]


@pytest.fixture
def bound(controller):
    """Controller with an initialized session saved as demo.js."""
    asyncio.run(controller.initialize())
    file_id = controller.save_as("demo.js")
    controller.notifier.drain()
    return file_id


# ---------------------------------------------------------------------------
# initialization
# ---------------------------------------------------------------------------
def test_initialize_defaults_to_new_unbound_file(controller, loader):
    asyncio.run(controller.initialize())
    state = controller.state
    assert state.current_file_id is None
    assert state.current_board_version == "0.3.1"
    assert not state.is_dirty
    assert controller.can_run
    assert loader.loaded == ["0.3.1"]


def test_initialize_opens_handoff_file(controller, store, kv):
    file_id = store.create("blink.js", "blink()", "0.3.0")
    controller.handoff.offer(file_id)

    asyncio.run(controller.initialize())

    assert controller.state.current_file_id == file_id
    assert controller.editor.get_content() == "blink()"
    assert kv.get(OPEN_FILE_KEY) is None


def test_share_token_wins_over_handoff(controller, store, kv):
    file_id = store.create("blink.js", "blink()", "0.3.0")
    controller.handoff.offer(file_id)
    token = share.encode({"content": "shared()", "version": "0.2.4"})

    asyncio.run(controller.initialize(token))

    assert controller.state.current_file_id is None
    assert controller.editor.get_content() == "shared()"
    assert controller.state.current_board_version == "0.2.4"
    assert kv.get(OPEN_FILE_KEY) is None


def test_invalid_share_token_falls_back(controller):
    asyncio.run(controller.initialize("garbage"))
    assert controller.state.current_file_id is None
    assert controller.editor.get_content() == ""
    assert _messages(controller, "error") == ["The shared link is invalid or corrupted."]


def test_page_shown_requests_initialize(controller):
    controller.attach_pages("editor")
    controller.bus.publish("page.shown", "files")
    assert not controller.pending_initialize
    controller.bus.publish("page.shown", "editor")
    assert controller.pending_initialize
    asyncio.run(controller.initialize())
    assert not controller.pending_initialize


# ---------------------------------------------------------------------------
# opening files
# ---------------------------------------------------------------------------
def test_open_existing_file(controller, store, loader):
    file_id = store.create("blink.js", "blink()", "0.3.0")

    assert asyncio.run(controller.open_file(file_id))

    state = controller.state
    assert state.current_file_id == file_id
    assert state.current_file_name == "blink.js"
    assert state.current_board_version == "0.3.0"
    assert not state.is_dirty
    assert controller.editor.get_content() == "blink()"
    assert loader.loaded[-1] == "0.3.0"


def test_open_unknown_version_uses_newest(controller, store):
    file_id = store.create("old.js", "x", "0.0.1")
    asyncio.run(controller.open_file(file_id))
    assert controller.state.current_board_version == "0.3.1"
    assert any("unknown board version 0.0.1" in m for m in _messages(controller, "warning"))


def test_open_missing_resets_to_unbound(controller, bound):
    asyncio.run(controller.open_file("ghost"))
    assert controller.state.current_file_id is None
    assert not controller.state.is_dirty
    assert any("not found" in m for m in _messages(controller, "error"))


def test_open_corrupted_resets_to_unbound(controller, kv):
    kv.set(PREFIX + "bad", "{{{")
    assert not asyncio.run(controller.open_file("bad"))
    assert controller.state.current_file_id is None


def test_dirty_navigation_needs_confirmation(controller, store, bound):
    other = store.create("other.js", "other()")
    controller.editor.user_edit("unsaved")

    assert not asyncio.run(controller.open_file(other))
    assert controller.state.current_file_id == bound
    assert controller.editor.get_content() == "unsaved"

    prompts = []
    controller.confirm = lambda message: prompts.append(message) or True
    assert asyncio.run(controller.open_file(other))
    assert controller.state.current_file_id == other
    assert len(prompts) == 1


def test_new_from_template(controller):
    asyncio.run(controller.initialize())
    assert asyncio.run(controller.new_file("hello-board", version="0.3.0"))
    assert "Hello, board!" in controller.editor.get_content()
    assert controller.state.current_board_version == "0.3.0"
    assert controller.state.current_file_name is None


def test_unknown_template(controller):
    asyncio.run(controller.initialize())
    assert not asyncio.run(controller.new_file("nope"))
    assert _messages(controller, "error")


def test_load_external(controller):
    asyncio.run(controller.initialize())
    assert asyncio.run(controller.load_external("sketch.js", "sketch()"))
    assert controller.state.current_file_name == "sketch.js"
    assert controller.state.current_file_id is None
    assert not controller.state.is_dirty


# ---------------------------------------------------------------------------
# dirty tracking & autosave
# ---------------------------------------------------------------------------
def test_edit_marks_dirty_without_autosave_when_unbound(controller):
    asyncio.run(controller.initialize())
    controller.editor.user_edit("x")
    assert controller.state.is_dirty
    assert controller.state.pending_autosave is None


def test_autosave_debounce(controller, clock, bound):
    with patch.object(controller.store, "update", wraps=controller.store.update) as update:
        controller.editor.user_edit("const x = 1;")
        clock.advance(100)
        controller.editor.user_edit("const x = 2;")

        clock.advance(1900)
        controller.scheduler.run_due()
        update.assert_not_called()

        clock.advance(100)
        controller.scheduler.run_due()

    assert update.call_count == 1
    assert update.call_args.args[1]["content"] == "const x = 2;"
    assert not controller.state.is_dirty
    assert controller.state.last_saved_at == clock()
    assert controller.store.load(bound).content == "const x = 2;"


def test_autosave_rechecks_dirty_at_fire_time(controller, clock, bound):
    controller.editor.user_edit("v2")
    assert controller.state.pending_autosave is not None
    controller.state.is_dirty = False
    with patch.object(controller.store, "update", wraps=controller.store.update) as update:
        clock.advance(5000)
        controller.scheduler.run_due()
    update.assert_not_called()


def test_failed_autosave_stays_dirty(controller, clock, bound):
    controller.editor.user_edit("v2")
    with patch.object(controller.store, "update", side_effect=QuotaExceeded("Storage is full.")):
        clock.advance(2000)
        controller.scheduler.run_due()

    assert controller.state.is_dirty
    assert controller.state.pending_autosave is None
    assert any("Storage is full." in m for m in _messages(controller, "error"))


def test_save_requires_binding(controller):
    asyncio.run(controller.initialize())
    assert not controller.save()


# ---------------------------------------------------------------------------
# save as / export / share
# ---------------------------------------------------------------------------
def test_save_as_creates_new_identity(controller, bound):
    controller.editor.user_edit("copy")
    second = controller.save_as("copy.js")

    assert second and second != bound
    assert controller.state.current_file_id == second
    assert controller.state.current_file_name == "copy.js"
    assert not controller.state.is_dirty
    assert controller.state.pending_autosave is None
    record = controller.store.load(second)
    assert record.content == "copy"
    assert record.board_version == "0.3.1"


def test_save_as_empty_name_writes_nothing(controller):
    asyncio.run(controller.initialize())
    with patch.object(controller.store, "create") as create:
        assert controller.save_as("   ") is None
    create.assert_not_called()
    assert controller.state.current_file_id is None


def test_save_to_computer(controller, bound):
    controller.editor.user_edit("draw()")
    assert controller.save_to_computer() == "demo.js"
    item = controller.downloader.drain()[0]
    assert item.data == b"draw()"
    # session binding and dirty flag untouched
    assert controller.state.is_dirty
    assert controller.state.current_file_id == bound


def test_share_link_round_trip(controller, bound):
    controller.editor.user_edit("share me")
    url = controller.share_link("http://localhost:8501/editor")
    token = share.extract_share_token(url)
    payload = share.decode(token)
    assert payload.content == "share me"
    assert payload.version == "0.3.1"


# ---------------------------------------------------------------------------
# version loading
# ---------------------------------------------------------------------------
def test_version_change_marks_bound_session_dirty(controller, clock, loader, bound):
    assert asyncio.run(controller.change_version("0.3.0"))

    assert controller.state.current_board_version == "0.3.0"
    assert controller.state.is_dirty
    assert loader.unloaded == ["0.3.1"]

    clock.advance(2000)
    controller.scheduler.run_due()
    assert controller.store.load(bound).board_version == "0.3.0"


def test_same_version_is_noop(controller, loader, bound):
    assert not asyncio.run(controller.change_version("0.3.1"))
    assert loader.loaded == ["0.3.1"]
    assert not controller.state.is_dirty


def test_unsupported_version_leaves_state(controller, loader, bound):
    controller.editor.user_edit("draft")
    assert not asyncio.run(controller.change_version("9.9.9"))

    assert controller.state.current_board_version == "0.3.1"
    assert controller.state.selected_version == "0.3.1"
    assert controller.state.is_dirty
    assert controller.can_run


def test_failed_load_reverts_selection(controller, loader, bound):
    loader.fail.add("0.2.4")
    assert not asyncio.run(controller.change_version("0.2.4"))

    state = controller.state
    assert state.current_board_version == "0.3.1"
    assert state.selected_version == "0.3.1"
    assert not state.is_version_loading
    assert not state.is_dirty
    assert controller.store.load(bound).board_version == "0.3.1"
    assert any("0.2.4" in m for m in _messages(controller, "error"))


def test_unexpected_loader_error_keeps_session_usable(controller, loader, bound):
    with patch.object(loader, "load", side_effect=RuntimeError("script crashed")):
        assert not asyncio.run(controller.change_version("0.3.0"))

    state = controller.state
    assert not state.is_version_loading
    assert state.current_board_version == "0.3.1"
    assert state.selected_version == "0.3.1"
    assert any("0.3.0" in m for m in _messages(controller, "error"))

    # Later requests go through normally
    assert asyncio.run(controller.change_version("0.3.0"))
    assert controller.state.current_board_version == "0.3.0"
    assert controller.can_run


def test_unload_error_keeps_session_usable(controller, loader, bound):
    with patch.object(loader, "unload", side_effect=RuntimeError("cleanup failed")):
        assert not asyncio.run(controller.change_version("0.2.4"))
    assert not controller.state.is_version_loading
    assert controller.library is None
    assert controller.save_as("again.js")


def test_load_in_flight_rejects_changes_and_defers_autosave(controller, clock, loader, bound):
    async def scenario():
        loader.gate = asyncio.Event()
        task = asyncio.create_task(controller.change_version("0.3.0"))
        await asyncio.sleep(0)

        assert controller.state.is_version_loading
        assert not controller.can_run
        assert await controller.change_version("0.2.4") is False
        assert not await controller.open_file(bound)

        controller.editor.user_edit("edited during load")
        assert controller.state.is_dirty
        assert controller.state.pending_autosave is None

        loader.gate.set()
        assert await task is True

    asyncio.run(scenario())

    assert controller.state.pending_autosave is not None
    clock.advance(2000)
    controller.scheduler.run_due()
    record = controller.store.load(bound)
    assert record.content == "edited during load"
    assert record.board_version == "0.3.0"


def test_autosave_firing_during_load_is_skipped(controller, clock, loader, bound):
    async def scenario():
        controller.editor.user_edit("v2")
        loader.gate = asyncio.Event()
        task = asyncio.create_task(controller.change_version("0.3.0"))
        await asyncio.sleep(0)

        with patch.object(controller.store, "update", wraps=controller.store.update) as update:
            clock.advance(2000)
            assert controller.scheduler.run_due() == 1
        update.assert_not_called()

        loader.gate.set()
        await task

    asyncio.run(scenario())
    assert controller.state.is_dirty
    assert controller.state.pending_autosave is not None


# ---------------------------------------------------------------------------
# exit
# ---------------------------------------------------------------------------
def test_exit_unloads_and_resets(controller, loader, bound):
    exits = []
    controller.bus.subscribe("session.exit", exits.append)
    assert asyncio.run(controller.exit())
    assert loader.unloaded == ["0.3.1"]
    assert controller.state.current_file_id is None
    assert controller.library is None
    assert exits == [None]


def test_exit_blocked_while_dirty(controller, bound):
    controller.editor.user_edit("unsaved")
    assert not asyncio.run(controller.exit())
    assert controller.state.current_file_id == bound
