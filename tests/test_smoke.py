import pytest
from pydantic import ValidationError
from typer.testing import CliRunner
from unittest.mock import patch
from boardide.config import Settings
from boardide.cli import app
from boardide.storage.documents import DocumentStore
from boardide.storage.kv import MemoryKeyValueStore
from boardide import share

runner = CliRunner()


@pytest.fixture(name="mem_store")
def mem_store_fixture():
    store = DocumentStore(MemoryKeyValueStore(), "EditorStorage:")
    with patch("boardide.cli._store", return_value=store):
        yield store


def test_settings_load():
    """Verify settings defaults."""
    settings = Settings()
    assert settings.STORAGE_PREFIX == "EditorStorage:"
    assert settings.OPEN_FILE_KEY == "editorOpenFileId"
    assert settings.AUTOSAVE_DELAY_MS == 2000
    assert settings.newest_board_version == settings.SUPPORTED_BOARD_VERSIONS[0]
    assert settings.db_url.endswith("boardide.db")


def test_settings_need_a_version():
    with pytest.raises(ValidationError):
        Settings(SUPPORTED_BOARD_VERSIONS=[" "])


def test_cli_doctor():
    """Verify the doctor command runs without error."""
    result = runner.invoke(app, ["doctor"])
    assert result.exit_code == 0
    assert "Board IDE Doctor" in result.stdout
    assert "EditorStorage:" in result.stdout


def test_cli_files_list(mem_store):
    result = runner.invoke(app, ["files", "list"])
    assert result.exit_code == 0
    assert "No files found" in result.stdout

    file_id = mem_store.create("blink.js", "blink()", "0.3.0")
    mem_store.create("other.js", "x")
    result = runner.invoke(app, ["files", "list", "--search", "BLI"])
    assert result.exit_code == 0
    assert file_id in result.stdout
    assert "other.js" not in result.stdout


def test_cli_show_and_rename(mem_store):
    file_id = mem_store.create("blink.js", "blink()")
    result = runner.invoke(app, ["files", "show", file_id])
    assert result.exit_code == 0
    assert "blink()" in result.stdout

    result = runner.invoke(app, ["files", "rename", file_id, "led.js"])
    assert result.exit_code == 0
    assert mem_store.load(file_id).name == "led.js"

    result = runner.invoke(app, ["files", "rename", file_id, "  "])
    assert result.exit_code == 1


def test_cli_show_missing(mem_store):
    result = runner.invoke(app, ["files", "show", "ghost"])
    assert result.exit_code == 1
    assert "not found" in result.stdout


def test_cli_delete(mem_store):
    file_id = mem_store.create("blink.js", "blink()")
    result = runner.invoke(app, ["files", "delete", file_id], input="n\n")
    assert result.exit_code != 0
    assert mem_store.load(file_id) is not None

    result = runner.invoke(app, ["files", "delete", file_id, "--yes"])
    assert result.exit_code == 0
    assert mem_store.load(file_id) is None


def test_cli_export_and_zip(mem_store, tmp_path):
    file_id = mem_store.create("notes", "hello")
    result = runner.invoke(app, ["files", "export", file_id, "--out", str(tmp_path)])
    assert result.exit_code == 0
    assert (tmp_path / "notes.js").read_text() == "hello"

    result = runner.invoke(app, ["files", "zip", "--out", str(tmp_path)])
    assert result.exit_code == 0
    assert len(list(tmp_path.glob("ide_files_*.zip"))) == 1


def test_cli_zip_empty_store(mem_store, tmp_path):
    result = runner.invoke(app, ["files", "zip", "--out", str(tmp_path)])
    assert result.exit_code == 1


def test_cli_share_round_trip(mem_store):
    file_id = mem_store.create("blink.js", "blink()", "0.3.0")
    result = runner.invoke(app, ["share", "encode", file_id, "--url", "http://localhost:8501/"])
    assert result.exit_code == 0
    url = result.stdout.strip()
    assert "?data=" in url

    result = runner.invoke(app, ["share", "decode", url])
    assert result.exit_code == 0
    assert "// board 0.3.0" in result.stdout
    assert "blink()" in result.stdout


def test_cli_share_decode_garbage():
    result = runner.invoke(app, ["share", "decode", "not-a-token"])
    assert result.exit_code == 1
    assert "Invalid share token" in result.stdout
