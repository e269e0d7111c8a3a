import sys
from pathlib import Path
from typing import Optional

import typer

from boardide import share
from boardide.config import settings
from boardide.errors import WorkspaceError
from boardide.logging import logger, get_session_id
from boardide.storage.files import DirectoryDownloader, build_zip_archive, zip_filename
from boardide.workspace import open_kv, open_store

app = typer.Typer(no_args_is_help=True)

@app.callback()
def main():
    """
    Board IDE workspace CLI.
    """
    pass

def _store():
    return open_store(open_kv())

@app.command(name="doctor")
def doctor():
    """
    Check configuration and environment health.
    """
    logger.info("Running doctor check...")

    print("\n🩺 Board IDE Doctor\n")

    print(f"Python: {sys.version.split()[0]}")
    print(f"Prefix: {sys.prefix}")
    print(f"Session ID: {get_session_id()}")

    print("\n[Configuration]")
    print(f"STORAGE_PREFIX:           {settings.STORAGE_PREFIX}")
    print(f"AUTOSAVE_DELAY_MS:        {settings.AUTOSAVE_DELAY_MS}")
    print(f"SUPPORTED_BOARD_VERSIONS: {', '.join(settings.SUPPORTED_BOARD_VERSIONS)}")
    print(f"BOARD_LIBRARY_URL:        {settings.BOARD_LIBRARY_URL}")
    print(f"STORAGE_QUOTA_BYTES:      {settings.STORAGE_QUOTA_BYTES}")

    data_dir = settings.DATA_DIR
    if data_dir.exists() and data_dir.is_dir():
        print(f"\n[Data Directory]          ✅ Found: {data_dir.absolute()}")
    else:
        print(f"\n[Data Directory]          ❌ Missing: {data_dir.absolute()} (run `boardide db init`)")

    print("\nDoctor check complete.")


db_app = typer.Typer(help="Database management commands.")
app.add_typer(db_app, name="db")

@db_app.command("init")
def init():
    """Initialize the database tables."""
    from boardide.db import init_db
    try:
        init_db()
        logger.info("Database initialized successfully.")
        print("✅ Database initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)


files_app = typer.Typer(help="Manage stored files.")
app.add_typer(files_app, name="files")

@files_app.command("list")
def list_files(search: Optional[str] = typer.Option(None, "--search", "-s", help="Filter by name")):
    """List stored files, newest first."""
    store = _store()
    files = store.search(search) if search else store.list_files()
    if not files:
        print("No files found matching your search." if search else "No files found in the IDE storage.")
        return
    print(f"Found {len(files)} file(s):")
    for f in files:
        print(f"{f.id}  {f.name}  [board {f.board_version or '-'}]")

@files_app.command("show")
def show(file_id: str):
    """Print a file's content."""
    try:
        record = _store().load(file_id)
    except WorkspaceError as e:
        print(f"❌ {e}")
        raise typer.Exit(code=1)
    if record is None:
        print(f"❌ File with ID {file_id} not found.")
        raise typer.Exit(code=1)
    print(record.content)

@files_app.command("rename")
def rename(file_id: str, new_name: str):
    """Rename a stored file."""
    try:
        record = _store().rename(file_id, new_name)
    except WorkspaceError as e:
        print(f"❌ Failed to rename file: {e}")
        raise typer.Exit(code=1)
    print(f'✅ File renamed to "{record.name}".')

@files_app.command("delete")
def delete(file_id: str, yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")):
    """Permanently delete a stored file."""
    if not yes and not typer.confirm("Are you sure you want to permanently delete this file?"):
        raise typer.Abort()
    _store().delete(file_id)
    print("✅ File deleted successfully.")

@files_app.command("export")
def export(file_id: str, out_dir: Path = typer.Option(Path("."), "--out", "-o", help="Target directory")):
    """Write a stored file to disk."""
    downloader = DirectoryDownloader(out_dir)
    try:
        filename = _store().export_file(file_id, downloader)
    except WorkspaceError as e:
        print(f"❌ Failed to download file: {e}")
        raise typer.Exit(code=1)
    print(f'✅ Downloaded "{filename}" to {downloader.written[0]}')

@files_app.command("zip")
def zip_all(out_dir: Path = typer.Option(Path("."), "--out", "-o", help="Target directory")):
    """Download every stored file as one ZIP archive."""
    store = _store()
    try:
        data, added, failed = build_zip_archive(store, [f.id for f in store.list_files()])
    except WorkspaceError as e:
        print(f"❌ Failed to create ZIP: {e}")
        raise typer.Exit(code=1)
    name = zip_filename()
    DirectoryDownloader(out_dir)(name, data)
    suffix = " Some files failed to load." if failed else ""
    print(f"✅ Downloaded {added} file(s) as {name}.{suffix}")

@files_app.command("clear")
def clear(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")):
    """Remove every stored file (maintenance)."""
    if not yes and not typer.confirm("Delete ALL stored files?"):
        raise typer.Abort()
    removed = _store().clear_all()
    print(f"✅ Removed {removed} file(s).")


share_app = typer.Typer(help="Create and read share links.")
app.add_typer(share_app, name="share")

@share_app.command("encode")
def share_encode(
    file_id: str,
    base_url: Optional[str] = typer.Option(None, "--url", help="Build a full link on this base URL"),
):
    """Print the share token (or link) for a stored file."""
    try:
        record = _store().load(file_id)
    except WorkspaceError as e:
        print(f"❌ {e}")
        raise typer.Exit(code=1)
    if record is None:
        print(f"❌ File with ID {file_id} not found.")
        raise typer.Exit(code=1)
    token = share.encode({
        "content": record.content,
        "version": record.board_version or settings.newest_board_version,
    })
    if isinstance(token, share.ShareFailure):
        print(f"❌ {token.message}")
        raise typer.Exit(code=1)
    print(share.build_share_url(base_url, token, settings.SHARE_PARAM_NAME) if base_url else token)

@share_app.command("decode")
def share_decode(token: str):
    """Print the content carried by a share token or link."""
    if "?" in token:
        token = share.extract_share_token(token, settings.SHARE_PARAM_NAME) or ""
    payload = share.decode(token)
    if isinstance(payload, share.ShareFailure):
        print(f"❌ Invalid share token: {payload.message}")
        raise typer.Exit(code=1)
    print(f"// board {payload.version}")
    print(payload.content)

if __name__ == "__main__":
    app()
