from typing import List
from sqlmodel import Session, select
from boardide.config import settings
from boardide.db import engine, DATA_DIR
from boardide.models.kv import KeyValueEntry

def validate_versions() -> List[str]:
    """Validate the board library configuration."""
    errors = []
    if not settings.SUPPORTED_BOARD_VERSIONS:
        errors.append("No supported board versions configured.")
    if "{version}" not in settings.BOARD_LIBRARY_URL:
        errors.append("BOARD_LIBRARY_URL must contain a {version} placeholder.")
    return errors

def validate_data_dir() -> List[str]:
    """Validate data directory existence and permissions."""
    errors = []
    try:
        if not DATA_DIR.exists():
            DATA_DIR.mkdir(parents=True, exist_ok=True)

        # Test write
        test_file = DATA_DIR / ".write_test"
        test_file.touch()
        test_file.unlink()
    except Exception as e:
        errors.append(f"Cannot write to data directory {DATA_DIR}: {e}")

    return errors

def validate_db_connection() -> List[str]:
    """Validate database connection and basic query capability."""
    errors = []
    try:
        with Session(engine) as session:
            session.exec(select(KeyValueEntry).limit(1)).first()
    except Exception as e:
        errors.append(f"Database connection failed: {e}")

    return errors

def run_all_checks() -> List[str]:
    """Run all validation checks."""
    from boardide.db import init_db

    errors = []
    errors.extend(validate_versions())
    errors.extend(validate_data_dir())
    if not errors:
        init_db()
    errors.extend(validate_db_connection())
    return errors
