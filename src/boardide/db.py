from sqlmodel import SQLModel, create_engine, Session
from boardide.config import settings
from boardide.logging import logger

DATA_DIR = settings.DATA_DIR
DB_URL = settings.db_url

engine = create_engine(DB_URL, echo=False)

def init_db(target_engine=None):
    target_engine = target_engine or engine
    if target_engine is engine and not DATA_DIR.exists():
        DATA_DIR.mkdir(parents=True, exist_ok=True)

    # Import table models so SQLModel knows about them before create_all
    from boardide.models import kv  # noqa: F401

    logger.info(f"Initializing database at {target_engine.url}")
    SQLModel.metadata.create_all(target_engine)

def get_session():
    with Session(engine) as session:
        yield session
