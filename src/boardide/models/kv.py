from sqlmodel import Field, SQLModel


class KeyValueEntry(SQLModel, table=True):
    """One slot of the origin-scoped key-value store."""
    __tablename__ = "kvstore"

    key: str = Field(primary_key=True)
    value: str
