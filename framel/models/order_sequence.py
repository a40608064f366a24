from sqlmodel import SQLModel, Field


class OrderSequence(SQLModel, table=True):
    """Per-day counter behind order codes. One row per calendar day."""

    __tablename__ = "order_sequence"

    day: str = Field(primary_key=True)  # YYYYMMDD
    last_value: int = Field(default=0)
