import uuid
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import String, Integer, Date, DateTime, Text, ForeignKey, UniqueConstraint, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow
from .types import Money


class Statement(Base):
    __tablename__ = "statements"
    __table_args__ = (
        UniqueConstraint("user_id", "statement_id", name="uq_statements_user_statement_id"),
        Index("ix_statements_user_bank", "user_id", "bank_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    statement_id: Mapped[int] = mapped_column(Integer, nullable=False)

    bank_code: Mapped[str] = mapped_column(String(32), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    reconciliation_date: Mapped[date] = mapped_column(Date, nullable=False)
    reconciliation_month: Mapped[str] = mapped_column(String(32), nullable=False, default="")

    balance_as_per_bank: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))
    balance_as_per_book: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))

    # Stamped from the adjustment lists on every save
    total_additions: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))
    corrected_balance: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))
    total_book_additions: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))
    total_book_deductions: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))
    corrected_book_balance: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))
    difference: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    items: Mapped[list["StatementItem"]] = relationship(
        back_populates="statement",
        cascade="all, delete-orphan",
        order_by="StatementItem.position",
    )

    def items_of(self, kind: str) -> list["StatementItem"]:
        return [i for i in self.items if i.kind == kind]

    @property
    def additions(self) -> list["StatementItem"]:
        return self.items_of("additions")

    @property
    def deductions(self) -> list["StatementItem"]:
        return self.items_of("deductions")

    @property
    def book_additions(self) -> list["StatementItem"]:
        return self.items_of("book_additions")

    @property
    def book_deductions(self) -> list["StatementItem"]:
        return self.items_of("book_deductions")


class StatementItem(Base):
    __tablename__ = "statement_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    record_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("statements.id", ondelete="CASCADE"), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)  # additions|deductions|book_additions|book_deductions
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    narration: Mapped[str] = mapped_column(Text, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(Money(), nullable=False, default=Decimal("0"))

    statement: Mapped[Statement] = relationship(back_populates="items")
