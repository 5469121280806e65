from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, Iterator


ADJUSTMENT_KINDS = ("additions", "deductions", "book_additions", "book_deductions")

STARTER_NARRATIONS = {
    "additions": ["Deposit-in-Transit", "Short Deposit"],
    "deductions": ["Outstanding Cheque", "Excess Deposit"],
    "book_additions": ["Bank Interest", "Remitted from other Accounts"],
    "book_deductions": ["Revenue stamps", "Bank Charged", "Fund Transfer"],
}


@dataclass
class AdjustmentItem:
    narration: str = ""
    # Raw user input; the calculator coerces it and validation reports it.
    amount: Any = Decimal("0")

    @classmethod
    def from_obj(cls, obj: Any) -> "AdjustmentItem":
        if isinstance(obj, dict):
            return cls(narration=obj.get("narration") or "", amount=obj.get("amount", Decimal("0")))
        return cls(narration=getattr(obj, "narration", "") or "", amount=getattr(obj, "amount", Decimal("0")))

    def as_dict(self) -> dict:
        return {"narration": self.narration, "amount": self.amount}


@dataclass
class AdjustmentList:
    """Ordered line items for one side/direction of a reconciliation.

    Items have no identity beyond their position; insertion order is the
    order shown on every export.
    """

    items: list[AdjustmentItem] = field(default_factory=list)

    @classmethod
    def of(cls, rows: Iterable[Any] | None) -> "AdjustmentList":
        return cls([AdjustmentItem.from_obj(r) for r in (rows or [])])

    @classmethod
    def starter(cls, kind: str) -> "AdjustmentList":
        return cls([AdjustmentItem(narration=n) for n in STARTER_NARRATIONS[kind]])

    def __iter__(self) -> Iterator[AdjustmentItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> AdjustmentItem:
        return self.items[index]

    def append(self, item: AdjustmentItem | None = None) -> AdjustmentItem:
        item = item or AdjustmentItem()
        self.items.append(item)
        return item

    def insert_after(self, index: int, item: AdjustmentItem | None = None) -> AdjustmentItem:
        if index < -1 or index >= len(self.items):
            raise IndexError(f"no item at position {index}")
        item = item or AdjustmentItem()
        self.items.insert(index + 1, item)
        return item

    def remove_at(self, index: int) -> AdjustmentItem:
        return self.items.pop(index)

    def update(self, index: int, narration: str | None = None, amount: Any = None) -> AdjustmentItem:
        item = self.items[index]
        if narration is not None:
            item.narration = narration
        if amount is not None:
            item.amount = amount
        return item

    def zeroed(self) -> "AdjustmentList":
        """Copy of the narrations with every amount reset to zero."""
        return AdjustmentList([AdjustmentItem(narration=i.narration, amount=Decimal("0")) for i in self.items])

    def as_dicts(self) -> list[dict]:
        return [i.as_dict() for i in self.items]
