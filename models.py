"""
models.py — Python dataclasses for the fertilizer ledger.

Maps to the SQLite tables created in database.py. Rows coming back from the
store are turned into these records through `from_row`, which rejects rows
with missing or mistyped fields instead of passing them on to the aggregator.
"""

from dataclasses import dataclass
from typing import Optional
from datetime import date

from date_windows import first_of_month, parse_date


class MalformedRecordError(ValueError):
    """A store row does not have the shape its record type requires."""


def _require(row, key):
    try:
        value = row[key]
    except (KeyError, IndexError):
        raise MalformedRecordError(f"Row is missing required field '{key}'")
    if value is None:
        raise MalformedRecordError(f"Row has NULL for required field '{key}'")
    return value


def _optional(row, key):
    try:
        return row[key]
    except (KeyError, IndexError):
        return None


def _as_date(row, key):
    value = _require(row, key)
    try:
        return parse_date(value)
    except (TypeError, ValueError):
        raise MalformedRecordError(f"Field '{key}' is not a date: {value!r}")


@dataclass
class Phase:
    """A planting phase grouping several blocks."""
    id: Optional[int] = None
    name: str = ""
    area: Optional[float] = None
    trees: Optional[int] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=int(_require(row, 'id')),
            name=str(_require(row, 'name')),
            area=_optional(row, 'area'),
            trees=_optional(row, 'trees'),
        )


@dataclass
class Block:
    """Field block within a phase. Label is numeric ("12") or alphabetic ("A")."""
    id: Optional[int] = None
    phase_id: int = 0
    label: str = ""
    area: Optional[float] = None
    trees: Optional[int] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=int(_require(row, 'id')),
            phase_id=int(_require(row, 'phase_id')),
            label=str(_require(row, 'label')),
            area=_optional(row, 'area'),
            trees=_optional(row, 'trees'),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'phase_id': self.phase_id,
            'label': self.label,
            'area': self.area,
            'trees': self.trees,
        }


@dataclass
class ProgramStartDate:
    """Anchor of a phase's program calendar (one per phase)."""
    id: Optional[int] = None
    phase_id: int = 0
    start_date: Optional[date] = None

    @classmethod
    def from_row(cls, row):
        return cls(
            id=int(_require(row, 'id')),
            phase_id=int(_require(row, 'phase_id')),
            start_date=_as_date(row, 'start_date'),
        )


@dataclass(frozen=True)
class YearlyApplication:
    """Per-palm amount of one fertilizer for one block in one program month."""
    id: Optional[int]
    phase_id: int
    block_id: int
    period_start: date
    fertilizer_name: str
    amount_per_palm: float

    @classmethod
    def from_row(cls, row):
        name = str(_require(row, 'fertilizer_name'))
        if not name.strip():
            raise MalformedRecordError("Row has an empty fertilizer_name")
        return cls(
            id=_optional(row, 'id'),
            phase_id=int(_require(row, 'phase_id')),
            block_id=int(_require(row, 'block_id')),
            period_start=first_of_month(_as_date(row, 'month')),
            fertilizer_name=name,
            amount_per_palm=float(_require(row, 'kilogram_amount')),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'phase_id': self.phase_id,
            'block_id': self.block_id,
            'period_start': self.period_start.isoformat(),
            'fertilizer_name': self.fertilizer_name,
            'amount_per_palm': self.amount_per_palm,
        }


@dataclass(frozen=True)
class DailyApplication:
    """Bagged fertilizer applied by one worker to one block on one day."""
    id: Optional[int]
    phase_id: int
    block_id: int
    date: date
    worker_name: str
    bag_size: int
    quantity: int

    @property
    def total_kg(self) -> int:
        return self.bag_size * self.quantity

    @classmethod
    def from_row(cls, row):
        name = str(_require(row, 'name'))
        if not name.strip():
            raise MalformedRecordError("Row has an empty worker name")
        return cls(
            id=_optional(row, 'id'),
            phase_id=int(_require(row, 'phase_id')),
            block_id=int(_require(row, 'block_id')),
            date=_as_date(row, 'date'),
            worker_name=name,
            bag_size=int(_require(row, 'bag')),
            quantity=int(_require(row, 'quantity')),
        )

    def to_dict(self):
        return {
            'id': self.id,
            'phase_id': self.phase_id,
            'block_id': self.block_id,
            'date': self.date.isoformat(),
            'worker_name': self.worker_name,
            'bag_size': self.bag_size,
            'quantity': self.quantity,
            'total_kg': self.total_kg,
        }
