"""
POS cart.

Lines are identified by ``LineKey``: product, size, notes and the set of
add-on ids. Adding a configuration that matches an existing line increases
its quantity instead of creating a new line. Notes are compared verbatim, so
"No ice" and "no ice" stay on separate lines.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

from .exceptions import CartError, LineNotFound
from .pricing import money


@dataclass(frozen=True)
class AddOnChoice:
    id: int
    name: str
    price: Decimal

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'price': str(self.price)}

    @classmethod
    def from_dict(cls, data):
        return cls(id=data['id'], name=data['name'], price=Decimal(data['price']))


@dataclass(frozen=True)
class LineKey:
    product_id: int
    size: str
    notes: str = ''
    add_on_ids: Tuple[int, ...] = ()

    @classmethod
    def build(cls, product_id, size, notes=None, add_on_ids=()):
        return cls(
            product_id=int(product_id),
            size=size,
            notes=notes or '',
            add_on_ids=tuple(sorted(int(pk) for pk in add_on_ids)),
        )


@dataclass
class CartLine:
    product_id: int
    name: str
    size: str
    unit_price: Decimal
    quantity: int = 1
    notes: str = ''
    add_ons: Tuple[AddOnChoice, ...] = ()

    @property
    def key(self) -> LineKey:
        return LineKey.build(self.product_id, self.size, self.notes, [a.id for a in self.add_ons])

    @property
    def item_price(self) -> Decimal:
        return money(self.unit_price + sum((a.price for a in self.add_ons), Decimal('0')))

    @property
    def item_total(self) -> Decimal:
        return money(self.item_price * self.quantity)

    def to_dict(self):
        return {
            'product_id': self.product_id,
            'name': self.name,
            'size': self.size,
            'unit_price': str(self.unit_price),
            'quantity': self.quantity,
            'notes': self.notes,
            'add_ons': [a.to_dict() for a in self.add_ons],
            'item_price': str(self.item_price),
            'item_total': str(self.item_total),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            product_id=data['product_id'],
            name=data['name'],
            size=data['size'],
            unit_price=Decimal(data['unit_price']),
            quantity=int(data['quantity']),
            notes=data.get('notes', ''),
            add_ons=tuple(AddOnChoice.from_dict(a) for a in data.get('add_ons', [])),
        )


@dataclass
class Cart:
    lines: List[CartLine] = field(default_factory=list)

    def find(self, key: LineKey) -> Optional[CartLine]:
        for line in self.lines:
            if line.key == key:
                return line
        return None

    def _require(self, key: LineKey) -> CartLine:
        line = self.find(key)
        if line is None:
            raise LineNotFound()
        return line

    def add(self, product_id, name, size, unit_price, notes='', add_ons=(), quantity=1) -> CartLine:
        """Append a line, or merge into the line with the same configuration"""
        if quantity < 1:
            raise CartError('Quantity must be at least 1')
        candidate = CartLine(
            product_id=int(product_id),
            name=name,
            size=size,
            unit_price=money(unit_price),
            quantity=quantity,
            notes=notes or '',
            add_ons=tuple(add_ons),
        )
        existing = self.find(candidate.key)
        if existing is not None:
            existing.quantity += quantity
            return existing
        self.lines.append(candidate)
        return candidate

    def update_quantity(self, key: LineKey, quantity: int) -> Optional[CartLine]:
        """Set a line's quantity; zero or less removes the line"""
        line = self._require(key)
        if quantity <= 0:
            self.lines.remove(line)
            return None
        line.quantity = quantity
        return line

    def remove(self, key: LineKey) -> CartLine:
        line = self._require(key)
        self.lines.remove(line)
        return line

    def replace(self, key: LineKey, size, unit_price, notes='', add_ons=()) -> CartLine:
        """
        Reconfigure a line in place. If the new configuration matches another
        line, the two are merged and their quantities added.
        """
        line = self._require(key)
        position = self.lines.index(line)
        self.lines.remove(line)

        edited = CartLine(
            product_id=line.product_id,
            name=line.name,
            size=size,
            unit_price=money(unit_price),
            quantity=line.quantity,
            notes=notes or '',
            add_ons=tuple(add_ons),
        )
        existing = self.find(edited.key)
        if existing is not None:
            existing.quantity += edited.quantity
            return existing
        self.lines.insert(position, edited)
        return edited

    def clear(self):
        self.lines = []

    @property
    def is_empty(self):
        return not self.lines

    @property
    def total(self) -> Decimal:
        return money(sum((line.item_total for line in self.lines), Decimal('0')))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def to_dict(self):
        return {'lines': [line.to_dict() for line in self.lines]}

    @classmethod
    def from_dict(cls, data):
        if not data:
            return cls()
        return cls(lines=[CartLine.from_dict(line) for line in data.get('lines', [])])
