"""Symbol catalog for the cluster slot: kinds, weights and lookup helpers."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Plain:
    value: int


@dataclass(frozen=True)
class BonusTrigger:
    pass


@dataclass(frozen=True)
class Multiplier:
    factor: int


@dataclass(frozen=True)
class BigSymbol:
    size: int


@dataclass(frozen=True)
class Symbol:
    id: str
    kind: object  # Plain | BonusTrigger | Multiplier | BigSymbol

    @property
    def is_clusterable(self) -> bool:
        kind = self.kind
        if isinstance(kind, Plain):
            return True
        if isinstance(kind, (BonusTrigger, Multiplier, BigSymbol)):
            return False
        raise TypeError(f"Unknown symbol kind {kind!r} for symbol {self.id}")

    @property
    def multiplier(self) -> int | None:
        kind = self.kind
        if isinstance(kind, Multiplier):
            return kind.factor
        if isinstance(kind, (Plain, BonusTrigger, BigSymbol)):
            return None
        raise TypeError(f"Unknown symbol kind {kind!r} for symbol {self.id}")

    @property
    def is_bonus_trigger(self) -> bool:
        kind = self.kind
        if isinstance(kind, BonusTrigger):
            return True
        if isinstance(kind, (Plain, Multiplier, BigSymbol)):
            return False
        raise TypeError(f"Unknown symbol kind {kind!r} for symbol {self.id}")


SYMBOLS = {
    "A": Symbol("A", Plain(1)),
    "B": Symbol("B", Plain(2)),
    "C": Symbol("C", Plain(3)),
    "D": Symbol("D", Plain(4)),
    "E": Symbol("E", Plain(5)),
    "KEY": Symbol("KEY", BonusTrigger()),
    "MULT_2X": Symbol("MULT_2X", Multiplier(2)),
    "MULT_3X": Symbol("MULT_3X", Multiplier(3)),
    # Big symbols are catalogued for the client but never generated on the grid.
    "BIG_2X2": Symbol("BIG_2X2", BigSymbol(2)),
    "BIG_3X3": Symbol("BIG_3X3", BigSymbol(3)),
}

# Relative weights; order matters for tie-breaking in the weighted draw.
SYMBOL_WEIGHTS = [
    ("A", 30),
    ("B", 25),
    ("C", 20),
    ("D", 15),
    ("E", 8),
    ("KEY", 1.5),
    ("MULT_2X", 0.4),
    ("MULT_3X", 0.1),
]


def get_symbol(symbol_id):
    symbol = SYMBOLS.get(symbol_id)
    if symbol is None:
        raise ValueError(f"Unknown symbol id '{symbol_id}'")
    return symbol
