# control_point.py
"""
Value object per un punto di controllo dell'envelope.

Design Pattern: Value Object
- Immutabile: ogni spostamento crea un nuovo punto
- Tempo relativo all'origine dell'envelope proprietario
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class ControlPoint:
    """
    Coppia (t, value) nello spazio interno dell'envelope.

    Attributes:
        t: tempo relativo all'origine dell'envelope (secondi)
        value: valore del punto (in modo logaritmico sempre > 0)
    """
    t: float
    value: float

    def shifted(self, dt: float) -> 'ControlPoint':
        """Ritorna lo stesso punto traslato di dt nel tempo."""
        return replace(self, t=self.t + dt)

    def at(self, t: float) -> 'ControlPoint':
        """Ritorna lo stesso valore spostato al tempo t."""
        return replace(self, t=t)

    def as_tuple(self):
        return (self.t, self.value)
