# search_cache.py
"""
Acceleratore di ricerca per accessi sequenziali.

Ricorda l'indice del segmento trovato all'ultima chiamata: le query
monotone crescenti (rendering campione per campione) costano O(1)
ammortizzato, il caso peggiore resta O(log n).

L'indice memorizzato non è mai considerato affidabile: viene sempre
rivalidato contro i dati correnti prima dell'uso, quindi le mutazioni
dei punti non richiedono invalidazione esplicita.
"""

from typing import Tuple
from envelopes.point_sequence import PointSequence


class SearchCache:
    """
    Cache dell'ultimo bracket trovato (indici, mai riferimenti ai punti).
    """

    def __init__(self):
        self.guess = -1

    def reset(self):
        self.guess = -1

    def _brackets(self, points: PointSequence, index: int, t: float) -> bool:
        size = len(points)
        if index < 0 or index >= size:
            return False
        return t >= points[index].t and (index + 1 == size or t < points[index + 1].t)

    def locate(self, points: PointSequence, t: float) -> Tuple[int, int]:
        """
        Trova gli indici che racchiudono t (tempo relativo).

        Returns:
            (lo, hi) con points[lo].t <= t < points[hi].t e hi == lo + 1;
            lo = -1 se t precede il primo punto, hi = len(points)
            se t è sull'ultimo punto o oltre.
        """
        # Fast path: bracket precedente e il suo successore
        if self._brackets(points, self.guess, t):
            return self.guess, self.guess + 1

        if self._brackets(points, self.guess + 1, t):
            self.guess += 1
            return self.guess, self.guess + 1

        lo = -1
        hi = len(points)

        # Invarianti: lo >= -1, hi <= size
        while hi > lo + 1:
            mid = (lo + hi) // 2
            if t < points[mid].t:
                hi = mid
            else:
                lo = mid

        self.guess = lo
        return lo, hi
