# point_sequence.py
"""
Contenitore ordinato dei ControlPoint.

Responsabilità:
- Mantenere l'ordine per tempo strettamente crescente
- Trovare posizioni di inserimento (binary search)
- Risolvere i tempi duplicati (replace, mai duplicate)
- Mutazioni posizionali e di range

Il clamp di tempo e valore è responsabilità dell'Envelope proprietario:
qui arrivano coppie già valide.
"""

from typing import List, Iterator, Tuple
from envelopes.control_point import ControlPoint


class PointSequence:
    """
    Lista ordinata di ControlPoint con manutenzione degli invarianti.

    Invariante (al termine di ogni operazione pubblica dell'Envelope):
        points[i].t < points[i + 1].t
    """

    def __init__(self, points: List[ControlPoint] = None):
        self._points: List[ControlPoint] = list(points) if points else []

    # -------------------------------------------------------------------------
    # ACCESSO
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, index: int) -> ControlPoint:
        return self._points[index]

    def __iter__(self) -> Iterator[ControlPoint]:
        return iter(self._points)

    def times(self) -> List[float]:
        return [p.t for p in self._points]

    def copy(self) -> 'PointSequence':
        return PointSequence(self._points)

    # -------------------------------------------------------------------------
    # RICERCA
    # -------------------------------------------------------------------------

    def equal_range(self, t: float, sample_time: float = 0.0) -> Tuple[int, int]:
        """
        Range di indici dei punti con tempo entro sample_time/2 da t.

        Binary search: se il range è vuoto indica comunque la posizione
        di inserimento.

        Args:
            t: tempo relativo
            sample_time: ampiezza della finestra (0 = match esatto)

        Returns:
            (begin, end) con end escluso
        """
        tolerance = sample_time / 2
        target = t - tolerance

        # lower_bound: primo punto con tempo >= target
        lo, hi = 0, len(self._points)
        while lo < hi:
            mid = (lo + hi) // 2
            if self._points[mid].t < target:
                lo = mid + 1
            else:
                hi = mid

        after = lo
        while after < len(self._points) and self._points[after].t <= t + tolerance:
            after += 1

        return lo, after

    # -------------------------------------------------------------------------
    # MUTAZIONI
    # -------------------------------------------------------------------------

    def insert_or_replace(self, t: float, value: float) -> int:
        """
        Inserisce un punto nella posizione ordinata, o sostituisce il valore
        del punto che ha esattamente lo stesso tempo.

        Returns:
            indice del punto inserito/modificato
        """
        begin, end = self.equal_range(t)
        if begin < end:
            # Tempo già presente: modifica, non duplicare
            self._points[begin] = ControlPoint(t, value)
        else:
            self._points.insert(begin, ControlPoint(t, value))
        return begin

    def insert_at(self, index: int, point: ControlPoint):
        self._points.insert(index, point)

    def delete_at(self, index: int) -> ControlPoint:
        return self._points.pop(index)

    def delete_range(self, begin: int, end: int):
        """Elimina i punti con indice in [begin, end)."""
        del self._points[begin:end]

    def replace_at(self, index: int, point: ControlPoint):
        self._points[index] = point

    def truncate(self, size: int):
        """Mantiene solo i primi size punti."""
        del self._points[size:]

    def clear(self):
        self._points.clear()

    def append_at_end(self, t: float, value: float):
        """
        Append per la costruzione da copia (punti già ordinati).

        Al massimo due punti possono condividere lo stesso tempo:
        in una sequenza di 3+ si eliminano quelli in mezzo, tenendo
        il primo e l'ultimo aggiunto.
        """
        self._points.append(ControlPoint(t, value))

        nn = len(self._points) - 1
        while nn >= 2 and self._points[nn - 2].t == t:
            del self._points[nn - 1]
            nn -= 1

    def shift_from(self, index: int, dt: float):
        """Trasla di dt tutti i punti da index in poi."""
        for i in range(index, len(self._points)):
            self._points[i] = self._points[i].shifted(dt)

    def map_times(self, func):
        """Applica func al tempo di ogni punto (func deve essere monotona)."""
        self._points = [p.at(func(p.t)) for p in self._points]

    def map_values(self, func):
        self._points = [ControlPoint(p.t, func(p.value)) for p in self._points]

    def collapse_equal_times(self) -> int:
        """
        Riduce ogni gruppo di punti con lo stesso tempo all'ultimo punto.

        Returns:
            numero di punti rimossi
        """
        kept: List[ControlPoint] = []
        for point in self._points:
            if kept and kept[-1].t == point.t:
                kept[-1] = point
            else:
                kept.append(point)
        removed = len(self._points) - len(kept)
        self._points = kept
        return removed

    def sort(self):
        """Ordinamento stabile per tempo."""
        self._points.sort(key=lambda p: p.t)

    def __repr__(self):
        return f"PointSequence({[p.as_tuple() for p in self._points]})"
