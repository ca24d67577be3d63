# envelope.py
"""
Envelope: curva di controllo scalare, variabile nel tempo.

Funzione piecewise definita da punti (t, value) ordinati, interpolata in modo
lineare o log-lineare fra i punti, con estrapolazione piatta fuori dal range
dei punti.

Composizione:
- PointSequence: storage ordinato + invarianti
- SearchCache: lookup O(1) ammortizzato per accessi sequenziali
- envelope_interpolation: matematica del singolo segmento

Politica di errore (NO-THROW):
- Argomenti di costruzione incoerenti → ValueError (errore di programmazione)
- Mutazioni a runtime fuori range → clamp silenzioso (+ warning nel log)
- Le operazioni di editing di regione non falliscono mai e lasciano
  sempre l'envelope in uno stato valido.

Tempi: i metodi pubblici ricevono tempo ASSOLUTO (timeline esterna),
tranne quelli con suffisso _relative e le query
number_of_points_after / next_point_after, che lavorano nel tempo interno
dell'envelope ([0, length]).
"""

import math
import sys
from typing import Any, Iterator, List, Optional, Tuple

import numpy as np

from envelopes.control_point import ControlPoint
from envelopes.point_sequence import PointSequence
from envelopes.search_cache import SearchCache
from envelopes.envelope_interpolation import (
    interpolate,
    interpolate_points,
    interpolation_step,
    integrate_interpolated,
    integrate_inverse_interpolated,
    solve_integrate_inverse_interpolated,
)
from envelopes.envelope_config import (
    DEFAULT_SAMPLE_RATE,
    LOG_VALUE_FLOOR,
    EnvelopeConfig,
    epsilon_for_sample_rate,
)
from shared.logger import log_clamp_warning, log_envelope_warning, log_region_edit
from shared.utils import clamp

# Tempo di parcheggio di un drag target invalidato (fuori da ogni dominio)
_PARKED_TIME = sys.float_info.max


def _divide(numerator: float, value: float) -> float:
    """Divisione con la semantica IEEE: x / 0 = ±inf, 0 / 0 = nan."""
    if value == 0.0:
        if numerator == 0.0:
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / value


class Envelope:
    """
    Curva di controllo editabile (guadagno, velocità, equalizzazione...).

    Invarianti al termine di ogni operazione pubblica:
    1. punti ordinati per tempo strettamente crescente
    2. ogni tempo in [0, length]
    3. ogni valore in [min_value, max_value] (> 0 se logarithmic)
    4. default_value in [min_value, max_value]
    5. senza punti l'envelope vale default_value ovunque
    """

    def __init__(
        self,
        logarithmic: bool = False,
        min_value: float = 0.0,
        max_value: float = 1.0,
        default_value: float = 1.0,
        length: float = 0.0,
        offset: float = 0.0,
        epsilon: Optional[float] = None,
        name: str = 'envelope'
    ):
        """
        Args:
            logarithmic: interpolazione e integrazione in spazio logaritmico
            min_value, max_value: limiti di clamp del codominio
            default_value: valore senza punti (clampato nel range)
            length: dominio interno [0, length]
            offset: traslazione dal tempo interno al tempo assoluto
            epsilon: minima separazione fra punti distinti
                     (default: un periodo a DEFAULT_SAMPLE_RATE)
            name: identificativo usato nei log

        Raises:
            ValueError: se min_value > max_value, o se logarithmic con
                        max_value <= 0
        """
        if min_value > max_value:
            raise ValueError(f"min_value ({min_value}) > max_value ({max_value})")
        if logarithmic and max_value <= 0:
            raise ValueError(
                f"Envelope logaritmico richiede max_value > 0, ricevuto: {max_value}"
            )
        if epsilon is not None and epsilon <= 0:
            raise ValueError(f"epsilon deve essere > 0, ricevuto: {epsilon}")

        self.name = name
        self._logarithmic = bool(logarithmic)
        self._min_value = float(min_value)
        self._max_value = float(max_value)
        self._default_value = self._clamp_value(default_value)
        self._offset = float(offset)
        self._length = max(0.0, float(length))
        self.epsilon = (
            float(epsilon) if epsilon is not None
            else epsilon_for_sample_rate(DEFAULT_SAMPLE_RATE)
        )

        self._points = PointSequence()
        self._search = SearchCache()

        # Stato del collaboratore di editing interattivo
        self._drag_point = -1
        self._drag_point_valid = False

    # =========================================================================
    # COSTRUZIONE
    # =========================================================================

    @classmethod
    def from_config(cls, config: EnvelopeConfig) -> 'Envelope':
        return cls(
            logarithmic=config.logarithmic,
            min_value=config.min_value,
            max_value=config.max_value,
            default_value=config.default_value,
            length=config.length,
            offset=config.offset,
            epsilon=config.epsilon,
            name=config.name
        )

    @classmethod
    def from_envelope(cls, orig: 'Envelope', t0: Optional[float] = None,
                      t1: Optional[float] = None) -> 'Envelope':
        """
        Copia completa, o parziale sulla finestra assoluta [t0, t1].

        Nella copia parziale i punti di bordo sono sintetizzati per
        interpolazione, così gli estremi della copia valgono esattamente
        quanto la sorgente in quei tempi.
        """
        env = cls(
            logarithmic=orig._logarithmic,
            min_value=orig._min_value,
            max_value=orig._max_value,
            default_value=orig._default_value,
            epsilon=orig.epsilon,
            name=orig.name
        )

        if t0 is None and t1 is None:
            env._offset = orig._offset
            env._length = orig._length
            env._copy_range(orig, 0, len(orig._points))
        else:
            if t0 is None:
                t0 = orig._offset
            if t1 is None:
                t1 = orig._offset + orig._length
            env._offset = max(t0, orig._offset)
            env._length = max(0.0, min(t1, orig._offset + orig._length) - env._offset)

            begin = orig._points.equal_range(t0 - orig._offset)[0]
            end = orig._points.equal_range(t1 - orig._offset)[1]
            env._copy_range(orig, begin, end)

        env._points.collapse_equal_times()
        return env

    def copy(self) -> 'Envelope':
        return Envelope.from_envelope(self)

    def _copy_range(self, orig: 'Envelope', begin: int, end: int):
        # Punto in 0 se serve una rappresentazione interpolata
        if begin > 0:
            self._points.append_at_end(0.0, orig.value_at(self._offset))

        for i in range(begin, end):
            point = orig._points[i]
            when = point.t + (orig._offset - self._offset)
            self._points.append_at_end(when, point.value)

        # Punto finale interpolato (se l'ultimo punto era esattamente
        # al bordo, lo duplica e collapse_equal_times lo riduce)
        if self._length > 0 and end < len(orig._points):
            self._points.append_at_end(
                self._length, orig.value_at(self._offset + self._length)
            )

    @staticmethod
    def is_envelope_like(obj: Any) -> bool:
        """True se obj è un Envelope o dati grezzi di breakpoints."""
        from envelopes.envelope_builder import EnvelopeBuilder
        if isinstance(obj, Envelope):
            return True
        return EnvelopeBuilder.is_breakpoint_data(obj)

    # =========================================================================
    # PROPRIETÀ
    # =========================================================================

    @property
    def logarithmic(self) -> bool:
        return self._logarithmic

    @property
    def min_value(self) -> float:
        return self._min_value

    @property
    def max_value(self) -> float:
        return self._max_value

    @property
    def default_value(self) -> float:
        return self._default_value

    @property
    def offset(self) -> float:
        return self._offset

    @property
    def length(self) -> float:
        return self._length

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, index: int) -> ControlPoint:
        return self._points[index]

    def __iter__(self) -> Iterator[ControlPoint]:
        return iter(self._points)

    def __repr__(self):
        mode = 'log' if self._logarithmic else 'linear'
        return (
            f"Envelope(name={self.name!r}, {mode}, "
            f"range=[{self._min_value}, {self._max_value}], "
            f"offset={self._offset:.3f}, length={self._length:.3f}, "
            f"points={len(self._points)})"
        )

    # =========================================================================
    # CLAMP
    # =========================================================================

    def _value_floor(self) -> float:
        if self._logarithmic:
            return max(self._min_value, LOG_VALUE_FLOOR)
        return self._min_value

    def _clamp_value(self, value: float) -> float:
        lo = self._value_floor()
        hi = max(self._max_value, lo)
        if math.isnan(value):
            return lo
        return clamp(float(value), lo, hi)

    def _clamp_time(self, t: float) -> float:
        return clamp(float(t), 0.0, self._length)

    def _insert(self, t: float, value: float) -> int:
        """insert_or_replace con clamp silenzioso (uso interno)."""
        return self._points.insert_or_replace(self._clamp_time(t), self._clamp_value(value))

    # =========================================================================
    # MUTAZIONE DEI PUNTI
    # =========================================================================

    def insert_or_replace_relative(self, t: float, value: float) -> int:
        """
        Aggiunge un punto al tempo interno t, o sostituisce il valore
        del punto che ha esattamente quel tempo.

        Tempo e valore vengono clampati nel dominio/codominio.

        Returns:
            indice del punto nella sequenza
        """
        clamped_t = self._clamp_time(t)
        if abs(clamped_t - t) > self.epsilon:
            log_clamp_warning(self.name, 't', t, clamped_t, 0.0, self._length)

        clamped_value = self._clamp_value(value)
        if clamped_value != value:
            log_clamp_warning(
                self.name, 'value', value, clamped_value,
                self._value_floor(), self._max_value
            )

        return self._points.insert_or_replace(clamped_t, clamped_value)

    def insert_or_replace(self, t: float, value: float) -> int:
        """Come insert_or_replace_relative, con t assoluto."""
        return self.insert_or_replace_relative(t - self._offset, value)

    def insert_at(self, index: int, point: ControlPoint):
        """
        Inserimento posizionale grezzo: il chiamante garantisce che index
        mantenga l'ordinamento. Il valore viene comunque clampato.
        """
        self._points.insert_at(
            index, ControlPoint(self._clamp_time(point.t), self._clamp_value(point.value))
        )

    def delete_at(self, index: int) -> ControlPoint:
        return self._points.delete_at(index)

    def reassign(self, when: float, value: float) -> int:
        """
        Cambia il valore del punto esattamente al tempo assoluto when.

        Returns:
            0 se il punto esiste, -1 altrimenti
        """
        begin, end = self._points.equal_range(when - self._offset)
        if begin == end:
            return -1
        point = self._points[begin]
        self._points.replace_at(begin, ControlPoint(point.t, self._clamp_value(value)))
        return 0

    def flatten(self, value: float):
        """Rimuove tutti i punti: curva piatta al valore dato."""
        self._points.clear()
        self._default_value = self._clamp_value(value)
        self._clear_drag_state()

    def set_offset(self, offset: float):
        self._offset = float(offset)

    def set_logarithmic(self, logarithmic: bool):
        if logarithmic and self._max_value <= 0:
            raise ValueError(
                f"Envelope logaritmico richiede max_value > 0, ricevuto: {self._max_value}"
            )
        self._logarithmic = bool(logarithmic)
        # In modo logaritmico i valori devono restare > 0
        self._default_value = self._clamp_value(self._default_value)
        self._points.map_values(self._clamp_value)

    def set_range(self, min_value: float, max_value: float):
        """
        Nuovo range: i valori esistenti vengono CLAMPATI (non rimappati).
        Vedi rescale_values per il rimappaggio affine.
        """
        if min_value > max_value:
            raise ValueError(f"min_value ({min_value}) > max_value ({max_value})")
        if self._logarithmic and max_value <= 0:
            raise ValueError(
                f"Envelope logaritmico richiede max_value > 0, ricevuto: {max_value}"
            )
        self._min_value = float(min_value)
        self._max_value = float(max_value)
        self._default_value = self._clamp_value(self._default_value)
        self._points.map_values(self._clamp_value)
        log_region_edit(self.name, 'set_range', min=self._min_value, max=self._max_value)

    def rescale_values(self, min_value: float, max_value: float):
        """
        Nuovo range: default e punti vengono RIMAPPATI in modo affine
        dal vecchio [min, max] al nuovo.
        """
        if min_value > max_value:
            raise ValueError(f"min_value ({min_value}) > max_value ({max_value})")
        if self._logarithmic and max_value <= 0:
            raise ValueError(
                f"Envelope logaritmico richiede max_value > 0, ricevuto: {max_value}"
            )
        old_min = self._min_value
        old_span = self._max_value - self._min_value
        self._min_value = float(min_value)
        self._max_value = float(max_value)
        new_span = self._max_value - self._min_value

        def remap(value):
            # Range degenere: tutto sul nuovo minimo
            factor = (value - old_min) / old_span if old_span != 0 else 0.0
            return self._clamp_value(self._min_value + new_span * factor)

        self._default_value = remap(self._default_value)
        self._points.map_values(remap)
        log_region_edit(self.name, 'rescale_values', min=self._min_value, max=self._max_value)

    # =========================================================================
    # VALUTAZIONE
    # =========================================================================

    def locate(self, t: float) -> Tuple[int, int]:
        """Bracket (lo, hi) del tempo interno t. Vedi SearchCache.locate."""
        return self._search.locate(self._points, t)

    def value_at(self, t: float) -> float:
        """Valore dell'envelope al tempo assoluto t."""
        return self.value_at_relative(t - self._offset)

    def value_at_relative(self, t: float) -> float:
        n = len(self._points)
        if n == 0:
            return self._default_value

        first = self._points[0]
        if t <= first.t or math.isnan(t):
            return first.value

        last = self._points[n - 1]
        if t >= last.t:
            return last.value

        lo, hi = self.locate(t)
        p_lo = self._points[lo]
        p_hi = self._points[hi]
        return interpolate(p_lo.t, p_lo.value, p_hi.t, p_hi.value, t, self._logarithmic)

    def values_at(self, t0: float, count: int, tstep: float) -> np.ndarray:
        """
        Valuta count tempi equispaziati a partire dal tempo assoluto t0.
        """
        return self.values_at_relative(t0 - self._offset, count, tstep)

    def values_at_relative(self, t0: float, count: int, tstep: float) -> np.ndarray:
        """
        Valutazione bufferizzata.

        Fra due ricerche il valore avanza per passi costanti: additivi in
        modo lineare, moltiplicativi in modo logaritmico. Nessuna chiamata
        trascendente per campione.
        """
        buffer = np.empty(max(0, int(count)), dtype=float)
        n = len(self._points)

        t = t0
        tnext = 0.0
        vstep = 0.0
        located = False

        for b in range(len(buffer)):
            if n == 0:
                buffer[b] = self._default_value
                t += tstep
                continue

            # Estrapolazione piatta
            if t <= self._points[0].t or math.isnan(t):
                buffer[b] = self._points[0].value
                located = False
                t += tstep
                continue
            if t >= self._points[n - 1].t:
                buffer[b] = self._points[n - 1].value
                located = False
                t += tstep
                continue

            if not located or t > tnext:
                lo, hi = self.locate(t)
                p_lo = self._points[lo]
                p_hi = self._points[hi]
                tnext = p_hi.t
                buffer[b] = interpolate(
                    p_lo.t, p_lo.value, p_hi.t, p_hi.value, t, self._logarithmic
                )
                vstep = interpolation_step(
                    p_lo.value, p_hi.value, p_hi.t - p_lo.t, tstep, self._logarithmic
                )
                located = True
            elif self._logarithmic:
                buffer[b] = buffer[b - 1] * vstep
            else:
                buffer[b] = buffer[b - 1] + vstep

            t += tstep

        return buffer

    def number_of_points_after(self, t: float) -> int:
        """Numero di punti con tempo interno > t."""
        lo, hi = self.locate(t)
        return len(self._points) - hi

    def next_point_after(self, t: float) -> float:
        """Tempo interno del primo punto dopo t (t stesso se non esiste)."""
        lo, hi = self.locate(t)
        if hi >= len(self._points):
            return t
        return self._points[hi].t

    # =========================================================================
    # COLLABORATORI: SERIALIZZAZIONE E RENDERING
    # =========================================================================

    def point_count(self) -> int:
        return len(self._points)

    def point_at(self, index: int) -> Tuple[float, float]:
        """(t, value) del punto index, t nel tempo interno."""
        return self._points[index].as_tuple()

    def get_points(self) -> List[Tuple[float, float]]:
        """Lista di (t, value) con t in tempo assoluto."""
        return [(p.t + self._offset, p.value) for p in self._points]

    def begin_load(self, expected_count: int = 0):
        """Inizio caricamento: svuota i punti (expected_count è solo un hint)."""
        self._points.clear()
        self._clear_drag_state()

    def append_loaded_point(self, t: float, value: float):
        self._points.append_at_end(float(t), self._clamp_value(value))

    def end_load(self):
        """
        Fine caricamento: ripristina gli invarianti.

        - ordinamento stabile per tempo
        - tempi negativi clampati a 0, length estesa fino all'ultimo punto
        - punti allo stesso tempo ridotti all'ultimo
        """
        if not len(self._points):
            return
        self._points.sort()
        self._points.map_times(lambda t: max(0.0, t))
        last_t = self._points[len(self._points) - 1].t
        if last_t > self._length:
            self._length = last_t
        removed = self._points.collapse_equal_times()
        if removed:
            log_envelope_warning(
                self.name, f"end_load: rimossi {removed} punti con tempo duplicato"
            )

    # =========================================================================
    # COLLABORATORE: EDITING INTERATTIVO
    # =========================================================================

    @property
    def highlighted_index(self) -> int:
        """Indice del punto trascinato (-1 se nessuno)."""
        return self._drag_point

    @property
    def drag_target_valid(self) -> bool:
        return self._drag_point_valid

    def _clear_drag_state(self):
        self._drag_point = -1
        self._drag_point_valid = False

    def set_drag_target(self, index: int):
        self._drag_point = max(-1, min(len(self._points) - 1, index))
        self._drag_point_valid = self._drag_point >= 0

    def invalidate_drag_target(self):
        """
        Marca il punto trascinato per la cancellazione al commit.

        La curva mostra subito l'effetto della cancellazione: il punto si
        sovrappone al vicino destro, oppure (se è l'ultimo) viene parcheggiato
        fuori dal dominio con il valore del vicino sinistro, o il default se
        è l'unico punto. Stato temporaneo: move_drag_target lo riporta nel
        dominio, commit_or_delete_drag_target lo elimina.
        """
        self._drag_point_valid = False
        index = self._drag_point
        size = len(self._points)
        if index < 0 or index >= size:
            return

        if size == 1:
            parked = ControlPoint(_PARKED_TIME, self._default_value)
        elif index + 1 == size:
            parked = ControlPoint(_PARKED_TIME, self._points[index - 1].value)
        else:
            neighbour = self._points[index + 1]
            parked = ControlPoint(neighbour.t, neighbour.value)
        self._points.replace_at(index, parked)

    def move_drag_target(self, new_time: float, new_value: float):
        """
        Sposta il punto trascinato al tempo assoluto new_time.

        Il tempo resta strettamente fra i vicini (ad almeno epsilon, se
        c'è spazio) e dentro [0, length]. No-op senza target valido.
        """
        index = self._drag_point
        if index < 0 or index >= len(self._points):
            self._drag_point_valid = False
            return
        self._drag_point_valid = True

        has_prev = index > 0
        has_next = index + 1 < len(self._points)
        limit_lo = 0.0
        limit_hi = self._length
        if has_prev:
            limit_lo = max(limit_lo, self._points[index - 1].t)
        if has_next:
            limit_hi = min(limit_hi, self._points[index + 1].t)

        tt = clamp(new_time - self._offset, limit_lo, limit_hi)
        middle = (limit_lo + limit_hi) / 2
        if has_prev and tt <= limit_lo:
            tt = min(limit_lo + self.epsilon, middle)
        if has_next and tt >= limit_hi:
            tt = max(limit_hi - self.epsilon, middle)

        value = self._clamp_value(new_value)
        if value != new_value:
            log_clamp_warning(
                self.name, 'value', new_value, value, self._value_floor(), self._max_value
            )
        self._points.replace_at(index, ControlPoint(tt, value))

    def commit_or_delete_drag_target(self):
        """Fine trascinamento: elimina il punto se era stato invalidato."""
        if not self._drag_point_valid and 0 <= self._drag_point < len(self._points):
            self._points.delete_at(self._drag_point)
        self._clear_drag_state()

    def find_or_create_nearest(self, time: float, value: float,
                               tolerance: Optional[float] = None) -> int:
        """
        Seleziona il punto più vicino al tempo assoluto time (entro
        tolerance, default epsilon) o ne crea uno nuovo; il punto diventa
        il drag target.

        Returns:
            indice del punto selezionato/creato
        """
        if tolerance is None:
            tolerance = self.epsilon
        when = time - self._offset

        begin, end = self._points.equal_range(when, 2 * tolerance)
        if begin < end:
            index = min(range(begin, end), key=lambda i: abs(self._points[i].t - when))
        else:
            index = self.insert_or_replace_relative(when, value)

        self.set_drag_target(index)
        return index

    # =========================================================================
    # EDITING DI REGIONE (NO-FAIL)
    # =========================================================================

    def _nudge_point(self, index: int, dt: float) -> int:
        """Sposta un punto di dt senza mai creare tempi duplicati."""
        point = self._points.delete_at(index)
        return self._insert(point.t + dt, point.value)

    def collapse_region(self, t0: float, t1: float):
        """
        Elimina la regione assoluta [t0, t1] chiudendo il buco.

        I punti strettamente interni vengono rimossi, quelli successivi
        traslati a sinistra di (t1 - t0), length si riduce. Il limite
        sinistro in t0 e quello destro in t1 vengono preservati con punti
        sintetizzati, salvo a ridosso dei bordi del dominio (entro epsilon).
        """
        self.commit_or_delete_drag_target()
        epsilon = self.epsilon
        t0 = self._clamp_time(t0 - self._offset)
        t1 = self._clamp_time(t1 - self._offset)
        if t1 < t0:
            t0, t1 = t1, t0
        if t1 == t0:
            return

        # Inizio del range di punti da rimuovere
        begin, after = self._points.equal_range(t0)
        left_kept = False
        if begin == after:
            if t0 > epsilon:
                # Nessun punto esattamente in t0: preserva il valore
                self._points.insert_or_replace(t0, self.value_at_relative(t0))
                begin += 1
                left_kept = True
        else:
            # Teniamo il (primo) punto in t0
            begin += 1
            left_kept = True

        # end: uno oltre l'ultimo punto da rimuovere
        first, end = self._points.equal_range(t1)
        right_kept = False
        if first == end:
            if self._length - t1 > epsilon:
                self._points.insert_or_replace(t1, self.value_at_relative(t1))
                # end è ora l'indice del nuovo punto
                right_kept = True
        else:
            # Teniamo l'ultimo punto in t1
            end -= 1
            right_kept = True

        removed = max(0, end - begin)
        self._points.delete_range(begin, end)

        delta = t1 - t0
        self._points.shift_from(begin, -delta)
        self._length = max(0.0, self._length - delta)

        if left_kept and right_kept and begin < len(self._points):
            self._resolve_seam(begin, t0)

        # Lo shift può lasciare l'ultimo punto un ulp oltre la nuova length
        self._points.map_times(self._clamp_time)
        self._clear_drag_state()
        log_region_edit(
            self.name, 'collapse_region',
            t0=t0, t1=t1, removed=removed, length=self._length
        )

    def _resolve_seam(self, index: int, t0: float):
        """
        Dopo un collapse i punti di limite sinistro (index - 1) e destro
        (index) cadono entrambi in t0: un solo punto per tempo.
        """
        left = self._points[index - 1]
        right = self._points.delete_at(index)
        if right.value == left.value:
            return

        when = max(t0, left.t) + self.epsilon
        # Sul bordo finale non c'è spazio: resta il limite sinistro
        if when <= self._length:
            self._insert(when, right.value)

    def insert_space(self, t0: float, tlen: float):
        """
        Inserisce tlen di tempo piatto al tempo assoluto t0.

        Fuori da [t0, t0 + tlen] la curva resta invariata; dentro vale
        costantemente il valore che aveva in t0.
        """
        self.commit_or_delete_drag_target()
        t0 = self._clamp_time(t0 - self._offset)
        tlen = max(0.0, float(tlen))
        if tlen == 0.0:
            return

        # Preserva il limite sinistro nello split
        value = self.value_at_relative(t0)
        begin, end = self._points.equal_range(t0)
        if begin < end:
            index = begin + 1
        else:
            index = 1 + self._points.insert_or_replace(t0, value)

        self._points.shift_from(index, tlen)

        # Prima di _insert: il clamp deve vedere il dominio esteso
        self._length += tlen
        # Preserva il limite destro
        self._insert(t0 + tlen, value)

        self._clear_drag_state()
        log_region_edit(self.name, 'insert_space', t0=t0, tlen=tlen, length=self._length)

    def paste(self, t0: float, other: 'Envelope'):
        """
        Inserisce i punti di other al tempo assoluto t0; length cresce
        di other.length.

        La curva risultante è continua col valore di questo envelope a
        sinistra di t0 e coi valori di bordo di other a destra, senza
        punti duplicati. Precondizione: t0 dentro il dominio; un t0 prima
        dell'inizio salta il bracketing (no-op esplicito).
        """
        self.commit_or_delete_drag_target()
        was_empty = len(self._points) == 0

        if len(other._points) == 0 and was_empty and other._default_value == self._default_value:
            # Nulla da inserire: l'envelope si allunga soltanto
            self._length += other._length
            log_region_edit(self.name, 'paste', t0=t0, points=0, length=self._length)
            return

        # Letture da other prima di qualsiasi modifica (other può essere self)
        delta = other._length
        source_points = [p.as_tuple() for p in other._points]
        left_value = other.value_at(other._offset)
        right_value = other.value_at(other._offset + other._length)

        t0 = min(t0 - self._offset, self._length)
        epsilon = self.epsilon

        if not was_empty:
            split_value = self.value_at_relative(t0)

            some_to_shift = False
            on_point = False
            pos = 0
            for i, point in enumerate(self._points):
                if point.t > t0:
                    some_to_shift = True
                else:
                    pos = i  # ultimo punto non traslato
                    if abs(point.t - t0) < epsilon:
                        on_point = True

            at_start = t0 < epsilon
            at_end = (self._length - t0) < epsilon
            before_start = t0 < 0

            if before_start:
                # Precondizione violata: nessun bracketing
                log_envelope_warning(
                    self.name, f"paste: t0={t0:.6f} precede l'inizio del dominio"
                )
            elif at_start:
                if on_point:
                    # Sposta a destra il punto in t0: niente duplicati
                    self._nudge_point(pos, epsilon)
                else:
                    self._insert(t0 + epsilon, split_value)
                some_to_shift = True
            elif at_end:
                if on_point:
                    self._nudge_point(pos, -epsilon)
                else:
                    self._insert(t0 - epsilon, split_value)
            elif on_point:
                # Punto spostato a sinistra, nuovo punto a destra
                self._nudge_point(pos, -epsilon)
                self._insert(t0 + epsilon, split_value)
                some_to_shift = True
            else:
                # Punti ai due lati dello split
                self._insert(t0 - epsilon, split_value)
                self._insert(t0 + epsilon, split_value)
                some_to_shift = True

            if some_to_shift:
                begin = self._points.equal_range(t0)[1]
                self._points.shift_from(begin, delta)
            self._length += delta
        else:
            if self._length == 0:
                # Nuovo envelope
                self._length = other._length
                self._offset = other._offset
            else:
                self._length += other._length

        if not was_empty:
            # Bordi di other, nel caso non siano punti letterali di other
            self._insert(t0, left_value)
            self._insert(t0 + delta, right_value)

        for t, value in source_points:
            self._insert(t0 + t, value)

        self._clear_drag_state()
        log_region_edit(
            self.name, 'paste',
            t0=t0, points=len(source_points), length=self._length
        )

    def remove_unneeded_points(self, time: Optional[float] = None, tolerance: float = 0.0):
        """
        Elimina i punti la cui rimozione cambia la curva (nel loro tempo)
        di non più di tolerance.

        Scansione da sinistra a destra, ripetuta finché non rimuove più
        nulla. Con time (assoluto, >= 0) considera solo i punti entro
        2 * epsilon da time.

        Returns:
            numero di punti rimossi
        """
        self.commit_or_delete_drag_target()
        window = 2 * self.epsilon
        total_removed = 0

        while True:
            removed = 0
            i = 0
            while i < len(self._points):
                point = self._points[i]
                if time is not None and time >= 0:
                    if abs(point.t + self._offset - time) > window:
                        i += 1
                        continue

                self._points.delete_at(i)  # prova senza il punto
                without = self.value_at_relative(point.t)
                if abs(point.value - without) > tolerance:
                    # Serviva: rimettilo
                    self._points.insert_at(i, point)
                    i += 1
                else:
                    removed += 1

            total_removed += removed
            if removed == 0:
                break

        if total_removed:
            self._clear_drag_state()
            log_region_edit(
                self.name, 'remove_unneeded_points',
                removed=total_removed, tolerance=tolerance
            )
        return total_removed

    def rescale_times(self, new_length: float):
        """
        Scala uniformemente i tempi dei punti a new_length (time-stretch
        della timeline controllata).
        """
        self.commit_or_delete_drag_target()
        new_length = max(0.0, float(new_length))
        if self._length == 0:
            self._points.map_times(lambda t: 0.0)
        else:
            ratio = new_length / self._length
            self._points.map_times(lambda t: min(t * ratio, new_length))
        self._length = new_length

        # Con ratio 0 (o length 0) tutti i punti coincidono
        self._points.collapse_equal_times()
        self._clear_drag_state()
        log_region_edit(self.name, 'rescale_times', length=self._length)

    def set_length(self, new_length: float):
        """
        Tronca o estende il dominio. Troncando preserva il limite destro
        nel nuovo bordo con un punto sintetizzato.
        """
        self.commit_or_delete_drag_target()
        new_length = max(0.0, float(new_length))
        need_point = new_length < self._length and len(self._points) > 0
        value = self.value_at_relative(new_length) if need_point else None

        self._length = new_length
        self._points.truncate(self._points.equal_range(new_length)[1])

        if need_point:
            self._points.insert_or_replace(new_length, value)

        self._clear_drag_state()
        log_region_edit(self.name, 'set_length', length=self._length)

    # =========================================================================
    # CALCOLO INTEGRALE
    # =========================================================================

    def _interpolated_at(self, lo: int, hi: int, t: float) -> float:
        p_lo = self._points[lo]
        p_hi = self._points[hi]
        return interpolate_points(
            p_lo.value, p_hi.value, (t - p_lo.t) / (p_hi.t - p_lo.t), self._logarithmic
        )

    def integral(self, t0: float, t1: float) -> float:
        """Integrale definito della curva sul range assoluto [t0, t1]."""
        return self._integrate(t0, t1, inverse=False)

    def integral_of_inverse(self, t0: float, t1: float) -> float:
        """Integrale di 1 / curva sul range assoluto [t0, t1]."""
        return self._integrate(t0, t1, inverse=True)

    def _integrate(self, t0: float, t1: float, inverse: bool) -> float:
        if t0 == t1:
            return 0.0
        if t0 > t1:
            return -self._integrate(t1, t0, inverse)

        if math.isnan(t0) or math.isnan(t1):
            return math.nan

        if inverse:
            # Curva a zero: il reciproco diverge (inf), o non esiste (nan)
            rect = _divide
            segment = integrate_inverse_interpolated
        else:
            def rect(width, value):
                return width * value
            segment = integrate_interpolated

        count = len(self._points)
        if count == 0:
            return rect(t1 - t0, self._default_value)

        t0 -= self._offset
        t1 -= self._offset
        points = self._points

        total = 0.0
        if t0 < points[0].t:
            # t0 prima del primo punto
            if t1 <= points[0].t:
                return rect(t1 - t0, points[0].value)
            i = 1
            last_t = points[0].t
            last_val = points[0].value
            total += rect(last_t - t0, last_val)
        elif t0 >= points[count - 1].t:
            # t0 sull'ultimo punto o dopo
            return rect(t1 - t0, points[count - 1].value)
        else:
            # t0 racchiuso fra due punti
            lo, hi = self.locate(t0)
            last_val = self._interpolated_at(lo, hi, t0)
            last_t = t0
            i = hi

        while True:
            if i >= count:
                # Il range va oltre l'ultimo punto
                return total + rect(t1 - last_t, last_val)
            if points[i].t >= t1:
                this_val = self._interpolated_at(i - 1, i, t1)
                return total + segment(last_val, this_val, t1 - last_t, self._logarithmic)
            total += segment(last_val, points[i].value, points[i].t - last_t, self._logarithmic)
            last_t = points[i].t
            last_val = points[i].value
            i += 1

    def solve_integral_of_inverse(self, t0: float, area: float) -> float:
        """
        Tempo assoluto t tale che integral_of_inverse(t0, t) == area.

        Cammina segmento per segmento (all'indietro se area < 0)
        accumulando l'integrale del reciproco, poi risolve in forma chiusa
        dentro l'ultimo segmento.
        """
        if area == 0.0:
            return t0
        if math.isnan(t0) or math.isnan(area):
            return math.nan

        count = len(self._points)
        if count == 0:
            return t0 + area * self._default_value

        return self._offset + self._solve_relative(t0 - self._offset, area)

    def _solve_relative(self, t0: float, area: float) -> float:
        points = self._points
        count = len(points)
        log_mode = self._logarithmic

        if t0 < points[0].t:
            # t0 prima del primo punto
            if area < 0:
                return t0 + area * points[0].value
            i = 1
            last_t = points[0].t
            last_val = points[0].value
            added = _divide(last_t - t0, last_val)
            if added >= area:
                return t0 + area * points[0].value
            area -= added
        elif t0 >= points[count - 1].t:
            # t0 sull'ultimo punto o dopo
            if area >= 0:
                return t0 + area * points[count - 1].value
            i = count - 2
            last_t = points[count - 1].t
            last_val = points[count - 1].value
            added = _divide(last_t - t0, last_val)  # negativo
            if added <= area:
                return t0 + area * points[count - 1].value
            area -= added
        else:
            lo, hi = self.locate(t0)
            last_val = self._interpolated_at(lo, hi, t0)
            last_t = t0
            i = lo if area < 0 else hi

        if area < 0:
            # All'indietro verso il primo punto
            while True:
                if i < 0:
                    return last_t + area * last_val
                point = points[i]
                added = -integrate_inverse_interpolated(
                    point.value, last_val, last_t - point.t, log_mode
                )
                # Un segmento che tocca lo zero ferma la ricerca
                if added <= area or not math.isfinite(added):
                    return last_t - solve_integrate_inverse_interpolated(
                        last_val, point.value, last_t - point.t, -area, log_mode
                    )
                area -= added
                last_t = point.t
                last_val = point.value
                i -= 1

        while True:
            if i >= count:
                return last_t + area * last_val
            point = points[i]
            added = integrate_inverse_interpolated(
                last_val, point.value, point.t - last_t, log_mode
            )
            if added >= area or not math.isfinite(added):
                return last_t + solve_integrate_inverse_interpolated(
                    last_val, point.value, point.t - last_t, area, log_mode
                )
            area -= added
            last_t = point.t
            last_val = point.value
            i += 1

    def average(self, t0: float, t1: float) -> float:
        if t0 == t1:
            return self.value_at(t0)
        return self.integral(t0, t1) / (t1 - t0)

    def average_of_inverse(self, t0: float, t1: float) -> float:
        if t0 == t1:
            return _divide(1.0, self.value_at(t0))
        return self.integral_of_inverse(t0, t1) / (t1 - t0)
