# envelope_builder.py
"""
Builder per costruire Envelope da breakpoints grezzi (liste YAML/Python).

Design Pattern: Builder
- Separa la logica di parsing da Envelope
- Gestisce due formati:
    * lista diretta:  [[t, v], [t, v], ...]
    * mapping:        {'points': [[t, v], ...], 'interpolation': 'log',
                       'min': 0.1, 'max': 10, ...}

I tempi dei breakpoints sono relativi all'inizio dell'envelope (tempo
interno); 'offset' li colloca sulla timeline assoluta.
"""

from numbers import Real
from typing import Any, Dict, List, Tuple

from envelopes.envelope import Envelope
from envelopes.envelope_config import EnvelopeConfig
from shared.logger import get_envelope_logger


class EnvelopeBuilder:
    """
    Builder per creare Envelope da formati multipli.

    Supporta:
    - Lista di breakpoints: [[0, 0], [0.5, 1], [1, 0]]
    - Mapping con breakpoints e configurazione (chiavi di
      EnvelopeConfig.from_yaml, più 'points')

    Esempio:
        {'points': [[0, 1], [2, 4]], 'preset': 'time_track', 'length': 3}
    """

    POINTS_KEY = 'points'

    @classmethod
    def parse(cls, raw: Any) -> Tuple[List[List[float]], Dict[str, Any]]:
        """
        Separa breakpoints e opzioni di configurazione.

        Args:
            raw: lista di [t, v] oppure mapping con chiave 'points'

        Returns:
            (breakpoints, options): breakpoints come [[t, v], ...] float,
            options è il resto del mapping (vuoto per la lista diretta)

        Raises:
            ValueError: se il formato non è riconosciuto o un breakpoint
                        non è valido

        Examples:
            >>> EnvelopeBuilder.parse([[0, 0], [1, 10]])
            ([[0.0, 0.0], [1.0, 10.0]], {})
        """
        if isinstance(raw, dict):
            options = {k: v for k, v in raw.items() if k != cls.POINTS_KEY}
            items = raw.get(cls.POINTS_KEY, [])
        elif isinstance(raw, (list, tuple)):
            options = {}
            items = raw
        else:
            raise ValueError(
                f"Formato envelope non valido: {type(raw).__name__}. "
                "Atteso [[t, v], ...] o mapping con 'points'."
            )

        if not isinstance(items, (list, tuple)):
            raise ValueError(f"'points' deve essere una lista, ricevuto: {items!r}")

        breakpoints = []
        for item in items:
            if not cls._is_breakpoint(item):
                raise ValueError(
                    f"Elemento non valido nel formato envelope: {item!r}. "
                    "Atteso [time, value]."
                )
            t, v = float(item[0]), float(item[1])
            if t < 0:
                raise ValueError(f"Tempo negativo nel breakpoint: {item!r}")
            breakpoints.append([t, v])

        return breakpoints, options

    @classmethod
    def build(cls, raw: Any, **overrides) -> Envelope:
        """
        Costruisce un Envelope da dati grezzi.

        Args:
            raw: vedi parse()
            **overrides: chiavi di configurazione che prevalgono su quelle
                         del mapping (es. length=4.0, interpolation='log')

        Se 'length' non è indicata, il dominio termina sull'ultimo breakpoint.
        Se né 'preset' né 'min'/'max' sono indicati, il range dei valori è
        quello coperto dai breakpoints.
        """
        breakpoints, options = cls.parse(raw)
        options.update(overrides)

        if options.get('length') is None:
            options['length'] = max((t for t, _ in breakpoints), default=0.0)

        # Senza preset né limiti espliciti il range è quello dei breakpoints
        if options.get('preset') is None and breakpoints:
            values = [v for _, v in breakpoints]
            if options.get('min') is None:
                upper = options.get('max')
                options['min'] = min(values) if upper is None else min(min(values), upper)
            if options.get('max') is None:
                options['max'] = max(max(values), options['min'])

        envelope = Envelope.from_config(EnvelopeConfig.from_yaml(options))

        # Stessi primitivi del caricamento da file: ordine, clamp, duplicati
        envelope.begin_load(len(breakpoints))
        for t, v in breakpoints:
            envelope.append_loaded_point(t, v)
        envelope.end_load()

        cls._log_built_envelope(envelope, len(breakpoints))
        return envelope

    @classmethod
    def is_breakpoint_data(cls, obj: Any) -> bool:
        """True se obj ha la forma di dati accettati da parse()."""
        if isinstance(obj, dict):
            obj = obj.get(cls.POINTS_KEY)
        if not isinstance(obj, (list, tuple)):
            return False
        return all(cls._is_breakpoint(item) for item in obj)

    @staticmethod
    def _is_breakpoint(item: Any) -> bool:
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            return False
        # bool è sottoclasse di int: escluso
        return all(isinstance(x, Real) and not isinstance(x, bool) for x in item)

    @classmethod
    def _log_built_envelope(cls, envelope: Envelope, n_input: int):
        logger = get_envelope_logger()
        if logger is None:
            return

        logger.info(
            f"[{envelope.name}] build                    | "
            f"input={n_input} points={envelope.point_count()} "
            f"length={envelope.length:.6f} "
            f"mode={'log' if envelope.logarithmic else 'linear'}"
        )
