# envelope_serializer.py
"""
Serializzazione YAML degli Envelope.

Il serializer usa solo i primitivi pubblici dell'Envelope:
- scrittura: point_count() / point_at(i)
- lettura:   begin_load(n) / append_loaded_point(t, v) / end_load()

Formato:
    envelope:
      name: gain
      numpoints: 3
      offset: 0.0
      length: 10.0
      logarithmic: false
      min: 0.0
      max: 1.0
      default: 1.0
      controlpoints:
        - {t: 0.0, val: 0.0}
        - {t: 5.0, val: 1.0}
        - {t: 10.0, val: 0.0}

I tempi dei controlpoints sono relativi all'inizio dell'envelope.
"""

from typing import Any, Dict, Optional

import yaml

from envelopes.envelope import Envelope
from shared.logger import log_envelope_warning

# Cifre significative dei float scritti
FLOAT_DIGITS = 12


def _round_float(value: float) -> float:
    return float(f"{value:.{FLOAT_DIGITS}g}")


class EnvelopeSerializer:
    """
    Conversione Envelope <-> dict <-> testo YAML.
    """

    ROOT_KEY = 'envelope'

    # =========================================================================
    # SCRITTURA
    # =========================================================================

    @classmethod
    def to_dict(cls, envelope: Envelope) -> Dict[str, Any]:
        points = []
        for i in range(envelope.point_count()):
            t, value = envelope.point_at(i)
            points.append({'t': _round_float(t), 'val': _round_float(value)})

        return {
            cls.ROOT_KEY: {
                'name': envelope.name,
                'numpoints': len(points),
                'offset': _round_float(envelope.offset),
                'length': _round_float(envelope.length),
                'logarithmic': envelope.logarithmic,
                'min': _round_float(envelope.min_value),
                'max': _round_float(envelope.max_value),
                'default': _round_float(envelope.default_value),
                'controlpoints': points,
            }
        }

    @classmethod
    def dumps(cls, envelope: Envelope) -> str:
        return yaml.safe_dump(cls.to_dict(envelope), sort_keys=False)

    @classmethod
    def dump(cls, envelope: Envelope, path: str):
        with open(path, 'w') as f:
            f.write(cls.dumps(envelope))

    # =========================================================================
    # LETTURA
    # =========================================================================

    @classmethod
    def from_dict(cls, data: Dict[str, Any], envelope: Optional[Envelope] = None) -> Envelope:
        """
        Ricostruisce un Envelope dal dict serializzato.

        Args:
            data: dict con chiave 'envelope' (o direttamente il blocco interno)
            envelope: se fornito, vi si caricano solo i punti (range, modo e
                      dominio restano quelli dell'envelope)

        Raises:
            ValueError: blocco mancante, numpoints negativo o non intero,
                        controlpoint malformato
        """
        if not isinstance(data, dict):
            raise ValueError(f"Dati envelope non validi: atteso un mapping, ricevuto {data!r}")
        block = data.get(cls.ROOT_KEY, data)
        if not isinstance(block, dict):
            raise ValueError(f"Blocco '{cls.ROOT_KEY}' non valido: {block!r}")

        numpoints = block.get('numpoints', 0)
        if isinstance(numpoints, bool) or not isinstance(numpoints, int) or numpoints < 0:
            raise ValueError(f"numpoints deve essere un intero >= 0, ricevuto: {numpoints!r}")

        if envelope is None:
            envelope = Envelope(
                logarithmic=bool(block.get('logarithmic', False)),
                min_value=block.get('min', 0.0),
                max_value=block.get('max', 1.0),
                default_value=block.get('default', 1.0),
                length=block.get('length', 0.0),
                offset=block.get('offset', 0.0),
                name=block.get('name', 'envelope')
            )

        controlpoints = block.get('controlpoints') or []
        if len(controlpoints) != numpoints:
            log_envelope_warning(
                envelope.name,
                f"numpoints={numpoints} ma controlpoints={len(controlpoints)}: "
                "uso i punti presenti"
            )

        # Validazione completa prima di toccare l'envelope
        parsed = []
        for point in controlpoints:
            try:
                parsed.append((float(point['t']), float(point['val'])))
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"controlpoint non valido: {point!r}") from e

        envelope.begin_load(numpoints)
        for t, value in parsed:
            envelope.append_loaded_point(t, value)
        envelope.end_load()

        return envelope

    @classmethod
    def loads(cls, text: str, envelope: Optional[Envelope] = None) -> Envelope:
        return cls.from_dict(yaml.safe_load(text), envelope)

    @classmethod
    def load(cls, path: str, envelope: Optional[Envelope] = None) -> Envelope:
        with open(path, 'r') as f:
            raw_data = yaml.safe_load(f)
        return cls.from_dict(raw_data, envelope)
