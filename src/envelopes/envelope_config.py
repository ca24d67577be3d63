"""
envelope_config.py

Configurazione degli Envelope: limiti del codominio, modo di interpolazione,
dominio temporale e risoluzione (epsilon).

Design Pattern:
- Value Object: EnvelopeBounds ed EnvelopeConfig sono immutabili.
- Registry: ENVELOPE_PRESETS centralizza i limiti per i casi d'uso tipici.

Questo file risponde a: "Con quali limiti e quale risoluzione nasce un Envelope?"
"""

from dataclasses import dataclass, fields
from typing import Dict, Optional

import yaml

from shared.utils import get_nested, get_sample_rate

# =============================================================================
# SYSTEM CONSTANTS & DEFAULTS
# =============================================================================

# 200 kHz: epsilon (un periodo di campionamento) sotto il campione a 192 kHz.
DEFAULT_SAMPLE_RATE = 200000

# Minimo valore memorizzabile in modo logaritmico (log/ratio sempre definiti).
LOG_VALUE_FLOOR = 1.0e-7

INTERPOLATION_NAMES = {
    'linear': False,
    'lin': False,
    'logarithmic': True,
    'log': True,
    'exponential': True,
}


def epsilon_for_sample_rate(sample_rate: float) -> float:
    """Minima separazione temporale fra due punti distinti."""
    if sample_rate <= 0:
        raise ValueError(f"sample_rate deve essere > 0, ricevuto: {sample_rate}")
    return 1.0 / sample_rate


@dataclass(frozen=True)
class EnvelopeBounds:
    """
    Limiti del codominio e valore di default per una famiglia di envelope.

    Attributes:
        min_value (float): Clamp minimo dei valori.
        max_value (float): Clamp massimo dei valori.
        default_value (float): Valore dell'envelope senza punti.
        logarithmic (bool): Interpolazione geometrica (log-lineare).
    """
    min_value: float
    max_value: float
    default_value: float
    logarithmic: bool = False

# =============================================================================
# PRESET REGISTRY
# =============================================================================

ENVELOPE_PRESETS: Dict[str, EnvelopeBounds] = {

    # Guadagno lineare di una traccia audio
    'gain': EnvelopeBounds(
        min_value=0.0,
        max_value=2.0,
        default_value=1.0,
    ),

    # Time track: fattore di velocità, integrato per il time-warp
    'time_track': EnvelopeBounds(
        min_value=0.1,
        max_value=10.0,
        default_value=1.0,
        logarithmic=True
    ),

    # Curva di equalizzazione in dB
    'equalization': EnvelopeBounds(
        min_value=-120.0,
        max_value=60.0,
        default_value=0.0,
    ),

    'pan': EnvelopeBounds(
        min_value=-1.0,
        max_value=1.0,
        default_value=0.0,
    ),
}


def get_envelope_preset(name: str) -> EnvelopeBounds:
    """
    Recupera i limiti di un preset.

    Raises:
        KeyError: se il preset non esiste (Fail Fast)
    """
    if name not in ENVELOPE_PRESETS:
        available = ', '.join(sorted(ENVELOPE_PRESETS.keys()))
        raise KeyError(f"Preset envelope '{name}' non trovato. Disponibili: {available}")
    return ENVELOPE_PRESETS[name]


def parse_interpolation(name) -> bool:
    """'linear' | 'logarithmic' (o bool) → flag logarithmic."""
    if isinstance(name, bool):
        return name
    if not isinstance(name, str):
        raise ValueError(
            f"interpolation deve essere str o bool, ricevuto: {type(name).__name__}"
        )
    normalized = name.strip().lower()
    if normalized not in INTERPOLATION_NAMES:
        valid = sorted(INTERPOLATION_NAMES.keys())
        raise ValueError(
            f"Interpolazione non riconosciuta: '{name}'. Tipi validi: {valid}"
        )
    return INTERPOLATION_NAMES[normalized]


@dataclass(frozen=True)
class EnvelopeConfig:
    """
    Configurazione completa per la costruzione di un Envelope.
    """
    name: str = 'envelope'
    logarithmic: bool = False
    min_value: float = 0.0
    max_value: float = 1.0
    default_value: float = 1.0
    offset: float = 0.0
    length: float = 0.0
    sample_rate: float = DEFAULT_SAMPLE_RATE

    def __post_init__(self):
        if self.min_value > self.max_value:
            raise ValueError(
                f"min_value ({self.min_value}) > max_value ({self.max_value})"
            )
        if self.logarithmic and self.max_value <= 0:
            raise ValueError(
                f"Envelope logaritmico richiede max_value > 0, ricevuto: {self.max_value}"
            )
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate deve essere > 0, ricevuto: {self.sample_rate}")
        if self.length < 0:
            raise ValueError(f"length deve essere >= 0, ricevuto: {self.length}")

    @property
    def epsilon(self) -> float:
        return epsilon_for_sample_rate(self.sample_rate)

    @classmethod
    def from_yaml(cls, yaml_data: dict, sample_rate: Optional[float] = None) -> 'EnvelopeConfig':
        """
        Costruisce la configurazione da un mapping YAML.

        Chiavi riconosciute:
            preset, name, interpolation, min, max, default,
            offset, length, sample_rate, sample

        Priorità del sample rate: argomento > 'sample_rate' > 'sample'
        (letto dal file audio) > DEFAULT_SAMPLE_RATE.
        """
        kwargs = {}

        preset_name = yaml_data.get('preset')
        if preset_name is not None:
            bounds = get_envelope_preset(preset_name)
            kwargs.update(
                min_value=bounds.min_value,
                max_value=bounds.max_value,
                default_value=bounds.default_value,
                logarithmic=bounds.logarithmic,
            )

        yaml_keys = {
            'name': 'name',
            'min': 'min_value',
            'max': 'max_value',
            'default': 'default_value',
            'offset': 'offset',
            'length': 'length',
        }
        for yaml_key, field_name in yaml_keys.items():
            if yaml_data.get(yaml_key) is not None:
                kwargs[field_name] = yaml_data[yaml_key]

        if yaml_data.get('interpolation') is not None:
            kwargs['logarithmic'] = parse_interpolation(yaml_data['interpolation'])

        if sample_rate is not None:
            kwargs['sample_rate'] = sample_rate
        elif yaml_data.get('sample_rate') is not None:
            kwargs['sample_rate'] = yaml_data['sample_rate']
        elif yaml_data.get('sample') is not None:
            kwargs['sample_rate'] = get_sample_rate(yaml_data['sample'])

        # Se il default non è specificato resta quello del dataclass,
        # che Envelope clampa nel range.
        field_names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in kwargs.items() if k in field_names})


def load_config_file(path: str, section: str = 'envelope') -> EnvelopeConfig:
    """
    Carica EnvelopeConfig da file YAML.

    Args:
        path: percorso del file
        section: chiave (dot notation) del blocco di configurazione;
                 se assente si usa la radice del documento
    """
    with open(path, 'r') as f:
        raw_data = yaml.safe_load(f) or {}

    data = get_nested(raw_data, section, raw_data)
    if not isinstance(data, dict):
        raise ValueError(f"Blocco '{section}' non valido in {path}: atteso un mapping")
    return EnvelopeConfig.from_yaml(data)
