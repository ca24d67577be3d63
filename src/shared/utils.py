import soundfile as sf
from typing import Any
# Path per i sample audio
PATHSAMPLES = './refs/'

def get_sample_rate(filepath: str) -> int:
    """Ottiene il sample rate di un file audio (campioni al secondo)."""
    info = sf.info(PATHSAMPLES + filepath)
    return info.samplerate


def clamp(value: float, lo: float, hi: float) -> float:
    """Limita value all'intervallo [lo, hi]."""
    if value < lo:
        return lo
    if value > hi:
        return hi
    return value

def get_nested(data: dict, path: str, default: Any) -> Any:
    """
    Naviga un dict con dot notation.

    Args:
        data: Dizionario da navigare
        path: Percorso in dot notation (es. 'envelope.length')
        default: Valore di default se il percorso non esiste

    Returns:
        Valore trovato o default
    """
    keys = path.split('.')
    current = data

    for key in keys:
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return default

    return current
