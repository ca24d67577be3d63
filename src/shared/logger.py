# =============================================================================
# logger.py - Gestione logging per clamp e modifiche strutturali degli envelope
# =============================================================================
import logging
from datetime import datetime
import os

# =============================================================================
# CONFIGURAZIONE
# =============================================================================
ENVELOPE_LOG_CONFIG = {
    'enabled': True,                    # Master switch: False disabilita tutto
    'console_enabled': True,            # Stampa su terminale (solo WARNING)
    'file_enabled': False,              # Scrive su file (INFO e WARNING)
    'log_dir': './logs',                # Directory per i file di log
    'log_name': None,                   # None = auto-genera con timestamp
    'log_edits': True,                  # Logga le operazioni di editing
}

_envelope_logger = None
_envelope_logger_initialized = False


# =============================================================================
# FUNZIONI PUBBLICHE
# =============================================================================

def configure_envelope_logger(
    enabled=True,
    console_enabled=True,
    file_enabled=False,
    log_dir='./logs',
    log_name=None,
    log_edits=True
):
    """
    Configura il logger per clamp e operazioni di editing sugli envelope.

    Args:
        enabled: Master switch - se False, nessun logging
        console_enabled: Se True, stampa i warning su terminale
        file_enabled: Se True, scrive su file
        log_dir: Directory dove salvare i file di log
        log_name: Nome base del file (senza estensione).
                  Il file sarà: envelope_{log_name}.log
        log_edits: Se False, le righe INFO di editing sono soppresse
    """
    global _envelope_logger, _envelope_logger_initialized

    ENVELOPE_LOG_CONFIG['enabled'] = enabled
    ENVELOPE_LOG_CONFIG['console_enabled'] = console_enabled
    ENVELOPE_LOG_CONFIG['file_enabled'] = file_enabled
    ENVELOPE_LOG_CONFIG['log_dir'] = log_dir
    ENVELOPE_LOG_CONFIG['log_name'] = log_name
    ENVELOPE_LOG_CONFIG['log_edits'] = log_edits

    # Reset logger per ri-inizializzazione
    if _envelope_logger is not None:
        for handler in _envelope_logger.handlers[:]:
            handler.close()
            _envelope_logger.removeHandler(handler)
    _envelope_logger = None
    _envelope_logger_initialized = False

def get_envelope_logger():
    """
    Ottiene il logger degli envelope (lazy initialization).
    Rispetta la configurazione in ENVELOPE_LOG_CONFIG.

    Returns:
        logging.Logger o None se disabilitato
    """
    global _envelope_logger, _envelope_logger_initialized

    # Se già inizializzato, ritorna (anche se None)
    if _envelope_logger_initialized:
        return _envelope_logger

    _envelope_logger_initialized = True

    # Master switch
    if not ENVELOPE_LOG_CONFIG['enabled']:
        _envelope_logger = None
        return None

    # Se né console né file sono abilitati, disabilita
    if not ENVELOPE_LOG_CONFIG['console_enabled'] and not ENVELOPE_LOG_CONFIG['file_enabled']:
        _envelope_logger = None
        return None

    _envelope_logger = logging.getLogger('envelope')
    _envelope_logger.setLevel(logging.INFO)
    _envelope_logger.propagate = False
    _envelope_logger.handlers = []  # Pulisci handler esistenti

    # === FILE HANDLER ===
    if ENVELOPE_LOG_CONFIG['file_enabled']:
        log_dir = ENVELOPE_LOG_CONFIG['log_dir']

        if not os.path.exists(log_dir):
            os.makedirs(log_dir)

        if ENVELOPE_LOG_CONFIG.get('log_name'):
            log_filename = f"envelope_{ENVELOPE_LOG_CONFIG['log_name']}.log"
        else:
            # Fallback: timestamp
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_filename = f'envelope_{timestamp}.log'

        log_path = os.path.join(log_dir, log_filename)

        file_handler = logging.FileHandler(log_path, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(message)s',
            datefmt='%H:%M:%S'
        ))
        _envelope_logger.addHandler(file_handler)

    # === CONSOLE HANDLER ===
    if ENVELOPE_LOG_CONFIG['console_enabled']:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('ENVELOPE: %(message)s'))
        _envelope_logger.addHandler(console_handler)

    return _envelope_logger

def get_envelope_log_path():
    """
    Ritorna il percorso del file di log corrente (se esiste).

    Returns:
        str o None
    """
    if _envelope_logger is None:
        return None

    for handler in _envelope_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            return handler.baseFilename
    return None

def log_clamp_warning(envelope_name, field, raw_value, clamped_value,
                      min_val, max_val):
    """
    Logga un warning per un input clampato da una mutazione.

    Le mutazioni non sollevano mai eccezioni: questo è l'unico segnale
    che un valore (o un tempo) era fuori dal dominio consentito.

    Args:
        envelope_name: nome dell'envelope
        field: 't' o 'value'
        raw_value: valore ricevuto
        clamped_value: valore dopo il clamp
        min_val: limite minimo
        max_val: limite massimo
    """
    logger = get_envelope_logger()

    if logger is None:
        return

    if raw_value < min_val:
        deviation = raw_value - min_val
        bound_type = "MIN"
        bound_value = min_val
    else:
        deviation = raw_value - max_val
        bound_type = "MAX"
        bound_value = max_val

    logger.warning(
        f"[{envelope_name}] {field:<6} | "
        f"raw={raw_value:>12.6f} → clamp={clamped_value:>12.6f} | "
        f"{bound_type}={bound_value:>10.4f} | "
        f"Δ={deviation:>+10.6f}"
    )


def log_region_edit(envelope_name, operation, **details):
    """
    Logga (INFO) una operazione strutturale sull'envelope.

    Args:
        envelope_name: nome dell'envelope
        operation: nome dell'operazione ('collapse_region', 'paste', ...)
        **details: coppie chiave/valore riportate nella riga di log
    """
    if not ENVELOPE_LOG_CONFIG['log_edits']:
        return

    logger = get_envelope_logger()

    if logger is None:
        return

    parts = []
    for key, value in details.items():
        if isinstance(value, float):
            parts.append(f"{key}={value:.6f}")
        else:
            parts.append(f"{key}={value}")

    logger.info(f"[{envelope_name}] {operation:<24} | " + " ".join(parts))


def log_envelope_warning(envelope_name, message):
    """Logga un warning generico (precondizioni violate, dati incoerenti)."""
    logger = get_envelope_logger()

    if logger is None:
        return

    logger.warning(f"[{envelope_name}] {message}")
