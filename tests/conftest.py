# tests/conftest.py
import pytest

from envelopes.envelope import Envelope

# =============================================================================
# FIXTURES ENVELOPE (Dati e Oggetti)
# =============================================================================


def make_envelope(points, length, **kwargs):
    """Envelope con i punti (t relativo, valore) dati."""
    env = Envelope(length=length, **kwargs)
    for t, v in points:
        env.insert_or_replace_relative(t, v)
    return env


@pytest.fixture(name="make_envelope")
def make_envelope_fixture():
    """Factory: make_envelope(points, length, **kwargs)."""
    return make_envelope


@pytest.fixture
def triangle():
    """
    Envelope lineare a triangolo.
    Punti: [0, 0] -> [5, 1] -> [10, 0]
    Range: [0, 1], length 10
    """
    return make_envelope([(0, 0), (5, 1), (10, 0)], length=10.0)


@pytest.fixture
def ramp():
    """
    Rampa lineare positiva (integrabile anche come reciproco).
    Punti: [0, 1] -> [2, 3] -> [4, 2]
    """
    return make_envelope(
        [(0, 1), (2, 3), (4, 2)], length=4.0, min_value=0.1, max_value=10.0
    )


@pytest.fixture
def env_log():
    """
    Envelope logaritmico (time track).
    Punti: [0, 1] -> [2, 100]
    """
    return make_envelope(
        [(0, 1), (2, 100)], length=2.0,
        logarithmic=True, min_value=0.1, max_value=100.0
    )


@pytest.fixture
def flat_env():
    """Envelope senza punti, default 0.5, length 10."""
    return Envelope(default_value=0.5, length=10.0)
