# tests/test_main.py
"""
Test suite per src/main.py.

Copre:
- main(): argomenti insufficienti -> sys.exit(1)
- main(): flusso normale (caricamento, riepilogo, integrale)
- main(): export PNG opzionale
- main(): FileNotFoundError -> sys.exit(1)
- main(): eccezione generica -> traceback + sys.exit(1)
"""

import sys

import pytest
from unittest.mock import patch

import main as main_module
from envelopes.envelope_serializer import EnvelopeSerializer


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def envelope_file(tmp_path, triangle):
    path = tmp_path / 'triangle.yml'
    EnvelopeSerializer.dump(triangle, str(path))
    return str(path)


def run_main(argv_list):
    """Esegue main.main() con sys.argv specificato."""
    with patch.object(sys, 'argv', argv_list):
        main_module.main()


# =============================================================================
# TEST ARGOMENTI INSUFFICIENTI
# =============================================================================

class TestInsufficientArguments:

    def test_no_args_exits_with_1(self):
        with pytest.raises(SystemExit) as exc_info:
            run_main(['main.py'])
        assert exc_info.value.code == 1

    def test_no_args_prints_usage(self, capsys):
        with pytest.raises(SystemExit):
            run_main(['main.py'])
        captured = capsys.readouterr()
        assert 'python main.py' in captured.out
        assert '.yml' in captured.out


# =============================================================================
# TEST FLUSSO NORMALE
# =============================================================================

class TestNormalFlow:

    def test_prints_summary(self, envelope_file, capsys):
        run_main(['main.py', envelope_file])
        out = capsys.readouterr().out

        assert 'Punti: 3' in out
        assert '[0.000000, 10.000000]' in out
        assert 'Integrale sul dominio: 5.000000' in out

    def test_no_png_without_output(self, envelope_file):
        with patch('rendering.envelope_plot.EnvelopePlotter') as mock_plotter:
            run_main(['main.py', envelope_file])
        mock_plotter.assert_not_called()

    def test_png_exported_when_requested(self, envelope_file, tmp_path):
        output = str(tmp_path / 'out.png')
        with patch('rendering.envelope_plot.EnvelopePlotter') as mock_plotter:
            run_main(['main.py', envelope_file, output])

        export = mock_plotter.return_value.export_png
        export.assert_called_once()
        assert export.call_args[0][1] == output


# =============================================================================
# TEST GESTIONE ERRORI
# =============================================================================

class TestErrors:

    def test_missing_file_exits_with_1(self, tmp_path, capsys):
        missing = str(tmp_path / 'missing.yml')
        with pytest.raises(SystemExit) as exc_info:
            run_main(['main.py', missing])

        assert exc_info.value.code == 1
        assert 'non trovato' in capsys.readouterr().out

    def test_invalid_content_exits_with_1(self, tmp_path, capsys):
        path = tmp_path / 'bad.yml'
        path.write_text("envelope:\n  numpoints: -4\n")

        with pytest.raises(SystemExit) as exc_info:
            run_main(['main.py', str(path)])

        assert exc_info.value.code == 1
        assert 'numpoints' in capsys.readouterr().out
