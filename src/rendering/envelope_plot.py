# =============================================================================
# ENVELOPE PLOT - Rappresentazione grafica di un Envelope
# =============================================================================

import matplotlib.pyplot as plt
import numpy as np


class EnvelopePlotter:
    """
    Disegna un Envelope su assi matplotlib.

    - Curva: campionata con values_at (valutazione bufferizzata)
    - Punti di controllo: letti con point_count / point_at
    - Punto trascinato (highlighted_index): evidenziato
    - Asse Y: logaritmico per envelope logaritmici
    """

    def __init__(self, config=None):
        """
        Args:
            config: dict di configurazione (opzionale)
        """
        default_config = {
            # Curva
            'n_samples': 500,
            'curve_color': '#377eb8',        # blu
            'curve_width': 1.4,
            'curve_alpha': 0.9,

            # Punti di controllo
            'point_color': '#e41a1c',        # rosso
            'point_size': 5,
            'highlight_color': '#ff7f00',    # arancio
            'highlight_size': 9,
            'annotate_points': True,

            # Figura
            'figsize': (10, 4),
            'dpi': 150,
            'label_fontsize': 8,
            'title_fontsize': 12,
        }

        self.config = default_config
        if config:
            self.config.update(config)

    # =========================================================================
    # RENDERING
    # =========================================================================

    def render(self, envelope, ax=None, t_start=None, t_end=None):
        """
        Disegna curva e punti dell'envelope.

        Args:
            envelope: Envelope da disegnare
            ax: assi matplotlib (None = nuova figura)
            t_start, t_end: finestra in tempo assoluto
                            (default: dominio dell'envelope)

        Returns:
            assi su cui si è disegnato
        """
        if ax is None:
            _, ax = plt.subplots(figsize=self.config['figsize'])

        if t_start is None:
            t_start = envelope.offset
        if t_end is None:
            t_end = envelope.offset + envelope.length
        if t_end <= t_start:
            # Dominio vuoto: finestra minima attorno all'offset
            t_end = t_start + 1.0

        n_samples = max(2, self.config['n_samples'])
        tstep = (t_end - t_start) / (n_samples - 1)
        times = t_start + np.arange(n_samples) * tstep
        values = envelope.values_at(t_start, n_samples, tstep)

        ax.plot(times, values,
                color=self.config['curve_color'],
                linewidth=self.config['curve_width'],
                alpha=self.config['curve_alpha'],
                label=envelope.name)

        self._draw_points(ax, envelope, t_start, t_end)

        if envelope.logarithmic:
            ax.set_yscale('log')

        ax.set_xlim(t_start, t_end)
        ax.set_xlabel('tempo (s)', fontsize=self.config['label_fontsize'])
        ax.set_ylabel('valore', fontsize=self.config['label_fontsize'])
        ax.set_title(envelope.name, fontsize=self.config['title_fontsize'])
        return ax

    def _draw_points(self, ax, envelope, t_start, t_end):
        highlighted = envelope.highlighted_index

        for i in range(envelope.point_count()):
            t_rel, value = envelope.point_at(i)
            t_abs = envelope.offset + t_rel

            # Salta punti fuori dalla finestra
            if t_abs < t_start or t_abs > t_end:
                continue

            if i == highlighted:
                ax.plot(t_abs, value, 'o',
                        color=self.config['highlight_color'],
                        markersize=self.config['highlight_size'])
            else:
                ax.plot(t_abs, value, 'o',
                        color=self.config['point_color'],
                        markersize=self.config['point_size'])

            if self.config['annotate_points']:
                ax.annotate(
                    self._format_value(value),
                    xy=(t_abs, value),
                    xytext=(3, 3),
                    textcoords='offset points',
                    fontsize=6,
                    color=self.config['point_color'],
                    bbox=dict(boxstyle='round,pad=0.15', facecolor='white',
                              alpha=0.7, edgecolor='none')
                )

    @staticmethod
    def _format_value(value):
        if abs(value) >= 100:
            return f"{value:.0f}"
        elif abs(value) >= 10:
            return f"{value:.1f}"
        return f"{value:.2f}"

    # =========================================================================
    # OUTPUT
    # =========================================================================

    def export_png(self, envelope, output_path):
        """Esporta l'envelope come PNG."""
        fig, ax = plt.subplots(figsize=self.config['figsize'])
        self.render(envelope, ax=ax)
        fig.savefig(output_path, dpi=self.config['dpi'], bbox_inches='tight')
        plt.close(fig)
        print(f"✓ PNG esportato: {output_path}")
