from envelopes.envelope_serializer import EnvelopeSerializer
# =============================================================================
# MAIN
# =============================================================================


def main():
    import sys

    # Verifica argomenti
    if len(sys.argv) < 2:
        print("Uso: python main.py <envelope.yml> [output.png]")
        sys.exit(1)

    yaml_file = sys.argv[1]
    output_file = sys.argv[2] if len(sys.argv) > 2 else None

    try:
        # Carica l'envelope serializzato
        print(f"Caricamento {yaml_file}...")
        envelope = EnvelopeSerializer.load(yaml_file)

        start = envelope.offset
        end = envelope.offset + envelope.length
        mode = 'logaritmico' if envelope.logarithmic else 'lineare'

        print(f"  Punti: {envelope.point_count()}")
        print(f"  Dominio: [{start:.6f}, {end:.6f}] ({mode})")
        print(f"  Integrale sul dominio: {envelope.integral(start, end):.6f}")

        if output_file:
            from rendering.envelope_plot import EnvelopePlotter
            print("Rendering...")
            EnvelopePlotter().export_png(envelope, output_file)

        print("\n✓ Completato!")

    except FileNotFoundError:
        print(f"✗ Errore: file '{yaml_file}' non trovato")
        sys.exit(1)
    except Exception as e:
        print(f"✗ Errore: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
