"""Unit tests for model.formas_onda."""

from __future__ import annotations

import pytest

from bode_monitor.model.formas_onda import GestorFormasOnda


def test_live_buffer_takes_the_latest_block() -> None:
    gestor = GestorFormasOnda()
    vivo = gestor.ingest_waveform_block(100, 1000, [10, 20, 30], [40, 50, 60])

    assert vivo.input == (10, 20, 30)
    assert vivo.output == (40, 50, 60)
    assert vivo.time_stamps == (0.0, 1.0, 2.0)
    assert gestor.vivo is vivo


def test_live_buffer_is_trimmed_to_capacity() -> None:
    gestor = GestorFormasOnda(max_muestras_vivo=2)
    vivo = gestor.ingest_waveform_block(100, 1000, [1, 2, 3], [4, 5, 6])

    assert vivo.input == (2, 3)
    assert vivo.output == (5, 6)
    assert vivo.time_stamps == (0.0, 1.0)


def test_live_buffer_does_not_accumulate() -> None:
    gestor = GestorFormasOnda()
    gestor.ingest_waveform_block(100, 1000, [1, 2, 3], [4, 5, 6])
    vivo = gestor.ingest_waveform_block(200, 1000, [7, 8], [9, 10])

    assert vivo.freq == 200
    assert vivo.input == (7, 8)


def test_per_frequency_buffer_accumulates_with_continuous_time() -> None:
    gestor = GestorFormasOnda()
    gestor.ingest_waveform_block(100, 1000, [1, 2, 3], [4, 5, 6])
    gestor.ingest_waveform_block(100, 1000, [7, 8, 9], [10, 11, 12])

    buffer = gestor.por_frecuencia(100)
    assert buffer.input == (1, 2, 3, 7, 8, 9)
    assert buffer.output == (4, 5, 6, 10, 11, 12)
    assert buffer.time_stamps == (0.0, 1.0, 2.0, 3.0, 4.0, 5.0)


def test_per_frequency_buffer_drops_oldest_samples() -> None:
    gestor = GestorFormasOnda(max_muestras_por_frecuencia=4)
    gestor.ingest_waveform_block(100, 1000, [1, 2, 3], [4, 5, 6])
    gestor.ingest_waveform_block(100, 1000, [7, 8, 9], [10, 11, 12])

    buffer = gestor.por_frecuencia(100)
    assert buffer.input == (3, 7, 8, 9)
    assert buffer.output == (6, 10, 11, 12)
    assert buffer.indice_inicial == 2
    assert buffer.time_stamps == (2.0, 3.0, 4.0, 5.0)
    assert len(buffer) == len(buffer.time_stamps) == 4


def test_sample_rate_change_resets_frequency_entry() -> None:
    gestor = GestorFormasOnda()
    gestor.ingest_waveform_block(100, 1000, [1, 2, 3], [4, 5, 6])
    gestor.ingest_waveform_block(100, 2000, [7, 8], [9, 10])

    buffer = gestor.por_frecuencia(100)
    assert buffer.sample_rate == 2000
    assert buffer.input == (7, 8)
    assert buffer.time_stamps == (0.0, 0.5)


def test_invalid_blocks_are_rejected_without_changes() -> None:
    gestor = GestorFormasOnda()
    with pytest.raises(ValueError, match="sample_rate"):
        gestor.ingest_waveform_block(100, 0, [1], [2])
    with pytest.raises(ValueError, match="mismo largo"):
        gestor.ingest_waveform_block(100, 1000, [1, 2], [3])

    assert gestor.vivo is None
    assert gestor.frecuencias() == []


def test_undersampled_pair() -> None:
    gestor = GestorFormasOnda()
    par = gestor.ingest_undersampled_pair(1000, 700, [1, 2], [3, 4])

    assert par.ch0 == (1, 2)
    assert par.ch1 == (3, 4)
    assert par.time_stamps == pytest.approx((0.0, 1000.0 / 700))
    assert par.submuestreado is True
    assert par.alias_freq == 300
    assert gestor.ultimo_par is par
    # Un par submuestreado no toca los buffers WAVEFORM
    assert gestor.vivo is None


def test_reset_and_snapshot() -> None:
    gestor = GestorFormasOnda()
    gestor.ingest_waveform_block(200, 1000, [1], [2])
    gestor.ingest_waveform_block(100, 1000, [1], [2])

    assert gestor.frecuencias() == [100, 200]
    copia = gestor.snapshot()
    gestor.reset()

    assert set(copia) == {100, 200}
    assert gestor.snapshot() == {}
    assert gestor.vivo is None
    assert gestor.ultimo_par is None
