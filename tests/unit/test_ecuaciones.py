"""Unit tests for model.ecuaciones."""

from __future__ import annotations

import math

import pytest

from bode_monitor.model.ecuaciones import (
    corregir_atipicos,
    desenvolver_fase,
    frecuencia_alias,
    h_db,
    marcas_tiempo_ms,
    omega,
    promedio_centrado,
    ventana_suavizado,
)


def test_h_db_returns_floor_for_non_positive_gain() -> None:
    assert h_db(0.0) == -100.0
    assert h_db(-0.5) == -100.0
    assert h_db(0.0, piso=-80.0) == -80.0


def test_h_db_is_20_log10_for_positive_gain() -> None:
    assert h_db(1.0) == 0.0
    assert h_db(10.0) == pytest.approx(20.0)
    assert h_db(0.5) == pytest.approx(20.0 * math.log10(0.5))


def test_omega() -> None:
    assert omega(100) == pytest.approx(2 * math.pi * 100)


def test_unwrap_leaves_sequence_without_jumps_unchanged() -> None:
    thetas = [-5.0, -20.0, -45.0, -80.0, -150.0, -175.0]
    assert desenvolver_fase(thetas) == thetas


def test_unwrap_removes_negative_wrap() -> None:
    # +170 -> -170 is a -340 jump, so the second point is shifted by +360
    assert desenvolver_fase([170.0, -170.0]) == [170.0, 190.0]


def test_unwrap_removes_positive_wrap_and_accumulates() -> None:
    thetas = [-170.0, 175.0, 170.0, -175.0]
    assert desenvolver_fase(thetas) == [-170.0, -185.0, -190.0, -175.0]


def test_outlier_correction_replaces_interior_point_with_midpoint() -> None:
    corregidas, atipicos = corregir_atipicos([0.0, 100.0, 10.0], umbral=50.0)
    assert corregidas == [0.0, 5.0, 10.0]
    assert atipicos == [False, True, False]


def test_outlier_correction_never_touches_endpoints() -> None:
    thetas = [500.0, 0.0, 0.0, -500.0]
    corregidas, atipicos = corregir_atipicos(thetas, umbral=50.0)
    assert corregidas[0] == 500.0
    assert corregidas[-1] == -500.0
    assert atipicos[0] is False
    assert atipicos[-1] is False


def test_smoothing_window_depends_on_frequency() -> None:
    assert ventana_suavizado(50) == 7
    assert ventana_suavizado(100) == 5
    assert ventana_suavizado(499) == 5
    assert ventana_suavizado(500) == 3


def test_centered_average_is_clipped_to_bounds() -> None:
    valores = [1.0, 2.0, 3.0, 4.0]
    assert promedio_centrado(valores, 0, 3) == pytest.approx(1.5)
    assert promedio_centrado(valores, 1, 3) == pytest.approx(2.0)
    assert promedio_centrado(valores, 3, 7) == pytest.approx(2.5)


def test_alias_frequency() -> None:
    assert frecuencia_alias(1000, 700) == 300
    assert frecuencia_alias(1000, 900) == 100
    assert frecuencia_alias(1000, 2000) is None


def test_time_stamps_reject_non_positive_sample_rate() -> None:
    with pytest.raises(ValueError, match="sample_rate"):
        marcas_tiempo_ms(3, 0)
    assert marcas_tiempo_ms(3, 1000) == [0.0, 1.0, 2.0]
    assert marcas_tiempo_ms(2, 1000, indice_inicial=5) == [5.0, 6.0]
