"""Unit tests for controller.decodificador."""

from __future__ import annotations

import pytest

from bode_monitor.config.settings import LIMITES_ESTRICTOS, LIMITES_INGESTA, limites_para_barrido
from bode_monitor.controller.decodificador import (
    ErrorValidacion,
    ValidadorProtocolo,
    decodificar_cabecera_rawwave,
    decodificar_cabecera_uwave,
    decodificar_freq_resp,
    decodificar_pares_d,
    decodificar_waveform,
)
from bode_monitor.model.errores import RegistroErrores
from bode_monitor.model.muestra import TipoError

from conftest import linea_d


def _tipo(excinfo) -> TipoError:
    return excinfo.value.tipo


# ----------------------------
# FREQ_RESP
# ----------------------------

def test_freq_resp_five_fields() -> None:
    punto = decodificar_freq_resp("100,1.5,1.2,0.8,-10")

    assert punto.freq == 100
    assert (punto.k_in, punto.k_out, punto.h, punto.theta) == (1.5, 1.2, 0.8, -10.0)
    assert punto.is_calibrated is False
    assert punto.h_cal is None


def test_freq_resp_seven_fields_uses_calibrated_values() -> None:
    punto = decodificar_freq_resp("100,1.5,1.2,0.8,-10,0.82,-9.5")

    assert punto.is_calibrated is True
    assert (punto.h, punto.theta) == (0.82, -9.5)
    assert (punto.h_raw, punto.theta_raw) == (0.8, -10.0)


def test_freq_resp_too_few_fields() -> None:
    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_freq_resp("100,1.5,1.2")
    assert _tipo(excinfo) == TipoError.FORMAT


@pytest.mark.parametrize("contenido", ["abc,1.5,1.2,0.8,-10", "100,1.5,nan,0.8,-10", "100,inf,1.2,0.8,-10", "100.5,1.5,1.2,0.8,-10"])
def test_freq_resp_parse_errors(contenido: str) -> None:
    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_freq_resp(contenido)
    assert _tipo(excinfo) == TipoError.PARSE


@pytest.mark.parametrize(
    "contenido",
    ["5000,1.5,1.2,0.8,-10", "5,1.5,1.2,0.8,-10", "100,-1.5,1.2,0.8,-10", "100,1.5,1.2,11,-10", "100,1.5,1.2,0.8,-250"],
)
def test_freq_resp_range_errors_in_live_limits(contenido: str) -> None:
    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_freq_resp(contenido, LIMITES_INGESTA)
    assert _tipo(excinfo) == TipoError.RANGE


def test_strict_limits_are_wider() -> None:
    assert decodificar_freq_resp("5000,1.5,1.2,0.8,-250", LIMITES_ESTRICTOS).freq == 5000

    with pytest.raises(ErrorValidacion):
        decodificar_freq_resp("200000,1.5,1.2,0.8,-10", LIMITES_ESTRICTOS)


def test_sweep_limits_for_other_ceiling() -> None:
    limites = limites_para_barrido(2000)
    assert decodificar_freq_resp("1500,1.5,1.2,0.8,-10", limites).freq == 1500

    with pytest.raises(ValueError):
        limites_para_barrido(10)


# ----------------------------
# UWAVE / RAWWAVE
# ----------------------------

def test_uwave_header() -> None:
    assert decodificar_cabecera_uwave("1000,700") == (1000, 700)

    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_cabecera_uwave("1000,700,5")
    assert _tipo(excinfo) == TipoError.FORMAT

    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_cabecera_uwave("abc,700")
    assert _tipo(excinfo) == TipoError.PARSE

    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_cabecera_uwave("1000,100000")
    assert _tipo(excinfo) == TipoError.RANGE


def test_rawwave_header() -> None:
    assert decodificar_cabecera_rawwave("1000,700,91.4") == (1000, 700, 91.4)

    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_cabecera_rawwave("1000,0,91.4")
    assert _tipo(excinfo) == TipoError.RANGE


# ----------------------------
# Lineas D:
# ----------------------------

def test_d_pairs_accepted() -> None:
    resultado = decodificar_pares_d(linea_d(64)[2:] + ";")

    assert len(resultado.ch0) == len(resultado.ch1) == 64
    assert resultado.ch0[0] == 100
    assert resultado.ch1[0] == 101
    assert resultado.avisos == []


def test_d_pairs_too_few_is_format_error() -> None:
    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_pares_d(linea_d(10)[2:])
    assert _tipo(excinfo) == TipoError.FORMAT


def test_d_pairs_too_many_malformed_is_parse_error() -> None:
    pares = ["x,y"] * 4 + [f"{i},{i}" for i in range(60)]
    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_pares_d(";".join(pares))
    assert _tipo(excinfo) == TipoError.PARSE


def test_d_pairs_some_malformed_are_dropped() -> None:
    pares = ["x,y"] * 3 + [f"{i},{i}" for i in range(61)]
    resultado = decodificar_pares_d(";".join(pares))
    assert len(resultado.ch0) == 61


def test_d_pairs_out_of_range_warns_but_accepts() -> None:
    pares = ["5000,1"] + [f"{i},{i}" for i in range(63)]
    resultado = decodificar_pares_d(";".join(pares))

    assert len(resultado.ch0) == 63
    assert [a.tipo for a in resultado.avisos] == [TipoError.RANGE]


# ----------------------------
# WAVEFORM
# ----------------------------

def test_waveform() -> None:
    freq, sr, entrada, salida = decodificar_waveform("100,1000,10,20,30|40,50,60")
    assert (freq, sr) == (100, 1000)
    assert entrada == (10, 20, 30)
    assert salida == (40, 50, 60)


@pytest.mark.parametrize(
    "contenido, tipo",
    [
        ("100,1000", TipoError.FORMAT),
        ("100,1000,10,20,30", TipoError.FORMAT),
        ("100,1000,10,20|40,50,60", TipoError.FORMAT),
        ("100,1000,|40", TipoError.FORMAT),
        ("100,1000,10,a|40,50", TipoError.PARSE),
        ("100,0,10|40", TipoError.RANGE),
        ("100,1000,10,5000|40,50", TipoError.RANGE),
    ],
)
def test_waveform_errors(contenido: str, tipo: TipoError) -> None:
    with pytest.raises(ErrorValidacion) as excinfo:
        decodificar_waveform(contenido)
    assert _tipo(excinfo) == tipo


# ----------------------------
# ValidadorProtocolo
# ----------------------------

def test_live_freq_resp_failures_stay_out_of_error_log() -> None:
    registro = RegistroErrores()
    validador = ValidadorProtocolo(registro)

    assert validador.freq_resp("5000,1.5,1.2,0.8,-10", "FREQ_RESP:5000,...", LIMITES_INGESTA) is None
    assert registro.total == 0


def test_strict_freq_resp_failures_are_logged() -> None:
    registro = RegistroErrores()
    validador = ValidadorProtocolo(registro)

    assert validador.freq_resp("100,1.5", "FREQ_RESP:100,1.5", LIMITES_ESTRICTOS) is None
    (error,) = registro.errores()
    assert error.tipo == TipoError.FORMAT
    assert error.datos == "FREQ_RESP:100,1.5"


def test_other_failures_are_always_logged() -> None:
    registro = RegistroErrores()
    validador = ValidadorProtocolo(registro)

    linea = linea_d(10)
    assert validador.pares_d(linea[2:], linea) is None
    assert validador.waveform("100,1000", "WAVEFORM:100,1000") is None
    assert registro.conteo() == {TipoError.FORMAT: 2}


def test_validate_single_line() -> None:
    registro = RegistroErrores()
    validador = ValidadorProtocolo(registro)

    ok = validador.validar_linea("FREQ_RESP:5000,1.5,1.2,0.8,-10")
    assert ok.valido is True
    assert ok.dato.freq == 5000

    mal = validador.validar_linea("FREQ_RESP:abc,1.5,1.2,0.8,-10")
    assert mal.valido is False
    assert mal.tipo_error == TipoError.PARSE
    assert registro.total == 1

    vacia = validador.validar_linea("   ")
    assert (vacia.valido, vacia.tipo_error) == (False, TipoError.FORMAT)

    assert validador.validar_linea("READY").valido is True
