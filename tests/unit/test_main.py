"""Unit tests for the command line entry point."""

from __future__ import annotations

import pytest

import bode_monitor.main
from bode_monitor.controller.fuentes import FuenteSerial
from bode_monitor.main import main

from conftest import SerialFalso


def test_simulated_run_with_export(tmp_path, capsys) -> None:
    assert main(["--simulada", "--semilla", "1", "--exportar", str(tmp_path), "--log-level", "WARNING"]) == 0

    salida = capsys.readouterr().out
    assert "Puntos: 100" in salida
    assert "Rango: 10 - 1000 Hz" in salida
    assert "CSV generado:" in salida
    assert len(list(tmp_path.glob("frequency_response_*.csv"))) == 1


def test_replay_without_points_cannot_export(tmp_path, capsys) -> None:
    captura = tmp_path / "captura.txt"
    captura.write_text("READY\nWAVEFORM:100,1000,1,2|3,4\n", encoding="utf-8")

    assert main(["--archivo", str(captura), "--exportar", str(tmp_path / "out.csv")]) == 1
    salida = capsys.readouterr().out
    assert "Sin puntos de respuesta en frecuencia." in salida
    assert "Ultima forma de onda: 100 Hz, 2 muestras @ 1000 Hz" in salida


def test_a_source_is_required() -> None:
    with pytest.raises(SystemExit):
        main([])


def test_serial_run_sends_startup_commands(monkeypatch, capsys) -> None:
    abiertas = []

    class FuenteSerialFalsa(FuenteSerial):
        def conectar(self) -> None:
            self._ser = SerialFalso([b"READY\r\n", b"FREQ_RESP:100,1.5,1.2,0.8,-10\r\n"])
            abiertas.append(self)

    monkeypatch.setattr(bode_monitor.main, "FuenteSerial", FuenteSerialFalsa)

    codigo = main(["--puerto", "COM_TEST", "--frecuencia", "100", "--onda", "--barrido", "--stream"])

    assert codigo == 0
    (fuente,) = abiertas
    assert fuente._ser.escrito == [
        b"TYPE:SINE\r\n",
        b"FREQ:100\r\n",
        b"WAVE\r\n",
        b"SWEEP\r\n",
        b"START\r\n",
    ]
    assert fuente._ser.is_open is False

    salida = capsys.readouterr().out
    assert "Puntos: 1" in salida
    assert "Firma de sesion " in salida


def test_summary_reports_waveform_duration(tmp_path, capsys) -> None:
    captura = tmp_path / "captura.txt"
    captura.write_text("WAVEFORM:100,1000,1,2,3,4|5,6,7,8\n", encoding="utf-8")

    assert main(["--archivo", str(captura)]) == 0
    assert "4 muestras @ 1000 Hz (4.0 ms)" in capsys.readouterr().out
