"""Shared fixtures for the unit tests."""

from __future__ import annotations

import pytest

from bode_monitor.model.muestra import PuntoMedicion


def hacer_punto(freq: int, h: float = 0.8, theta: float = -10.0, k_in: float = 1.5) -> PuntoMedicion:
    return PuntoMedicion(
        freq=freq,
        k_in=k_in,
        k_out=k_in * h,
        h=h,
        theta=theta,
        h_raw=h,
        theta_raw=theta,
    )


def linea_d(n_pares: int, inicio: int = 100) -> str:
    return "D:" + ";".join(f"{inicio + i},{inicio + i + 1}" for i in range(n_pares))


@pytest.fixture
def punto():
    return hacer_punto


class SerialFalso:
    def __init__(self, lineas):
        self._lineas = list(lineas)
        self.escrito = []
        self.is_open = True

    def readline(self) -> bytes:
        return self._lineas.pop(0) if self._lineas else b""

    def write(self, datos: bytes) -> None:
        self.escrito.append(datos)

    def close(self) -> None:
        self.is_open = False
