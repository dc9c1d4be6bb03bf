"""
Almacenamiento de la respuesta en frecuencia

Este modulo guarda los PuntoMedicion aceptados durante un barrido:

- Un solo punto por frecuencia (un punto nuevo para una frecuencia existente la reemplaza)
- Orden ascendente por frecuencia en todo momento
- Capacidad maxima; al superarla se desaloja un punto en la misma operacion

Politicas de desalojo:
- "insercion": se elimina el punto escrito hace mas tiempo (reemplazar un punto lo renueva)
- "frecuencia": se elimina el punto de menor frecuencia que no sea el recien insertado
"""

import bisect
import itertools
import logging
from typing import Dict, List, Optional, Tuple

import pandas as pd

from bode_monitor.model.muestra import PuntoMedicion

logger = logging.getLogger(__name__)

POLITICAS_DESALOJO = ("insercion", "frecuencia")


class AlmacenRespuesta:
    def __init__(self, max_puntos: int = 1000, politica_desalojo: str = "insercion"):
        if max_puntos <= 0:
            raise ValueError("max_puntos debe ser positivo")
        if politica_desalojo not in POLITICAS_DESALOJO:
            raise ValueError(
                f"Politica de desalojo invalida: {politica_desalojo!r} "
                f"(opciones: {', '.join(POLITICAS_DESALOJO)})"
            )

        self.max_puntos = max_puntos
        self.politica_desalojo = politica_desalojo

        # Listas paralelas ordenadas por frecuencia
        self._freqs: List[int] = []
        self._puntos: List[PuntoMedicion] = []

        # freq -> numero de escritura (para saber cual es el mas antiguo)
        self._escrituras: Dict[int, int] = {}
        self._secuencia = itertools.count()

        # Cambia con cada mutacion, los consumidores lo usan para saber si recalcular
        self.version = 0

    # ----------------------------
    # Mutaciones
    # ----------------------------

    def upsert(self, punto: PuntoMedicion) -> Optional[PuntoMedicion]:
        """
        Inserta o reemplaza el punto de su frecuencia.

        Retorna el punto desalojado por capacidad (si hubo uno), o None.
        """
        i = bisect.bisect_left(self._freqs, punto.freq)
        desalojado = None

        if i < len(self._freqs) and self._freqs[i] == punto.freq:
            # Reemplazo en el lugar: el orden no cambia
            self._puntos[i] = punto
        else:
            self._freqs.insert(i, punto.freq)
            self._puntos.insert(i, punto)
            if len(self._puntos) > self.max_puntos:
                desalojado = self._desalojar(nuevo=punto.freq)

        self._escrituras[punto.freq] = next(self._secuencia)
        self.version += 1
        return desalojado

    def _desalojar(self, nuevo: int) -> PuntoMedicion:
        if self.politica_desalojo == "frecuencia":
            # Menor frecuencia, salvo que sea el punto recien insertado
            i = 1 if self._freqs[0] == nuevo else 0
        else:
            # El punto recien insertado todavia no tiene numero de escritura
            freq_antigua = min(
                (f for f in self._freqs if f != nuevo),
                key=lambda f: self._escrituras[f],
            )
            i = bisect.bisect_left(self._freqs, freq_antigua)

        self._freqs.pop(i)
        punto = self._puntos.pop(i)
        self._escrituras.pop(punto.freq, None)

        logger.warning(
            "Se supero el maximo de %d puntos, se elimina %d Hz (politica=%s)",
            self.max_puntos,
            punto.freq,
            self.politica_desalojo,
        )
        return punto

    def clear(self) -> None:
        self._freqs.clear()
        self._puntos.clear()
        self._escrituras.clear()
        self.version += 1

    # ----------------------------
    # Lectura
    # ----------------------------

    def snapshot(self) -> Tuple[PuntoMedicion, ...]:
        """Vista inmutable, ordenada por frecuencia ascendente."""
        return tuple(self._puntos)

    def obtener(self, freq: int) -> Optional[PuntoMedicion]:
        i = bisect.bisect_left(self._freqs, freq)
        if i < len(self._freqs) and self._freqs[i] == freq:
            return self._puntos[i]
        return None

    def __contains__(self, freq) -> bool:
        return self.obtener(freq) is not None

    def __len__(self) -> int:
        return len(self._puntos)

    def a_dataframe(self) -> pd.DataFrame:
        """
        Contenido del almacen como DataFrame (una fila por frecuencia).
        """
        if not self._puntos:
            return pd.DataFrame()

        data = {
            "freq": [p.freq for p in self._puntos],
            "omega": [p.omega for p in self._puntos],
            "K": [p.k_in for p in self._puntos],
            "K1": [p.k_out for p in self._puntos],
            "H": [p.h for p in self._puntos],
            "H_dB": [p.h_db for p in self._puntos],
            "H_dB_raw": [p.h_db_raw for p in self._puntos],
            "H_dB_cal": [p.h_db_cal for p in self._puntos],
            "theta": [p.theta for p in self._puntos],
            "is_calibrated": [p.is_calibrated for p in self._puntos],
        }
        return pd.DataFrame(data)
