"""
Definicion de estructuras de datos del pipeline

- PuntoMedicion: una frecuencia aceptada desde una linea FREQ_RESP
- PuntoAcondicionado: vista derivada (unwrap + atipicos + suavizado) de un PuntoMedicion
- BufferOnda: ventana de muestras de dos canales (entrada / salida) con sus tiempos
- ParOndaSubmuestreada: captura completa UWAVE o RAWWAVE (cabecera + payload)
- ErrorProtocolo: una falla de validacion guardada en el registro de errores

Estas clases son el contrato comun entre Controller, Model y los consumidores.
Todas son inmutables: quien lee nunca puede alterar el estado del pipeline.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from bode_monitor.model import ecuaciones


class TipoError(str, Enum):
    FORMAT = "format"
    PARSE = "parse"
    RANGE = "range"
    CHECKSUM = "checksum"   # reservado para checksums de trama
    TIMEOUT = "timeout"     # reservado, lo origina el transporte


@dataclass(frozen=True)
class PuntoMedicion:
    freq: int
    k_in: float
    k_out: float
    h: float
    theta: float

    # Valores originales y calibrados (solo si la linea trae 7 campos)
    h_raw: float
    theta_raw: float
    h_cal: Optional[float] = None
    theta_cal: Optional[float] = None
    is_calibrated: bool = False

    @property
    def omega(self) -> float:
        return ecuaciones.omega(self.freq)

    @property
    def h_db(self) -> float:
        return ecuaciones.h_db(self.h)

    @property
    def h_db_raw(self) -> float:
        return ecuaciones.h_db(self.h_raw)

    @property
    def h_db_cal(self) -> Optional[float]:
        if self.h_cal is None:
            return None
        return ecuaciones.h_db(self.h_cal)


@dataclass(frozen=True)
class PuntoAcondicionado:
    """
    Resultado del pipeline de acondicionamiento para un punto.

    Los atributos del punto original (freq, h, theta, omega, ...) se leen directamente
    desde esta vista, asi los consumidores no distinguen entre datos crudos y procesados.
    """

    punto: PuntoMedicion
    theta_unwrapped: float
    theta_corrected: float
    theta_smooth: float
    h_smooth: float
    h_db_smooth: float
    is_outlier: bool

    def __getattr__(self, nombre):
        # Solo se llama cuando el atributo no existe en la vista
        if nombre == "punto":
            raise AttributeError(nombre)
        return getattr(self.punto, nombre)


@dataclass(frozen=True)
class BufferOnda:
    freq: int
    sample_rate: int
    input: Tuple[int, ...]
    output: Tuple[int, ...]
    time_stamps: Tuple[float, ...]

    # Indice absoluto de la primera muestra (para que los tiempos sigan creciendo)
    indice_inicial: int = 0

    def __len__(self) -> int:
        return len(self.input)

    @property
    def duracion_ms(self) -> float:
        return len(self.input) * 1000.0 / self.sample_rate


@dataclass(frozen=True)
class ParOndaSubmuestreada:
    signal_freq: int
    sample_rate: int
    ch0: Tuple[int, ...]
    ch1: Tuple[int, ...]
    time_stamps: Tuple[float, ...]
    origen: str = "UWAVE"              # "UWAVE" o "RAWWAVE"
    total_time_ms: Optional[float] = None

    @property
    def relacion_muestreo(self) -> float:
        return self.sample_rate / self.signal_freq

    @property
    def submuestreado(self) -> bool:
        return self.relacion_muestreo < 2.0

    @property
    def alias_freq(self) -> Optional[float]:
        return ecuaciones.frecuencia_alias(self.signal_freq, self.sample_rate)


@dataclass(frozen=True)
class ErrorProtocolo:
    id: int
    tipo: TipoError
    mensaje: str
    datos: Optional[str]
    hora: datetime
