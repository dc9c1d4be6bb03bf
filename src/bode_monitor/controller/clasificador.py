"""
Clasificador de mensajes del instrumento

Determina que tipo de linea llego por serial. Formatos conocidos:

  FREQ_RESP:freq,K,K1,H,theta                          (o 7 campos con calibracion)
  WAVEFORM:freq,sampleRate,<csv_ints>|<csv_ints>       (entrada|salida)
  UWAVE:signalFreq,sampleRate      + luego  D:ch0,ch1;ch0,ch1;...
  RAWWAVE:signalFreq,sampleRate,totalTime  + luego  CH0:<csv>  y  CH1:<csv>
  D:v0,v1;v0,v1;...                                    (volcado generico de dos canales)

El orden de las reglas importa porque algunas etiquetas son subcadenas de otras:
- "UWAVE:" tiene prioridad sobre cualquier etiqueta de forma de onda.
- La regla generica de WAVEFORM excluye lineas con marcas RAWWAVE o UWAVE.

Protocolos de varias lineas:
- La cabecera queda pendiente en un slot explicito por familia (UWAVE / RAWWAVE).
- El par completo se emite solo cuando llegan los payloads que faltan.
- Payloads sueltos (sin cabecera pendiente) se descartan sin error.

El clasificador no valida numeros: solo separa etiqueta y contenido.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class TipoMensaje(Enum):
    FREQ_RESP = "freq_resp"
    WAVEFORM = "waveform"
    UWAVE_CABECERA = "uwave_cabecera"
    UWAVE_PARES = "uwave_pares"
    RAWWAVE_CABECERA = "rawwave_cabecera"
    RAWWAVE_CANAL = "rawwave_canal"          # CH0 guardado, falta CH1
    RAWWAVE_COMPLETO = "rawwave_completo"
    D_PARES = "d_pares"
    DESCONOCIDO = "desconocido"


PREFIJO_FREQ_RESP = "FREQ_RESP:"
PREFIJO_WAVEFORM = "WAVEFORM:"
PREFIJO_UWAVE = "UWAVE:"
PREFIJO_RAWWAVE = "RAWWAVE:"
PREFIJO_CH0 = "CH0:"
PREFIJO_CH1 = "CH1:"
PREFIJO_D = "D:"


@dataclass(frozen=True)
class Mensaje:
    tipo: TipoMensaje
    linea: str
    contenido: str = ""

    # Solo para mensajes de varias lineas: contenido de la cabecera pendiente
    cabecera: Optional[str] = None
    # Solo para RAWWAVE_COMPLETO: (contenido CH0, contenido CH1)
    canales: Optional[Tuple[str, str]] = None


class ClasificadorMensajes:
    def __init__(self):
        # Slots de cabeceras pendientes (uno por familia de protocolo)
        self._cabecera_uwave: Optional[str] = None
        self._cabecera_rawwave: Optional[str] = None
        self._canal0_rawwave: Optional[str] = None

    # ----------------------------
    # Estado pendiente
    # ----------------------------

    @property
    def uwave_pendiente(self) -> Optional[str]:
        return self._cabecera_uwave

    @property
    def rawwave_pendiente(self) -> Optional[str]:
        return self._cabecera_rawwave

    def descartar_pendiente(self, tipo: TipoMensaje) -> None:
        """
        Descarta la cabecera pendiente de una familia (ej: la cabecera no paso la validacion).
        """
        if tipo in (TipoMensaje.UWAVE_CABECERA, TipoMensaje.UWAVE_PARES):
            self._cabecera_uwave = None
        elif tipo in (
            TipoMensaje.RAWWAVE_CABECERA,
            TipoMensaje.RAWWAVE_CANAL,
            TipoMensaje.RAWWAVE_COMPLETO,
        ):
            self._cabecera_rawwave = None
            self._canal0_rawwave = None

    def reset(self) -> None:
        self._cabecera_uwave = None
        self._cabecera_rawwave = None
        self._canal0_rawwave = None

    # ----------------------------
    # Clasificacion
    # ----------------------------

    def clasificar(self, linea: str) -> Mensaje:
        linea = linea.strip()

        if linea == "":
            return Mensaje(TipoMensaje.DESCONOCIDO, linea)

        # 1) UWAVE gana aunque la linea tenga otras marcas
        if PREFIJO_UWAVE in linea:
            contenido = linea[linea.index(PREFIJO_UWAVE) + len(PREFIJO_UWAVE):]
            self._cabecera_uwave = contenido
            return Mensaje(TipoMensaje.UWAVE_CABECERA, linea, contenido)

        # 2) RAWWAVE: cabecera de captura en dos lineas de canal
        if linea.startswith(PREFIJO_RAWWAVE):
            contenido = linea[len(PREFIJO_RAWWAVE):]
            self._cabecera_rawwave = contenido
            self._canal0_rawwave = None
            return Mensaje(TipoMensaje.RAWWAVE_CABECERA, linea, contenido)

        # 3) Payloads de canal (CH0 luego CH1)
        if linea.startswith(PREFIJO_CH0) or linea.startswith(PREFIJO_CH1):
            return self._clasificar_canal(linea)

        # 4) Punto de respuesta en frecuencia
        if linea.startswith(PREFIJO_FREQ_RESP):
            return Mensaje(TipoMensaje.FREQ_RESP, linea, linea[len(PREFIJO_FREQ_RESP):])

        # 5) Bloque WAVEFORM generico
        if PREFIJO_WAVEFORM in linea and "RAWWAVE" not in linea and "UWAVE" not in linea:
            contenido = linea[linea.index(PREFIJO_WAVEFORM) + len(PREFIJO_WAVEFORM):]
            return Mensaje(TipoMensaje.WAVEFORM, linea, contenido)

        # 6) Pares D: -> pertenecen a UWAVE si hay cabecera pendiente
        if linea.startswith(PREFIJO_D):
            contenido = linea[len(PREFIJO_D):]
            if self._cabecera_uwave is not None:
                cabecera = self._cabecera_uwave
                self._cabecera_uwave = None
                return Mensaje(TipoMensaje.UWAVE_PARES, linea, contenido, cabecera=cabecera)
            return Mensaje(TipoMensaje.D_PARES, linea, contenido)

        # READY / INFO / [WARN] / ecos de comandos, etc. se ignoran
        return Mensaje(TipoMensaje.DESCONOCIDO, linea)

    def _clasificar_canal(self, linea: str) -> Mensaje:
        es_ch0 = linea.startswith(PREFIJO_CH0)
        contenido = linea[len(PREFIJO_CH0):] if es_ch0 else linea[len(PREFIJO_CH1):]

        if self._cabecera_rawwave is None:
            # Payload suelto: se descarta en silencio
            return Mensaje(TipoMensaje.DESCONOCIDO, linea)

        if es_ch0:
            # Un CH0 repetido reemplaza al anterior
            self._canal0_rawwave = contenido
            return Mensaje(
                TipoMensaje.RAWWAVE_CANAL, linea, contenido, cabecera=self._cabecera_rawwave
            )

        if self._canal0_rawwave is None:
            # CH1 antes de CH0: fuera de orden, se descarta
            return Mensaje(TipoMensaje.DESCONOCIDO, linea)

        cabecera = self._cabecera_rawwave
        canal0 = self._canal0_rawwave
        self._cabecera_rawwave = None
        self._canal0_rawwave = None
        return Mensaje(
            TipoMensaje.RAWWAVE_COMPLETO,
            linea,
            contenido,
            cabecera=cabecera,
            canales=(canal0, contenido),
        )
