"""
Este modulo decodifica y valida las tramas que vienen desde el instrumento (o desde
fuentes de simulacion), una vez que el clasificador separo etiqueta y contenido.

Objetivo:
- Convertir el contenido de cada tipo de linea en datos tipados (PuntoMedicion, muestras ADC, ...).
- Rechazar cualquier campo mal formado con un error tipado, nunca propagar NaN.

Contratos esperados (firmware -> PC):
  FREQ_RESP:<freq>,<K>,<K1>,<H>,<theta>
  FREQ_RESP:<freq>,<K>,<K1>,<H_raw>,<theta_raw>,<H_cal>,<theta_cal>
  WAVEFORM:<freq>,<sampleRate>,<adc0,...>|<adc1,...>
  UWAVE:<signalFreq>,<sampleRate>
  RAWWAVE:<signalFreq>,<sampleRate>,<totalTime_ms>   + CH0:<adc,...> + CH1:<adc,...>
  D:<v0>,<v1>;<v0>,<v1>;...

Notas:
- Las funciones decodificar_* son puras: retornan el dato o levantan ErrorValidacion.
- ValidadorProtocolo las envuelve y decide donde queda registrada cada falla
  (registro de errores o log general), sin tocar nunca el almacen ni los buffers.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from bode_monitor.config.settings import (
    LIMITES_ESTRICTOS,
    LIMITES_INGESTA,
    SETTINGS,
    LimitesValidacion,
    Settings,
)
from bode_monitor.controller.clasificador import ClasificadorMensajes, TipoMensaje
from bode_monitor.model.errores import RegistroErrores
from bode_monitor.model.muestra import PuntoMedicion, TipoError

logger = logging.getLogger(__name__)


class ErrorValidacion(ValueError):
    """
    Falla de validacion con su tipo (format / parse / range).
    """

    def __init__(self, tipo: TipoError, mensaje: str, datos: Optional[str] = None):
        super().__init__(mensaje)
        self.tipo = tipo
        self.mensaje = mensaje
        self.datos = datos


# -------------------------------------------------------
# Conversion estricta de campos
# -------------------------------------------------------

def _real(texto: str, campo: str) -> float:
    try:
        valor = float(texto)
    except ValueError:
        raise ErrorValidacion(TipoError.PARSE, f"{campo} no es numerico: {texto!r}") from None

    if not math.isfinite(valor):
        raise ErrorValidacion(TipoError.PARSE, f"{campo} no es un numero finito: {texto!r}")
    return valor


def _entero(texto: str, campo: str) -> int:
    try:
        return int(texto.strip())
    except ValueError:
        raise ErrorValidacion(TipoError.PARSE, f"{campo} no es entero: {texto!r}") from None


def _muestras_adc(texto: str, canal: str, settings: Settings) -> Tuple[int, ...]:
    if texto.strip() == "":
        raise ErrorValidacion(TipoError.FORMAT, f"{canal}: no trae muestras")

    muestras = tuple(_entero(v, f"{canal}[{i}]") for i, v in enumerate(texto.split(",")))

    for i, v in enumerate(muestras):
        if v < settings.adc_min or v > settings.adc_max:
            raise ErrorValidacion(
                TipoError.RANGE,
                f"{canal}[{i}] fuera de rango ADC: {v} "
                f"(valido: {settings.adc_min}-{settings.adc_max})",
            )
    return muestras


# -------------------------------------------------------
# Decodificadores por tipo de linea
# -------------------------------------------------------

def decodificar_freq_resp(contenido: str, limites: LimitesValidacion = LIMITES_INGESTA) -> PuntoMedicion:
    """
    Decodifica el contenido de una linea FREQ_RESP (sin el prefijo).

    - 5 campos: freq,K,K1,H,theta (sin calibrar)
    - 7 campos: freq,K,K1,H_raw,theta_raw,H_cal,theta_cal (se usan los calibrados)

    Errores:
    - format: menos de 5 campos
    - parse: campo no numerico / no finito, o frecuencia no entera
    - range: freq, K, H o theta fuera de los limites
    """
    partes = contenido.split(",")

    if len(partes) < 5:
        raise ErrorValidacion(
            TipoError.FORMAT,
            f"FREQ_RESP necesita al menos 5 campos, llegaron {len(partes)}",
        )

    freq_real = _real(partes[0], "freq")
    if not freq_real.is_integer():
        raise ErrorValidacion(TipoError.PARSE, f"freq debe ser entera: {partes[0]!r}")
    freq = int(freq_real)

    k_in = _real(partes[1], "K")
    k_out = _real(partes[2], "K1")
    h_raw = _real(partes[3], "H")
    theta_raw = _real(partes[4], "theta")

    h_cal = theta_cal = None
    is_calibrated = len(partes) >= 7
    if is_calibrated:
        h_cal = _real(partes[5], "H_cal")
        theta_cal = _real(partes[6], "theta_cal")
        h, theta = h_cal, theta_cal
    else:
        h, theta = h_raw, theta_raw

    if freq < limites.freq_min or freq > limites.freq_max:
        raise ErrorValidacion(
            TipoError.RANGE,
            f"Frecuencia fuera de rango: {freq} Hz "
            f"(valido: {limites.freq_min:g}-{limites.freq_max:g} Hz)",
        )

    if k_in < 0 or k_out < 0:
        raise ErrorValidacion(TipoError.RANGE, f"Amplitudes negativas: K={k_in}, K1={k_out}")

    if h < limites.h_min or h > limites.h_max:
        raise ErrorValidacion(
            TipoError.RANGE,
            f"Magnitud anormal: H={h:.4f} (valido: {limites.h_min:g}-{limites.h_max:g})",
        )

    if theta < limites.theta_min or theta > limites.theta_max:
        raise ErrorValidacion(
            TipoError.RANGE,
            f"Fase fuera de rango: {theta:.2f} deg "
            f"(valido: {limites.theta_min:g}..{limites.theta_max:g})",
        )

    return PuntoMedicion(
        freq=freq,
        k_in=k_in,
        k_out=k_out,
        h=h,
        theta=theta,
        h_raw=h_raw,
        theta_raw=theta_raw,
        h_cal=h_cal,
        theta_cal=theta_cal,
        is_calibrated=is_calibrated,
    )


def decodificar_cabecera_uwave(contenido: str, settings: Settings = SETTINGS) -> Tuple[int, int]:
    """
    UWAVE:<signalFreq>,<sampleRate> -> (signal_freq, sample_rate)
    """
    partes = contenido.split(",")
    if len(partes) != 2:
        raise ErrorValidacion(
            TipoError.FORMAT, f"UWAVE necesita 2 campos, llegaron {len(partes)}"
        )

    signal_freq = _entero(partes[0], "signalFreq")
    sample_rate = _entero(partes[1], "sampleRate")

    if signal_freq < settings.uwave_freq_min or signal_freq > settings.uwave_freq_max:
        raise ErrorValidacion(
            TipoError.RANGE,
            f"Frecuencia de senal fuera de rango: {signal_freq} Hz "
            f"(valido: {settings.uwave_freq_min}-{settings.uwave_freq_max} Hz)",
        )

    if sample_rate < settings.uwave_sr_min or sample_rate > settings.uwave_sr_max:
        raise ErrorValidacion(
            TipoError.RANGE,
            f"Frecuencia de muestreo fuera de rango: {sample_rate} Hz "
            f"(valido: {settings.uwave_sr_min}-{settings.uwave_sr_max} Hz)",
        )

    return signal_freq, sample_rate


@dataclass
class ResultadoPares:
    ch0: Tuple[int, ...]
    ch1: Tuple[int, ...]
    # Pares fuera de rango ADC dentro de la muestra revisada (no rechazan la linea)
    avisos: List[ErrorValidacion] = field(default_factory=list)


def _par(texto: str) -> Optional[Tuple[int, int]]:
    partes = texto.split(",")
    if len(partes) < 2:
        return None
    try:
        return int(partes[0]), int(partes[1])
    except ValueError:
        return None


def decodificar_pares_d(contenido: str, settings: Settings = SETTINGS) -> ResultadoPares:
    """
    D:<v0>,<v1>;<v0>,<v1>;... -> (ch0, ch1)

    - Menos de fraccion_minima_d * puntos_d_esperados pares -> format
    - Se revisan los primeros pares_muestreo_d pares: si la fraccion mal formada supera
      fraccion_maxima_invalidos_d -> parse
    - Pares fuera de rango ADC en la muestra revisada generan avisos de rango
    - Al aceptar, solo se conservan los pares bien formados y dentro de rango
    """
    pares = contenido.split(";")
    if pares and pares[-1].strip() == "":
        pares = pares[:-1]

    minimo = settings.puntos_d_esperados * settings.fraccion_minima_d
    if len(pares) < minimo:
        raise ErrorValidacion(
            TipoError.FORMAT,
            f"Puntos insuficientes: se esperaban {settings.puntos_d_esperados}, llegaron {len(pares)}",
        )

    def en_rango(v: int) -> bool:
        return settings.adc_min <= v <= settings.adc_max

    muestra = pares[: settings.pares_muestreo_d]
    invalidos = 0
    avisos = []
    for i, texto in enumerate(muestra):
        par = _par(texto)
        if par is None:
            invalidos += 1
            continue
        if not (en_rango(par[0]) and en_rango(par[1])):
            avisos.append(
                ErrorValidacion(
                    TipoError.RANGE,
                    f"Valor ADC fuera de rango: [{par[0]}, {par[1]}] "
                    f"(valido: {settings.adc_min}-{settings.adc_max})",
                    datos=f"punto {i}: {texto}",
                )
            )

    if muestra and invalidos / len(muestra) > settings.fraccion_maxima_invalidos_d:
        raise ErrorValidacion(
            TipoError.PARSE,
            f"Demasiados pares mal formados: {invalidos}/{len(muestra)}",
        )

    ch0 = []
    ch1 = []
    for texto in pares:
        par = _par(texto)
        if par is None or not (en_rango(par[0]) and en_rango(par[1])):
            continue
        ch0.append(par[0])
        ch1.append(par[1])

    return ResultadoPares(ch0=tuple(ch0), ch1=tuple(ch1), avisos=avisos)


def decodificar_waveform(
    contenido: str, settings: Settings = SETTINGS
) -> Tuple[int, int, Tuple[int, ...], Tuple[int, ...]]:
    """
    WAVEFORM:<freq>,<sampleRate>,<entrada csv>|<salida csv> -> (freq, sample_rate, entrada, salida)
    """
    partes = contenido.split(",", 2)
    if len(partes) < 3:
        raise ErrorValidacion(
            TipoError.FORMAT, "WAVEFORM necesita freq, sampleRate y datos de muestras"
        )

    freq = _entero(partes[0], "freq")
    sample_rate = _entero(partes[1], "sampleRate")

    if freq <= 0:
        raise ErrorValidacion(TipoError.RANGE, f"Frecuencia invalida: {freq} Hz")
    if sample_rate <= 0:
        raise ErrorValidacion(TipoError.RANGE, f"Frecuencia de muestreo invalida: {sample_rate} Hz")

    canales = partes[2].split("|")
    if len(canales) != 2:
        raise ErrorValidacion(
            TipoError.FORMAT, "WAVEFORM sin separador entrada|salida"
        )

    entrada = _muestras_adc(canales[0], "entrada", settings)
    salida = _muestras_adc(canales[1], "salida", settings)

    if len(entrada) != len(salida):
        raise ErrorValidacion(
            TipoError.FORMAT,
            f"Canales de distinto largo: entrada={len(entrada)}, salida={len(salida)}",
        )

    return freq, sample_rate, entrada, salida


def decodificar_cabecera_rawwave(contenido: str) -> Tuple[int, int, float]:
    """
    RAWWAVE:<signalFreq>,<sampleRate>,<totalTime_ms> -> (signal_freq, sample_rate, total_time_ms)
    """
    partes = contenido.split(",")
    if len(partes) != 3:
        raise ErrorValidacion(
            TipoError.FORMAT, f"RAWWAVE necesita 3 campos, llegaron {len(partes)}"
        )

    signal_freq = _entero(partes[0], "signalFreq")
    sample_rate = _entero(partes[1], "sampleRate")
    total_time_ms = _real(partes[2], "totalTime")

    if signal_freq <= 0 or sample_rate <= 0:
        raise ErrorValidacion(
            TipoError.RANGE,
            f"RAWWAVE con frecuencias invalidas: signalFreq={signal_freq}, sampleRate={sample_rate}",
        )
    if total_time_ms < 0:
        raise ErrorValidacion(TipoError.RANGE, f"totalTime negativo: {total_time_ms}")

    return signal_freq, sample_rate, total_time_ms


def decodificar_canal(contenido: str, canal: str, settings: Settings = SETTINGS) -> Tuple[int, ...]:
    """CH0:/CH1: <adc,...> -> muestras"""
    return _muestras_adc(contenido, canal, settings)


# -------------------------------------------------------
# Validador con registro de errores
# -------------------------------------------------------

@dataclass(frozen=True)
class ResultadoValidacion:
    valido: bool
    tipo_error: Optional[TipoError] = None
    mensaje: str = ""
    dato: Any = None


class ValidadorProtocolo:
    """
    Aplica los decodificadores y registra cada falla.

    - FREQ_RESP: si limites.registrar_errores, la falla va al RegistroErrores;
      si no (ingesta en vivo), solo al log general.
    - Resto de tipos: la falla siempre va al RegistroErrores.

    Cada metodo retorna el dato decodificado o None; nunca modifica almacen ni buffers.
    """

    def __init__(self, registro: RegistroErrores, settings: Settings = SETTINGS):
        self.registro = registro
        self.settings = settings

    def _registrar(self, error: ErrorValidacion, linea: str) -> None:
        self.registro.registrar(error.tipo, error.mensaje, error.datos if error.datos is not None else linea)

    def freq_resp(self, contenido: str, linea: str, limites: LimitesValidacion) -> Optional[PuntoMedicion]:
        try:
            return decodificar_freq_resp(contenido, limites)
        except ErrorValidacion as e:
            if limites.registrar_errores:
                self._registrar(e, linea)
            else:
                logger.warning("Dato descartado (%s): %s", e.tipo.value, e.mensaje)
            return None

    def cabecera_uwave(self, contenido: str, linea: str) -> Optional[Tuple[int, int]]:
        try:
            return decodificar_cabecera_uwave(contenido, self.settings)
        except ErrorValidacion as e:
            self._registrar(e, linea)
            return None

    def pares_d(self, contenido: str, linea: str) -> Optional[ResultadoPares]:
        try:
            resultado = decodificar_pares_d(contenido, self.settings)
        except ErrorValidacion as e:
            self._registrar(e, linea)
            return None

        for aviso in resultado.avisos:
            self._registrar(aviso, linea)
        return resultado

    def waveform(self, contenido: str, linea: str):
        try:
            return decodificar_waveform(contenido, self.settings)
        except ErrorValidacion as e:
            self._registrar(e, linea)
            return None

    def rawwave(self, cabecera: str, canales: Tuple[str, str], linea: str):
        """
        Valida cabecera + CH0 + CH1 juntos; retorna (signal_freq, sample_rate, total_ms, ch0, ch1).
        """
        try:
            signal_freq, sample_rate, total_time_ms = decodificar_cabecera_rawwave(cabecera)
            ch0 = decodificar_canal(canales[0], "CH0", self.settings)
            ch1 = decodificar_canal(canales[1], "CH1", self.settings)
            if len(ch0) != len(ch1):
                raise ErrorValidacion(
                    TipoError.FORMAT,
                    f"Canales de distinto largo: CH0={len(ch0)}, CH1={len(ch1)}",
                )
        except ErrorValidacion as e:
            self._registrar(e, linea)
            return None
        return signal_freq, sample_rate, total_time_ms, ch0, ch1

    def cabecera_rawwave(self, contenido: str, linea: str) -> Optional[Tuple[int, int, float]]:
        try:
            return decodificar_cabecera_rawwave(contenido)
        except ErrorValidacion as e:
            self._registrar(e, linea)
            return None

    # ----------------------------
    # Prueba manual de protocolo
    # ----------------------------

    def validar_linea(self, linea: str, limites: LimitesValidacion = LIMITES_ESTRICTOS) -> ResultadoValidacion:
        """
        Valida una linea suelta en modo estricto (herramienta de prueba de protocolo).

        Usa un clasificador propio, asi no altera las cabeceras pendientes de la ingesta.
        Las fallas quedan en el registro de errores; nada se aplica al almacen ni a los buffers.
        """
        if not isinstance(linea, str) or linea.strip() == "":
            return ResultadoValidacion(False, TipoError.FORMAT, "Linea vacia o invalida")

        mensaje = ClasificadorMensajes().clasificar(linea)
        tipo = mensaje.tipo

        try:
            if tipo == TipoMensaje.FREQ_RESP:
                dato = decodificar_freq_resp(mensaje.contenido, limites)
            elif tipo == TipoMensaje.UWAVE_CABECERA:
                dato = decodificar_cabecera_uwave(mensaje.contenido, self.settings)
            elif tipo == TipoMensaje.D_PARES:
                dato = decodificar_pares_d(mensaje.contenido, self.settings)
                for aviso in dato.avisos:
                    self._registrar(aviso, linea)
            elif tipo == TipoMensaje.WAVEFORM:
                dato = decodificar_waveform(mensaje.contenido, self.settings)
            elif tipo == TipoMensaje.RAWWAVE_CABECERA:
                dato = decodificar_cabecera_rawwave(mensaje.contenido)
            else:
                return ResultadoValidacion(True, mensaje="Tipo de linea sin validacion")
        except ErrorValidacion as e:
            self._registrar(e, linea)
            return ResultadoValidacion(False, e.tipo, e.mensaje)

        return ResultadoValidacion(True, mensaje=f"Linea valida ({tipo.value})", dato=dato)
