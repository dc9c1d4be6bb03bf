"""
Controller del sistema

Este modulo corresponde a la capa Controller del patron MVC.

El Controller es responsable de:
- Recibir cada linea del instrumento (en orden de llegada) y procesarla por completo:
  clasificar -> validar -> aplicar
- Coordinar el almacen de respuesta, el gestor de formas de onda y el registro de errores
- Recalcular el acondicionamiento cada vez que cambia el almacen o el modo de procesamiento
- Entregar vistas inmutables a los consumidores (exportacion, CLI, graficos)

Reglas:
- Validar antes de aplicar: una linea rechazada nunca deja el estado a medio actualizar.
- Ninguna falla de una linea detiene la ingesta; se registra y se sigue con la siguiente.
- Un par submuestreado (UWAVE / RAWWAVE) se entrega solo cuando esta completo,
  por retorno de procesar_linea() y por el callback al_recibir_par.
"""

import itertools
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Tuple

from bode_monitor.config.settings import (
    LIMITES_ESTRICTOS,
    LIMITES_INGESTA,
    SETTINGS,
    LimitesValidacion,
    Settings,
)
from bode_monitor.controller.clasificador import ClasificadorMensajes, TipoMensaje
from bode_monitor.controller.decodificador import ResultadoValidacion, ValidadorProtocolo
from bode_monitor.controller.fuentes import FuenteLineas
from bode_monitor.model.almacenamiento import AlmacenRespuesta
from bode_monitor.model.errores import RegistroErrores
from bode_monitor.model.exportacion import exportar_csv
from bode_monitor.model.firma import MetadatosSesion, generar_id_sesion, sign
from bode_monitor.model.formas_onda import GestorFormasOnda
from bode_monitor.model.modelo import ResumenRespuesta, acondicionar, resumir
from bode_monitor.model.muestra import ParOndaSubmuestreada, PuntoMedicion

logger = logging.getLogger(__name__)

TIPOS_SENAL = ("sine", "ecg")


@dataclass(frozen=True)
class ResultadoLinea:
    tipo: TipoMensaje
    aplicado: bool
    dato: Any = None


class ControladorBode:
    def __init__(
        self,
        settings: Settings = SETTINGS,
        modo_estricto: bool = False,
        limites: Optional[LimitesValidacion] = None,
        al_recibir_par: Optional[Callable[[ParOndaSubmuestreada], None]] = None,
    ):
        self.settings = settings

        # Dos configuraciones separadas: ingesta en vivo o estricta (con registro de errores)
        if limites is None:
            limites = LIMITES_ESTRICTOS if modo_estricto else LIMITES_INGESTA
        self.limites = limites

        self.al_recibir_par = al_recibir_par

        self.errores = RegistroErrores(settings.max_errores, settings.max_longitud_datos)
        self.almacen = AlmacenRespuesta(settings.max_puntos, settings.politica_desalojo)
        self.formas_onda = GestorFormasOnda(
            settings.max_muestras_vivo, settings.max_muestras_por_frecuencia
        )
        self.clasificador = ClasificadorMensajes()
        self.validador = ValidadorProtocolo(self.errores, settings)

        self._procesamiento = True
        self._tipo_senal = "sine"
        self._puntos: Tuple = ()

        # Identifica la sesion en la firma en vivo (no cambia con clear())
        self.id_sesion = generar_id_sesion()

    # ----------------------------
    # Ingesta
    # ----------------------------

    def procesar_linea(self, linea: str) -> ResultadoLinea:
        """
        Procesa una linea completa. Retorna que tipo de mensaje era y si se aplico.
        """
        mensaje = self.clasificador.clasificar(linea)
        tipo = mensaje.tipo

        if tipo == TipoMensaje.FREQ_RESP:
            if self._tipo_senal == "ecg":
                # En modo ECG no se construye diagrama de Bode
                return ResultadoLinea(tipo, False)

            punto = self.validador.freq_resp(mensaje.contenido, mensaje.linea, self.limites)
            if punto is None:
                return ResultadoLinea(tipo, False)

            self._aplicar_punto(punto)
            return ResultadoLinea(tipo, True, punto)

        if tipo == TipoMensaje.WAVEFORM:
            bloque = self.validador.waveform(mensaje.contenido, mensaje.linea)
            if bloque is None:
                return ResultadoLinea(tipo, False)

            freq, sample_rate, entrada, salida = bloque
            vivo = self.formas_onda.ingest_waveform_block(freq, sample_rate, entrada, salida)
            return ResultadoLinea(tipo, True, vivo)

        if tipo == TipoMensaje.UWAVE_CABECERA:
            cabecera = self.validador.cabecera_uwave(mensaje.contenido, mensaje.linea)
            if cabecera is None:
                self.clasificador.descartar_pendiente(tipo)
                return ResultadoLinea(tipo, False)
            return ResultadoLinea(tipo, True, cabecera)

        if tipo == TipoMensaje.UWAVE_PARES:
            # La cabecera ya fue validada cuando llego
            signal_freq, sample_rate = [int(v) for v in mensaje.cabecera.split(",")]
            pares = self.validador.pares_d(mensaje.contenido, mensaje.linea)
            if pares is None or not pares.ch0:
                return ResultadoLinea(tipo, False)

            par = self.formas_onda.ingest_undersampled_pair(
                signal_freq, sample_rate, pares.ch0, pares.ch1, origen="UWAVE"
            )
            self._entregar_par(par)
            return ResultadoLinea(tipo, True, par)

        if tipo == TipoMensaje.RAWWAVE_CABECERA:
            cabecera = self.validador.cabecera_rawwave(mensaje.contenido, mensaje.linea)
            if cabecera is None:
                self.clasificador.descartar_pendiente(tipo)
                return ResultadoLinea(tipo, False)
            return ResultadoLinea(tipo, True, cabecera)

        if tipo == TipoMensaje.RAWWAVE_CANAL:
            return ResultadoLinea(tipo, False)

        if tipo == TipoMensaje.RAWWAVE_COMPLETO:
            captura = self.validador.rawwave(mensaje.cabecera, mensaje.canales, mensaje.linea)
            if captura is None:
                return ResultadoLinea(tipo, False)

            signal_freq, sample_rate, total_time_ms, ch0, ch1 = captura
            par = self.formas_onda.ingest_undersampled_pair(
                signal_freq, sample_rate, ch0, ch1, total_time_ms=total_time_ms, origen="RAWWAVE"
            )
            self._entregar_par(par)
            return ResultadoLinea(tipo, True, par)

        if tipo == TipoMensaje.D_PARES:
            # Volcado generico: se valida, pero sin contexto de frecuencia no se guarda
            pares = self.validador.pares_d(mensaje.contenido, mensaje.linea)
            return ResultadoLinea(tipo, False, pares)

        return ResultadoLinea(tipo, False)

    def procesar_lineas(self, lineas: Iterable[str]) -> int:
        """Procesa varias lineas en orden; retorna cuantas se aplicaron."""
        aplicadas = 0
        for linea in lineas:
            if self.procesar_linea(linea).aplicado:
                aplicadas += 1
        return aplicadas

    def consumir(self, fuente: FuenteLineas, max_lineas: Optional[int] = None) -> int:
        """
        Lee lineas de una fuente hasta que se agote o hasta max_lineas.
        """
        leidas = 0
        for linea in itertools.islice(fuente, max_lineas):
            self.procesar_linea(linea)
            leidas += 1
        return leidas

    def _aplicar_punto(self, punto: PuntoMedicion) -> None:
        self.almacen.upsert(punto)
        self._recalcular()

        if punto.is_calibrated:
            logger.info(
                "Dato [calibrado]: f=%dHz, H=%.4f (original=%.4f), theta=%.2f (original=%.2f)",
                punto.freq,
                punto.h,
                punto.h_raw,
                punto.theta,
                punto.theta_raw,
            )
        else:
            logger.info("Dato: f=%dHz, H=%.4f, theta=%.2f", punto.freq, punto.h, punto.theta)

    def _entregar_par(self, par: ParOndaSubmuestreada) -> None:
        if self.al_recibir_par is not None:
            self.al_recibir_par(par)

    def _recalcular(self) -> None:
        self._puntos = acondicionar(self.almacen.snapshot(), self._procesamiento, self.settings)

    # ----------------------------
    # Modos
    # ----------------------------

    @property
    def processing_enabled(self) -> bool:
        return self._procesamiento

    def set_processing(self, habilitado: bool) -> None:
        self._procesamiento = bool(habilitado)
        self._recalcular()

    def toggle_processing(self) -> bool:
        self.set_processing(not self._procesamiento)
        return self._procesamiento

    @property
    def tipo_senal(self) -> str:
        return self._tipo_senal

    def set_tipo_senal(self, tipo: str) -> None:
        """
        Cambia entre "sine" y "ecg". Al pasar a ECG se limpian los datos para no mezclar.
        """
        if tipo not in TIPOS_SENAL:
            raise ValueError(f"Tipo de senal invalido: {tipo!r} (opciones: {', '.join(TIPOS_SENAL)})")
        if tipo == "ecg" and self._tipo_senal != "ecg":
            self.clear()
        self._tipo_senal = tipo

    # ----------------------------
    # Limpieza
    # ----------------------------

    def clear(self) -> None:
        """Vacia almacen, resultados derivados, formas de onda y cabeceras pendientes."""
        self.almacen.clear()
        self.formas_onda.reset()
        self.clasificador.reset()
        self._recalcular()
        logger.info("Datos limpiados")

    def clear_errors(self) -> None:
        self.errores.clear()

    # ----------------------------
    # Lectura
    # ----------------------------

    @property
    def puntos(self) -> Tuple:
        """Puntos acondicionados (o crudos si el procesamiento esta deshabilitado)."""
        return self._puntos

    @property
    def puntos_crudos(self) -> Tuple[PuntoMedicion, ...]:
        return self.almacen.snapshot()

    def resumen(self) -> Optional[ResumenRespuesta]:
        return resumir(self.almacen.snapshot())

    def validar_linea(self, linea: str) -> ResultadoValidacion:
        """Prueba manual de una linea (modo estricto, no aplica nada)."""
        resultado = self.validador.validar_linea(linea)
        if resultado.valido:
            logger.info("Protocolo valido: %s", linea[:30])
        else:
            logger.warning("Protocolo invalido: %s", resultado.mensaje)
        return resultado

    def firma(self, metadatos: Optional[Iterable] = None) -> str:
        return sign(self.almacen.snapshot(), metadatos)

    def metadatos_sesion(self, marca_ms: Optional[int] = None) -> MetadatosSesion:
        if marca_ms is None:
            marca_ms = int(time.time() * 1000)
        return MetadatosSesion(self.id_sesion, marca_ms, len(self.almacen))

    def firma_sesion(self, marca_ms: Optional[int] = None) -> str:
        """
        Firma en vivo: id de sesion | marca de tiempo (ms) | cantidad de puntos, antes de los datos.
        """
        return self.firma(self.metadatos_sesion(marca_ms).campos())

    def exportar(self, ruta: Optional[str] = None, ahora: Optional[datetime] = None) -> Path:
        """
        Exporta el contenido del almacen a CSV firmado.

        Errores:
        - ValueError si no hay datos
        """
        path = exportar_csv(
            self.almacen.snapshot(),
            ruta or self.settings.ruta_csv,
            ahora=ahora,
            settings=self.settings,
        )
        logger.info("CSV exportado: %s (firma %s)", path, self.firma())
        return path
