"""
Gestor de formas de onda (dos canales: entrada PA6 / salida PB1)

Este modulo es el unico dueño de los buffers de muestras:

- Buffer "en vivo": siempre el ultimo bloque recibido, con tiempos desde 0.
  No acumula: cada bloque lo reemplaza completo (vista de largo fijo).
- Mapa por frecuencia: acumula bloques de la misma frecuencia hasta un tope,
  descartando las muestras mas antiguas. Si cambia el sample_rate de esa
  frecuencia, la entrada se reinicia en vez de mezclar datos incompatibles.
- Ultimo par submuestreado (UWAVE / RAWWAVE) ya completo.

Los buffers son inmutables (BufferOnda); cada ingesta construye uno nuevo y lo instala,
asi un lector nunca ve un buffer a medio actualizar ni por encima de su capacidad.
"""

import logging
from typing import Dict, List, Optional, Sequence

from bode_monitor.model.ecuaciones import marcas_tiempo_ms
from bode_monitor.model.muestra import BufferOnda, ParOndaSubmuestreada

logger = logging.getLogger(__name__)


def _validar_bloque(freq: int, sample_rate: int, canal_a: Sequence[int], canal_b: Sequence[int]) -> None:
    # Antes de cualquier division por sample_rate
    if sample_rate <= 0:
        raise ValueError(f"sample_rate invalido: {sample_rate} (debe ser positivo)")
    if freq <= 0:
        raise ValueError(f"Frecuencia invalida: {freq} (debe ser positiva)")
    if len(canal_a) != len(canal_b):
        raise ValueError(
            f"Los canales deben tener el mismo largo ({len(canal_a)} != {len(canal_b)})"
        )


class GestorFormasOnda:
    def __init__(self, max_muestras_vivo: int = 512, max_muestras_por_frecuencia: int = 1024):
        if max_muestras_vivo <= 0 or max_muestras_por_frecuencia <= 0:
            raise ValueError("Las capacidades de los buffers deben ser positivas")

        self.max_muestras_vivo = max_muestras_vivo
        self.max_muestras_por_frecuencia = max_muestras_por_frecuencia

        self._vivo: Optional[BufferOnda] = None
        self._por_frecuencia: Dict[int, BufferOnda] = {}
        self._ultimo_par: Optional[ParOndaSubmuestreada] = None

    # ----------------------------
    # Ingesta
    # ----------------------------

    def ingest_waveform_block(
        self,
        freq: int,
        sample_rate: int,
        input_samples: Sequence[int],
        output_samples: Sequence[int],
    ) -> BufferOnda:
        """
        Instala un bloque WAVEFORM en el buffer en vivo y lo acumula en el mapa por frecuencia.

        Retorna el nuevo buffer en vivo.
        """
        _validar_bloque(freq, sample_rate, input_samples, output_samples)

        if self._vivo is not None and (self._vivo.freq, self._vivo.sample_rate) != (freq, sample_rate):
            logger.info(
                "Cambio de contexto del buffer en vivo: %d Hz @ %d -> %d Hz @ %d, se reinicia",
                self._vivo.freq,
                self._vivo.sample_rate,
                freq,
                sample_rate,
            )
            self._vivo = None

        entrada = tuple(input_samples)[-self.max_muestras_vivo:]
        salida = tuple(output_samples)[-self.max_muestras_vivo:]
        self._vivo = BufferOnda(
            freq=freq,
            sample_rate=sample_rate,
            input=entrada,
            output=salida,
            time_stamps=tuple(marcas_tiempo_ms(len(entrada), sample_rate)),
        )

        self._acumular(freq, sample_rate, input_samples, output_samples)

        logger.debug(
            "Forma de onda: %d Hz, %d puntos (%.1f ms)",
            freq,
            len(input_samples),
            len(input_samples) * 1000.0 / sample_rate,
        )
        return self._vivo

    def _acumular(
        self, freq: int, sample_rate: int, input_samples: Sequence[int], output_samples: Sequence[int]
    ) -> None:
        existente = self._por_frecuencia.get(freq)

        if existente is not None and existente.sample_rate == sample_rate:
            entrada = existente.input + tuple(input_samples)
            salida = existente.output + tuple(output_samples)
            indice_inicial = existente.indice_inicial
        else:
            if existente is not None:
                logger.info(
                    "%d Hz: sample_rate cambio %d -> %d, se descartan las muestras anteriores",
                    freq,
                    existente.sample_rate,
                    sample_rate,
                )
            entrada = tuple(input_samples)
            salida = tuple(output_samples)
            indice_inicial = 0

        # Ventana deslizante: se descartan las mas antiguas
        sobrante = max(0, len(entrada) - self.max_muestras_por_frecuencia)
        entrada = entrada[sobrante:]
        salida = salida[sobrante:]
        indice_inicial += sobrante

        self._por_frecuencia[freq] = BufferOnda(
            freq=freq,
            sample_rate=sample_rate,
            input=entrada,
            output=salida,
            time_stamps=tuple(marcas_tiempo_ms(len(entrada), sample_rate, indice_inicial)),
            indice_inicial=indice_inicial,
        )

    def ingest_undersampled_pair(
        self,
        signal_freq: int,
        sample_rate: int,
        ch0_samples: Sequence[int],
        ch1_samples: Sequence[int],
        total_time_ms: Optional[float] = None,
        origen: str = "UWAVE",
    ) -> ParOndaSubmuestreada:
        """
        Construye el par submuestreado a partir de una cabecera y sus dos canales ya completos.

        No toca el almacen ni los buffers WAVEFORM; solo recuerda el ultimo par.
        """
        _validar_bloque(signal_freq, sample_rate, ch0_samples, ch1_samples)

        par = ParOndaSubmuestreada(
            signal_freq=signal_freq,
            sample_rate=sample_rate,
            ch0=tuple(ch0_samples),
            ch1=tuple(ch1_samples),
            time_stamps=tuple(marcas_tiempo_ms(len(ch0_samples), sample_rate)),
            origen=origen,
            total_time_ms=total_time_ms,
        )
        self._ultimo_par = par

        if par.submuestreado:
            logger.debug(
                "%s: %d Hz muestreado a %d Hz, alias=%s Hz",
                origen,
                signal_freq,
                sample_rate,
                par.alias_freq,
            )
        return par

    def reset(self) -> None:
        self._vivo = None
        self._por_frecuencia = {}
        self._ultimo_par = None

    # ----------------------------
    # Lectura
    # ----------------------------

    @property
    def vivo(self) -> Optional[BufferOnda]:
        return self._vivo

    @property
    def ultimo_par(self) -> Optional[ParOndaSubmuestreada]:
        return self._ultimo_par

    def por_frecuencia(self, freq: int) -> Optional[BufferOnda]:
        return self._por_frecuencia.get(freq)

    def frecuencias(self) -> List[int]:
        return sorted(self._por_frecuencia)

    def snapshot(self) -> Dict[int, BufferOnda]:
        """Copia del mapa por frecuencia (los buffers ya son inmutables)."""
        return dict(self._por_frecuencia)
