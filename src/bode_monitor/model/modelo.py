"""
Modelo del sistema: acondicionamiento de la respuesta en frecuencia

Este modulo representa la capa Modelo del patron MVC.

Recibe el contenido del almacen (ordenado por frecuencia) y aplica tres pasadas en orden:
1) Unwrap de fase: elimina saltos de +-360 grados entre puntos consecutivos.
2) Correccion de atipicos: un punto interior muy lejos de sus vecinos se reemplaza
   por el punto medio entre ellos. Los extremos nunca se tocan.
3) Suavizado adaptativo: promedio centrado de fase y magnitud, con ventana segun frecuencia.

Nota:
- Siempre se recalcula desde cero con la secuencia completa (nunca incremental),
  asi el resultado es determinista para un mismo contenido del almacen.
- Si el procesamiento esta deshabilitado se retorna la secuencia cruda sin cambios.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from bode_monitor.config.settings import SETTINGS, Settings
from bode_monitor.model import ecuaciones
from bode_monitor.model.muestra import PuntoAcondicionado, PuntoMedicion

PuntoSalida = Union[PuntoMedicion, PuntoAcondicionado]


def acondicionar(
    puntos: Sequence[PuntoMedicion],
    habilitado: bool = True,
    settings: Settings = SETTINGS,
) -> Tuple[PuntoSalida, ...]:
    """
    Ejecuta unwrap -> atipicos -> suavizado sobre una secuencia ordenada por frecuencia.
    """
    if not habilitado:
        return tuple(puntos)

    if not puntos:
        return ()

    # 1) Unwrap
    unwrapped = ecuaciones.desenvolver_fase(
        [p.theta for p in puntos], umbral=settings.umbral_salto_fase
    )

    # 2) Atipicos
    corregidas, atipicos = ecuaciones.corregir_atipicos(
        unwrapped, umbral=settings.umbral_desviacion_fase
    )

    # 3) Suavizado (fase corregida y magnitud)
    hs = [p.h for p in puntos]
    resultado = []
    for i, punto in enumerate(puntos):
        ventana = ecuaciones.ventana_suavizado(
            punto.freq,
            corte_baja=settings.corte_baja_hz,
            corte_media=settings.corte_media_hz,
            ventana_baja=settings.ventana_baja,
            ventana_media=settings.ventana_media,
            ventana_alta=settings.ventana_alta,
        )
        h_smooth = ecuaciones.promedio_centrado(hs, i, ventana)

        resultado.append(
            PuntoAcondicionado(
                punto=punto,
                theta_unwrapped=unwrapped[i],
                theta_corrected=corregidas[i],
                theta_smooth=ecuaciones.promedio_centrado(corregidas, i, ventana),
                h_smooth=h_smooth,
                h_db_smooth=ecuaciones.h_db(h_smooth, piso=settings.db_piso),
                is_outlier=atipicos[i],
            )
        )

    return tuple(resultado)


@dataclass(frozen=True)
class ResumenRespuesta:
    n_puntos: int
    freq_min: int
    freq_max: int
    h_promedio: float
    theta_promedio: float


def resumir(puntos: Sequence[PuntoSalida]) -> Optional[ResumenRespuesta]:
    """
    Estadisticas simples del barrido (rango de frecuencia, H y theta promedio).
    Retorna None si no hay puntos.
    """
    if not puntos:
        return None

    n = len(puntos)
    return ResumenRespuesta(
        n_puntos=n,
        freq_min=min(p.freq for p in puntos),
        freq_max=max(p.freq for p in puntos),
        h_promedio=sum(p.h for p in puntos) / n,
        theta_promedio=sum(p.theta for p in puntos) / n,
    )
