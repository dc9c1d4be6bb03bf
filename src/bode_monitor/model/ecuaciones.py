"""
Ecuaciones del sistema (Bode Monitor)

Este modulo contiene las funciones matematicas utilizadas por el pipeline, tales como:

- Frecuencia angular
- Conversion segura a dB (con piso cuando H <= 0)
- Desenvolvimiento de fase (unwrap de saltos de +-360 grados)
- Correccion de valores atipicos de fase
- Ventanas de suavizado adaptativas segun la frecuencia
- Frecuencia de alias para muestreo por debajo de Nyquist

Nota:
- Todas las funciones son puras: reciben secuencias y retornan listas nuevas.
- No se usa FFT ni calibracion; solo se procesan valores ya medidos por el firmware.
"""

import math
from typing import List, Optional, Sequence, Tuple

DB_PISO = -100.0


# -------------------------------------------------------
# Utilidades basicas
# -------------------------------------------------------

def omega(freq: float) -> float:
    """Frecuencia angular (rad/s): 2*pi*f."""
    return 2.0 * math.pi * freq


def h_db(h: float, piso: float = DB_PISO) -> float:
    """
    Magnitud en dB:
        H_dB = 20 * log10(H)

    Para H <= 0 el logaritmo no existe, se retorna el piso configurado.
    """
    if h <= 0.0:
        return piso
    return 20.0 * math.log10(h)


# -------------------------------------------------------
# Fase: unwrap y valores atipicos
# -------------------------------------------------------

def desenvolver_fase(thetas: Sequence[float], umbral: float = 270.0) -> List[float]:
    """
    Elimina los saltos de +-360 grados de una secuencia de fases ordenada por frecuencia.

    Se mantiene un offset acumulado:
    - salto > +umbral  -> offset -= 360
    - salto < -umbral  -> offset += 360

    El salto se mide sobre las fases crudas consecutivas, no sobre las ya corregidas.
    """
    resultado: List[float] = []
    offset = 0.0

    for i, theta in enumerate(thetas):
        if i > 0:
            salto = theta - thetas[i - 1]
            if salto > umbral:
                offset -= 360.0
            elif salto < -umbral:
                offset += 360.0
        resultado.append(theta + offset)

    return resultado


def corregir_atipicos(
    thetas: Sequence[float], umbral: float = 50.0
) -> Tuple[List[float], List[bool]]:
    """
    Corrige puntos interiores que se alejan demasiado de sus vecinos.

    Para cada punto interior se calcula el punto medio entre el anterior y el siguiente.
    Si la desviacion supera el umbral, el punto se reemplaza por ese punto medio
    y se marca como atipico. Los extremos nunca se modifican.

    Retorna (thetas_corregidas, marcas_atipico).
    """
    n = len(thetas)
    corregidas = list(thetas)
    atipicos = [False] * n

    for i in range(1, n - 1):
        esperado = (thetas[i - 1] + thetas[i + 1]) / 2.0
        if abs(thetas[i] - esperado) > umbral:
            corregidas[i] = esperado
            atipicos[i] = True

    return corregidas, atipicos


# -------------------------------------------------------
# Suavizado adaptativo
# -------------------------------------------------------

def ventana_suavizado(
    freq: float,
    corte_baja: float = 100.0,
    corte_media: float = 500.0,
    ventana_baja: int = 7,
    ventana_media: int = 5,
    ventana_alta: int = 3,
) -> int:
    """
    Tamano de ventana segun la frecuencia del punto.

    Baja frecuencia tiene mas ruido relativo -> ventana mas ancha.
    """
    if freq < corte_baja:
        return ventana_baja
    if freq < corte_media:
        return ventana_media
    return ventana_alta


def promedio_centrado(valores: Sequence[float], indice: int, ventana: int) -> float:
    """
    Promedio de una ventana centrada en indice, recortada a los bordes de la secuencia.
    """
    mitad = ventana // 2
    inicio = max(0, indice - mitad)
    fin = min(len(valores), indice + mitad + 1)
    tramo = valores[inicio:fin]
    return sum(tramo) / len(tramo)


# -------------------------------------------------------
# Submuestreo
# -------------------------------------------------------

def frecuencia_alias(signal_freq: float, sample_rate: float) -> Optional[float]:
    """
    Frecuencia aparente al muestrear signal_freq con sample_rate.

    Si se cumple Nyquist (sample_rate >= 2 * signal_freq) no hay alias y retorna None.
    """
    if sample_rate <= 0:
        raise ValueError("sample_rate debe ser positivo")
    if sample_rate >= 2.0 * signal_freq:
        return None
    k = round(signal_freq / sample_rate)
    return abs(signal_freq - k * sample_rate)


def marcas_tiempo_ms(cantidad: int, sample_rate: float, indice_inicial: int = 0) -> List[float]:
    """
    Reconstruye los tiempos (ms) de cada muestra: (indice / sample_rate) * 1000.

    Se multiplica antes de dividir para que indices enteros den tiempos exactos.
    """
    if sample_rate <= 0:
        raise ValueError("sample_rate debe ser positivo")
    return [(indice_inicial + i) * 1000.0 / sample_rate for i in range(cantidad)]
