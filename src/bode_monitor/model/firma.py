"""
Firma de integridad de los datos exportados

Se calcula un hash FNV-1a de 32 bits sobre una serializacion determinista de los puntos:

    <indice>:<freq>_<K>_<K1>_<H>_<theta>      (K, K1, H con 4 decimales; theta con 2)

unidos con "|". Opcionalmente se antepone metadata de sesion ("id|marca|n|...").

El resultado son 8 caracteres hexadecimales en mayusculas, reproducible en cualquier
plataforma (aritmetica entera pura, formato sin locale).

Nota:
- No es una firma criptografica, solo evidencia de manipulacion accidental o manual.
- Redondeo con signo: un valor negativo que redondea a cero se escribe "-0.00",
  igual que en la herramienta web del analizador. Solo -0.0 exacto se escribe "0.00".
"""

import random
import string
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

FNV_SEMILLA = 2166136261
FNV_PRIMO = 16777619     # = 1 + 2^1 + 2^4 + 2^7 + 2^8 + 2^24
MASCARA_32 = 0xFFFFFFFF

SEPARADOR = "|"


def _fijo(valor: float, decimales: int) -> str:
    # Solo el cero exacto pierde el signo; -0.001 con 2 decimales queda "-0.00"
    if valor == 0.0:
        valor = 0.0
    return f"{valor:.{decimales}f}"


def serializar_punto(indice: int, punto) -> str:
    return (
        f"{indice}:{punto.freq}"
        f"_{_fijo(punto.k_in, 4)}"
        f"_{_fijo(punto.k_out, 4)}"
        f"_{_fijo(punto.h, 4)}"
        f"_{_fijo(punto.theta, 2)}"
    )


def serializar(puntos: Sequence, metadatos: Optional[Iterable] = None) -> str:
    cuerpo = SEPARADOR.join(serializar_punto(i, p) for i, p in enumerate(puntos))
    if metadatos is None:
        return cuerpo
    cabecera = SEPARADOR.join(str(m) for m in metadatos)
    return f"{cabecera}{SEPARADOR}{cuerpo}"


def fnv1a_32(datos: bytes) -> int:
    h = FNV_SEMILLA
    for byte in datos:
        h ^= byte
        h = (h * FNV_PRIMO) & MASCARA_32
    return h


def sign(puntos: Sequence, metadatos: Optional[Iterable] = None) -> str:
    """
    Firma de 8 caracteres hex (mayusculas) para la secuencia de puntos y su metadata.
    """
    texto = serializar(puntos, metadatos)
    return f"{fnv1a_32(texto.encode('utf-8')):08X}"


# -------------------------------------------------------
# Metadata de sesion (firma en vivo)
# -------------------------------------------------------

@dataclass(frozen=True)
class MetadatosSesion:
    id_sesion: str
    marca_ms: int
    n_puntos: int

    def campos(self):
        return (self.id_sesion, self.marca_ms, self.n_puntos)


def _base36(n: int) -> str:
    digitos = string.digits + string.ascii_lowercase
    if n == 0:
        return "0"
    texto = ""
    while n:
        n, resto = divmod(n, 36)
        texto = digitos[resto] + texto
    return texto


def generar_id_sesion(ahora_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    """
    Identificador de sesion: marca de tiempo en base 36 + 7 caracteres aleatorios, en mayusculas.
    """
    if ahora_ms is None:
        ahora_ms = int(time.time() * 1000)
    rng = rng or random.Random()
    aleatorio = "".join(rng.choice(string.digits + string.ascii_lowercase) for _ in range(7))
    return f"{_base36(ahora_ms)}-{aleatorio}".upper()
