"""
Exportacion de la respuesta en frecuencia a CSV firmado

Formato del archivo:
- Cabecera de comentarios (#) con hora de exportacion, dispositivo, cantidad de puntos
  y la firma FNV1a-XXXXXXXX
- Tabla: No, Frequency(Hz), Omega(rad/s), Input_K(V), Output_K1(V), H(omega)=K1/K, H_dB(dB), Theta(deg)
- Pie de comentarios que repite la firma

La firma se calcula sobre la misma secuencia que se escribe en la tabla (sin metadata),
asi cualquiera puede recalcularla a partir de las filas.
"""

import io
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from bode_monitor.config.settings import SETTINGS, Settings
from bode_monitor.model.firma import sign

COLUMNAS = [
    "No",
    "Frequency(Hz)",
    "Omega(rad/s)",
    "Input_K(V)",
    "Output_K1(V)",
    "H(omega)=K1/K",
    "H_dB(dB)",
    "Theta(deg)",
]

LINEA = "# ============================================"


def tabla_puntos(puntos: Sequence) -> pd.DataFrame:
    """
    Filas de la exportacion ya formateadas (texto con decimales fijos).
    """
    filas = [
        {
            "No": i + 1,
            "Frequency(Hz)": p.freq,
            "Omega(rad/s)": f"{p.omega:.2f}",
            "Input_K(V)": f"{p.k_in:.4f}",
            "Output_K1(V)": f"{p.k_out:.4f}",
            "H(omega)=K1/K": f"{p.h:.6f}",
            "H_dB(dB)": f"{p.h_db:.2f}",
            "Theta(deg)": f"{p.theta:.2f}",
        }
        for i, p in enumerate(puntos)
    ]
    return pd.DataFrame(filas, columns=COLUMNAS)


def construir_csv(
    puntos: Sequence,
    ahora: Optional[datetime] = None,
    settings: Settings = SETTINGS,
) -> str:
    """
    Documento CSV completo (cabecera + tabla + pie) como texto.

    Errores:
    - ValueError si no hay puntos para exportar
    """
    if not puntos:
        raise ValueError("No hay datos para exportar")

    ahora = ahora or datetime.now()
    marca = ahora.isoformat(timespec="seconds")
    firma = sign(puntos)

    salida = io.StringIO()
    salida.write("# Analizador de respuesta en frecuencia - archivo de exportacion\n")
    salida.write(LINEA + "\n")
    salida.write(f"# Hora de exportacion: {marca}\n")
    salida.write(f"# Dispositivo: {settings.modelo_dispositivo}\n")
    salida.write(f"# Firmware: {settings.version_firmware}\n")
    salida.write(f"# Comunicacion: serial {settings.baudrate}bps\n")
    salida.write(f"# Puntos: {len(puntos)}\n")
    salida.write(f"# Firma de datos: FNV1a-{firma}\n")
    salida.write(LINEA + "\n")
    salida.write("\n")

    tabla_puntos(puntos).to_csv(salida, index=False, lineterminator="\n")

    salida.write("\n")
    salida.write(LINEA + "\n")
    salida.write("# Verificacion de integridad\n")
    salida.write(f"# Firma del archivo: FNV1a-{firma}\n")
    salida.write(f"# Generado: {marca}\n")
    salida.write(LINEA + "\n")

    return salida.getvalue()


def nombre_archivo(ahora: datetime, firma: str) -> str:
    """frequency_response_<YYYY-MM-DDTHH-MM-SS>_<firma>.csv"""
    marca = ahora.strftime("%Y-%m-%dT%H-%M-%S")
    return f"frequency_response_{marca}_{firma[:8]}.csv"


def exportar_csv(
    puntos: Sequence,
    ruta: str,
    ahora: Optional[datetime] = None,
    settings: Settings = SETTINGS,
) -> Path:
    """
    Escribe el CSV firmado en ruta (crea las carpetas si faltan) y retorna el Path final.
    Si ruta es una carpeta existente, se usa nombre_archivo() dentro de ella.
    """
    ahora = ahora or datetime.now()
    contenido = construir_csv(puntos, ahora=ahora, settings=settings)

    path = Path(ruta)
    if path.is_dir():
        path = path / nombre_archivo(ahora, sign(puntos))

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contenido, encoding="utf-8")
    return path
