"""
Configuracion central del proyecto Bode Monitor.

Idea:
- Aqui van los parametros fijos del pipeline (serial, capacidades, umbrales de procesamiento).
- El Controller usa estos valores para validar y aplicar cada linea recibida.
- Los consumidores (exportacion, CLI) leen estos limites para mostrar y exportar.

Hay DOS configuraciones de validacion para FREQ_RESP, y se mantienen separadas a proposito:
- LIMITES_INGESTA: la que usa la ingesta en vivo (fallas solo al log general).
- LIMITES_ESTRICTOS: la del modo de prueba manual (fallas al registro de errores).
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class LimitesValidacion:
    """
    Rango aceptado para una linea FREQ_RESP.

    registrar_errores indica si una falla se agrega al RegistroErrores
    (modo estricto) o solo se informa al log general (ingesta en vivo).
    """

    nombre: str
    freq_min: float
    freq_max: float
    h_min: float
    h_max: float
    theta_min: float
    theta_max: float
    registrar_errores: bool


# Ingesta en vivo: barrido estandar 10..1000 Hz, fase con tolerancia para wrap
LIMITES_INGESTA = LimitesValidacion(
    nombre="ingesta",
    freq_min=10,
    freq_max=1000,
    h_min=0.0,
    h_max=10.0,
    theta_min=-200.0,
    theta_max=200.0,
    registrar_errores=False,
)

# Prueba manual de protocolo: limites amplios, pero cada falla queda registrada
LIMITES_ESTRICTOS = LimitesValidacion(
    nombre="estricto",
    freq_min=1,
    freq_max=100_000,
    h_min=0.0,
    h_max=1000.0,
    theta_min=-360.0,
    theta_max=360.0,
    registrar_errores=True,
)


def limites_para_barrido(freq_max: int) -> LimitesValidacion:
    """
    Limites de ingesta para un barrido con otro techo de frecuencia (ej: 10..2000 Hz).
    """
    if freq_max <= LIMITES_INGESTA.freq_min:
        raise ValueError(
            f"freq_max debe ser mayor que {LIMITES_INGESTA.freq_min} Hz (recibido {freq_max})"
        )
    return replace(LIMITES_INGESTA, nombre=f"ingesta_{freq_max}", freq_max=freq_max)


@dataclass(frozen=True)
class Settings:
    # -------------------------------
    # Puertos / comunicacion (instrumento)
    # -------------------------------
    puerto_serial: str = "COM3"     # puerto serial (Windows)
    baudrate: int = 115200          # debe coincidir con el firmware
    timeout_s: float = 1.0          # timeout de lectura serial (segundos)

    # -------------------------------
    # Almacen de respuesta en frecuencia
    # -------------------------------
    max_puntos: int = 1000                  # capacidad maxima del almacen
    politica_desalojo: str = "insercion"    # "insercion" (mas antiguo escrito) o "frecuencia" (menor freq)

    # -------------------------------
    # Procesamiento de fase / magnitud
    # -------------------------------
    umbral_salto_fase: float = 270.0        # salto entre puntos que se considera wrap (grados)
    umbral_desviacion_fase: float = 50.0    # desviacion maxima respecto al punto medio de vecinos
    ventana_baja: int = 7                   # ventana de suavizado para freq < corte_baja_hz
    ventana_media: int = 5                  # ventana para corte_baja_hz <= freq < corte_media_hz
    ventana_alta: int = 3                   # ventana para freq >= corte_media_hz
    corte_baja_hz: float = 100.0
    corte_media_hz: float = 500.0
    db_piso: float = -100.0                 # valor dB cuando H <= 0

    # -------------------------------
    # Formas de onda
    # -------------------------------
    max_muestras_vivo: int = 512            # ventana del buffer "en vivo"
    max_muestras_por_frecuencia: int = 1024 # tope de acumulacion por frecuencia
    adc_min: int = 0                        # ADC de 12 bits
    adc_max: int = 4095

    # -------------------------------
    # Lineas D: (pares de dos canales)
    # -------------------------------
    puntos_d_esperados: int = 64
    fraccion_minima_d: float = 0.5          # menos de esto -> error de formato
    pares_muestreo_d: int = 10              # pares revisados al inicio de la linea
    fraccion_maxima_invalidos_d: float = 0.3

    # -------------------------------
    # Cabecera UWAVE (submuestreo)
    # -------------------------------
    uwave_freq_min: int = 10
    uwave_freq_max: int = 2000
    uwave_sr_min: int = 10
    uwave_sr_max: int = 50_000

    # -------------------------------
    # Registro de errores de protocolo
    # -------------------------------
    max_errores: int = 100
    max_longitud_datos: int = 100           # los datos crudos se truncan a este largo

    # -------------------------------
    # Salida de datos
    # -------------------------------
    ruta_csv: str = "salidas/respuesta_frecuencia.csv"
    modelo_dispositivo: str = "GD32F103CBT6"
    version_firmware: str = "v2.0.1"


# Instancia global utilizada por el resto del proyecto
SETTINGS = Settings()
