"""
Este modulo define las fuentes de lineas crudas para el controller.

Una fuente es un componente que entrega lineas de texto ya recortadas, en orden de llegada:
- FuenteSerial: lee el puerto serial del instrumento y envia comandos.
- FuenteArchivo: reproduce una captura guardada en un archivo de texto.
- FuenteSimulada: genera un barrido sintetico (desarrollo / presentacion).

Idea de arquitectura:
- El Controller solo conoce el contrato FuenteLineas.leer_linea().
- Asi se puede cambiar entre Serial / Archivo / Simulada sin reescribir la logica del Controller.
- El enmarcado en lineas y los timeouts son problema de la fuente, no del pipeline.
"""

import math
import random
from collections import deque
from pathlib import Path
from typing import Deque, Iterator, List, Optional, Sequence, TextIO

from bode_monitor.config.settings import SETTINGS


# ============================================================
# 0) CONTRATO BASE (interfaz)
# ============================================================

class FuenteLineas:
    """
    Contrato que deben cumplir todas las fuentes de lineas.

    El ControladorBode solo necesita:
    - leer_linea() -> str   (StopIteration cuando la fuente se agota)

    Segun el transporte, una fuente tambien ofrece:
    - conectar() / cerrar() (puerto serial o archivo abierto)
    - enviar_comando() (si la fuente acepta comandos hacia el instrumento)
    """

    def leer_linea(self) -> str:
        raise NotImplementedError

    def __iter__(self) -> Iterator[str]:
        while True:
            try:
                yield self.leer_linea()
            except StopIteration:
                return


# ============================================================
# 1) FUENTE SERIAL (INSTRUMENTO REAL)
# ============================================================

class FuenteSerial(FuenteLineas):
    """
    Fuente conectada al instrumento por puerto serial.

    Responsabilidad:
    - Leer lineas desde el puerto serial (sin lineas vacias).
    - Enviar comandos terminados en CRLF.

    Comandos que entiende el firmware:
      SWEEP, FREQ_TEST:<f>, FREQ:<f>, WAVE, UWAVE:<f>,<sr>, TYPE:SINE, TYPE:ECG, START
    """

    def __init__(self, puerto: str, baudrate: int = 115200, timeout_s: float = 1.0):
        self.puerto = puerto
        self.baudrate = baudrate
        self.timeout_s = timeout_s

        # pyserial.Serial, abierto recien en conectar()
        self._ser = None

    # ----------------------------
    # Conexion y cierre
    # ----------------------------

    def conectar(self) -> None:
        """
        Abre el puerto serial y limpia lo que hubiera quedado en los buffers.
        """
        import serial  # pyserial

        # Con timeout, readline() vuelve vacio si el instrumento no responde
        self._ser = serial.Serial(self.puerto, self.baudrate, timeout=self.timeout_s)

        self._ser.reset_input_buffer()
        self._ser.reset_output_buffer()

    def cerrar(self) -> None:
        if self._ser is not None and self._ser.is_open:
            self._ser.close()

    # ----------------------------
    # Envio de comandos
    # ----------------------------

    def enviar_comando(self, comando: str) -> None:
        """
        Envia un comando al instrumento, agregando CRLF.
        """
        if self._ser is None:
            raise RuntimeError(f"Puerto {self.puerto} sin abrir, falta conectar()")

        linea = comando.strip() + "\r\n"
        self._ser.write(linea.encode("utf-8"))

    def iniciar_barrido(self) -> None:
        self.enviar_comando("SWEEP")

    def probar_frecuencia(self, freq: int) -> None:
        self.enviar_comando(f"FREQ_TEST:{int(freq)}")

    def fijar_frecuencia(self, freq: int) -> None:
        """
        Cambia la frecuencia del generador (monitor en vivo).
        La espera de estabilizacion queda a cargo de quien llama.
        """
        self.enviar_comando(f"FREQ:{int(freq)}")

    def solicitar_onda(self) -> None:
        self.enviar_comando("WAVE")

    def solicitar_submuestreo(self, signal_freq: int, sample_rate: int) -> None:
        self.enviar_comando(f"UWAVE:{int(signal_freq)},{int(sample_rate)}")

    def set_tipo_senal(self, tipo: str) -> None:
        if tipo not in ("sine", "ecg"):
            raise ValueError(f"Tipo de senal invalido: {tipo!r}")
        self.enviar_comando("TYPE:ECG" if tipo == "ecg" else "TYPE:SINE")

    def start_stream(self) -> None:
        self.enviar_comando("START")

    # ----------------------------
    # Lectura de lineas
    # ----------------------------

    def leer_linea(self) -> str:
        """
        Lee la siguiente linea no vacia del serial.

        Una lectura vacia significa que vencio el timeout: TimeoutError.
        """
        if self._ser is None:
            raise RuntimeError(f"Puerto {self.puerto} sin abrir, falta conectar()")

        while True:
            raw = self._ser.readline()

            if not raw:
                raise TimeoutError("Timeout leyendo del puerto serial.")

            linea = raw.decode("utf-8", errors="ignore").strip()

            if linea != "":
                return linea


# ============================================================
# 2) FUENTE ARCHIVO (REPRODUCCION DE CAPTURAS)
# ============================================================

class FuenteArchivo(FuenteLineas):
    """
    Reproduce una captura de texto (una linea del instrumento por linea del archivo).

    Las lineas vacias se saltan. Al terminar el archivo levanta StopIteration.
    """

    def __init__(self, ruta: str):
        self.ruta = ruta
        self.path = Path(ruta)

        if not self.path.exists():
            raise FileNotFoundError(f"No existe el archivo de captura: {ruta}")

        self._archivo: TextIO = self.path.open(mode="r", encoding="utf-8", errors="ignore")

    def cerrar(self) -> None:
        self._archivo.close()

    def leer_linea(self) -> str:
        for linea in self._archivo:
            linea = linea.strip()
            if linea != "":
                return linea
        raise StopIteration("Fin del archivo de captura")


# ============================================================
# 3) FUENTE SIMULADA (DESARROLLO / PRESENTACION)
# ============================================================

class FuenteSimulada(FuenteLineas):
    """
    Barrido sintetico de un filtro pasa bajos de primer orden (RC).

    Idea:
    - Por cada frecuencia genera un bloque WAVEFORM y luego la linea FREQ_RESP.
    - La fase del filtro va de 0 a -90 grados, el ruido es uniforme.
    - Con semilla fija, la secuencia de lineas es reproducible.
    """

    def __init__(
        self,
        frecuencias: Optional[Sequence[int]] = None,
        fc_hz: float = 200.0,
        k_in: float = 1.5,
        ruido_h: float = 0.005,
        ruido_theta: float = 0.5,
        sample_rate: int = 20_000,
        muestras_onda: int = 64,
        semilla: Optional[int] = None,
    ):
        if frecuencias is None:
            frecuencias = list(range(10, 1001, 10))

        self.frecuencias = list(frecuencias)
        self.fc_hz = float(fc_hz)
        self.k_in = float(k_in)
        self.ruido_h = float(ruido_h)
        self.ruido_theta = float(ruido_theta)
        self.sample_rate = int(sample_rate)
        self.muestras_onda = int(muestras_onda)

        self._rng = random.Random(semilla)
        self._pendientes: Deque[str] = deque()
        self._indice = 0

    def _respuesta(self, freq: float):
        x = freq / self.fc_hz
        h = 1.0 / math.sqrt(1.0 + x * x)
        theta = -math.degrees(math.atan(x))
        return h, theta

    def _lineas_frecuencia(self, freq: int) -> List[str]:
        h, theta = self._respuesta(freq)
        h += self._rng.uniform(-self.ruido_h, self.ruido_h)
        theta += self._rng.uniform(-self.ruido_theta, self.ruido_theta)
        h = max(h, 0.0)
        k_out = self.k_in * h

        # Senales centradas en mitad de escala del ADC de 12 bits
        amp_in = 1800.0
        amp_out = amp_in * min(h, 1.0)
        w = 2.0 * math.pi * freq / self.sample_rate
        entrada = [round(2048 + amp_in * math.sin(w * n)) for n in range(self.muestras_onda)]
        salida = [
            round(2048 + amp_out * math.sin(w * n + math.radians(theta)))
            for n in range(self.muestras_onda)
        ]

        onda = (
            f"WAVEFORM:{freq},{self.sample_rate},"
            + ",".join(str(v) for v in entrada)
            + "|"
            + ",".join(str(v) for v in salida)
        )
        resp = f"FREQ_RESP:{freq},{self.k_in:.4f},{k_out:.4f},{h:.6f},{theta:.2f}"
        return [onda, resp]

    def leer_linea(self) -> str:
        if not self._pendientes:
            if self._indice >= len(self.frecuencias):
                raise StopIteration("Fin del barrido simulado")
            self._pendientes.extend(self._lineas_frecuencia(self.frecuencias[self._indice]))
            self._indice += 1
        return self._pendientes.popleft()


def construir_fuente(tipo: str, puerto: str = SETTINGS.puerto_serial, ruta: str = "", semilla=None) -> FuenteLineas:
    """
    Fabrica de fuentes: "serial", "archivo" o "simulada".
    """
    if tipo == "serial":
        return FuenteSerial(puerto, SETTINGS.baudrate, SETTINGS.timeout_s)
    if tipo == "archivo":
        return FuenteArchivo(ruta)
    if tipo == "simulada":
        return FuenteSimulada(semilla=semilla)
    raise ValueError(f"Fuente no soportada: {tipo!r}")
