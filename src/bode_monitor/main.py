"""
Entry point de linea de comandos del proyecto.

Forma recomendada de ejecucion (desde la raiz del repo, con el paquete instalado):
    bode-monitor --simulada --exportar salidas/
    bode-monitor --archivo capturas/barrido.txt --estricto
    bode-monitor --puerto COM3 --max-lineas 2000

Alternativa equivalente:
    python -m bode_monitor.main --simulada

Flujo:
- Se elige una fuente (serial / archivo / simulada).
- Cada linea pasa por el ControladorBode (clasificar -> validar -> aplicar).
- Al terminar se imprime un resumen y, si se pidio, se exporta el CSV firmado.
"""

import argparse
import logging
import sys

from bode_monitor.config.settings import SETTINGS, limites_para_barrido
from bode_monitor.controller.controller import ControladorBode
from bode_monitor.controller.fuentes import FuenteArchivo, FuenteSerial, FuenteSimulada


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bode-monitor",
        description="Ingesta de lineas del analizador de respuesta en frecuencia",
    )

    fuente = parser.add_mutually_exclusive_group(required=True)
    fuente.add_argument("--puerto", help="Puerto serial del instrumento (ej: COM3, /dev/ttyUSB0)")
    fuente.add_argument("--archivo", help="Captura de texto a reproducir")
    fuente.add_argument("--simulada", action="store_true", help="Barrido simulado (filtro RC)")

    parser.add_argument("--estricto", action="store_true",
                        help="Validacion estricta: las fallas FREQ_RESP van al registro de errores")
    parser.add_argument("--freq-max", type=int, default=None,
                        help="Techo de frecuencia del barrido en vivo (ej: 2000)")
    parser.add_argument("--sin-procesamiento", action="store_true",
                        help="Deshabilita unwrap / atipicos / suavizado")
    parser.add_argument("--ecg", action="store_true", help="Modo de senal ECG (ignora FREQ_RESP)")
    parser.add_argument("--barrido", action="store_true", help="Envia SWEEP al conectar (solo serial)")
    parser.add_argument("--frecuencia", type=int, default=None, help="Fija la frecuencia del generador (FREQ:, solo serial)")
    parser.add_argument("--probar", type=int, default=None, help="Medicion de prueba en una frecuencia (FREQ_TEST:, solo serial)")
    parser.add_argument("--onda", action="store_true", help="Pide un bloque WAVEFORM (WAVE, solo serial)")
    parser.add_argument("--submuestreo", type=int, nargs=2, metavar=("FREQ", "SR"), default=None,
                        help="Captura submuestreada UWAVE (solo serial)")
    parser.add_argument("--stream", action="store_true", help="Inicia la transmision continua (START, solo serial)")
    parser.add_argument("--max-lineas", type=int, default=None, help="Cantidad maxima de lineas a leer")
    parser.add_argument("--exportar", default=None, help="Ruta (archivo o carpeta) del CSV firmado")
    parser.add_argument("--semilla", type=int, default=None, help="Semilla de la fuente simulada")
    parser.add_argument("--log-level", default="INFO", help="Nivel de logging (DEBUG, INFO, WARNING)")
    return parser


def _imprimir_resumen(ctrl: ControladorBode) -> None:
    resumen = ctrl.resumen()
    if resumen is None:
        print("Sin puntos de respuesta en frecuencia.")
    else:
        print(f"Puntos: {resumen.n_puntos}")
        print(f"Rango: {resumen.freq_min} - {resumen.freq_max} Hz")
        print(f"H promedio: {resumen.h_promedio:.4f}")
        print(f"Theta promedio: {resumen.theta_promedio:.2f} deg")
        print(f"Firma: FNV1a-{ctrl.firma()}")
        print(f"Firma de sesion {ctrl.id_sesion}: FNV1a-{ctrl.firma_sesion()}")

    vivo = ctrl.formas_onda.vivo
    if vivo is not None:
        print(
            f"Ultima forma de onda: {vivo.freq} Hz, {len(vivo)} muestras @ {vivo.sample_rate} Hz"
            f" ({vivo.duracion_ms:.1f} ms)"
        )

    conteo = ctrl.errores.conteo()
    if conteo:
        detalle = ", ".join(f"{tipo.value}={n}" for tipo, n in sorted(conteo.items(), key=lambda t: t[0].value))
        print(f"Errores de protocolo: {ctrl.errores.total} ({detalle})")


def _preparar_serial(fuente: FuenteSerial, args, tipo_senal: str) -> None:
    """Comandos iniciales al instrumento, en el orden en que el firmware los espera."""
    fuente.set_tipo_senal(tipo_senal)
    if args.frecuencia is not None:
        fuente.fijar_frecuencia(args.frecuencia)
    if args.probar is not None:
        fuente.probar_frecuencia(args.probar)
    if args.onda:
        fuente.solicitar_onda()
    if args.submuestreo:
        fuente.solicitar_submuestreo(*args.submuestreo)
    if args.barrido:
        fuente.iniciar_barrido()
    if args.stream:
        fuente.start_stream()


def main(argv=None) -> int:
    args = _parser().parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
    )

    limites = limites_para_barrido(args.freq_max) if args.freq_max and not args.estricto else None
    ctrl = ControladorBode(SETTINGS, modo_estricto=args.estricto, limites=limites)
    ctrl.set_processing(not args.sin_procesamiento)
    if args.ecg:
        ctrl.set_tipo_senal("ecg")

    if args.puerto:
        fuente = FuenteSerial(args.puerto, SETTINGS.baudrate, SETTINGS.timeout_s)
        fuente.conectar()
        _preparar_serial(fuente, args, ctrl.tipo_senal)
    elif args.archivo:
        fuente = FuenteArchivo(args.archivo)
    else:
        fuente = FuenteSimulada(semilla=args.semilla)

    try:
        ctrl.consumir(fuente, max_lineas=args.max_lineas)
    except TimeoutError as e:
        logging.warning("Lectura detenida: %s", e)
    except KeyboardInterrupt:
        logging.info("Lectura interrumpida por el usuario")
    finally:
        if hasattr(fuente, "cerrar"):
            fuente.cerrar()

    _imprimir_resumen(ctrl)

    if args.exportar:
        try:
            path = ctrl.exportar(args.exportar)
        except ValueError as e:
            logging.error("Exportacion fallida: %s", e)
            return 1
        print(f"CSV generado: {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
