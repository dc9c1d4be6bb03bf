"""
Registro de errores de protocolo

Guarda las fallas de validacion (formato, parseo, rango, ...) en una coleccion acotada,
con la mas reciente primero. Cuando se supera la capacidad se descarta la mas antigua
en la misma operacion que inserta la nueva.

Limpiar el registro NO afecta al almacen ni a los buffers de forma de onda.
"""

import logging
from collections import Counter, deque
from datetime import datetime
from typing import Deque, Dict, List, Optional, Tuple

from bode_monitor.model.muestra import ErrorProtocolo, TipoError

logger = logging.getLogger(__name__)


class RegistroErrores:
    def __init__(self, max_errores: int = 100, max_longitud_datos: int = 100):
        if max_errores <= 0:
            raise ValueError("max_errores debe ser positivo")

        self.max_errores = max_errores
        self.max_longitud_datos = max_longitud_datos

        # appendleft + maxlen: el desalojo del mas antiguo es parte del mismo append
        self._errores: Deque[ErrorProtocolo] = deque(maxlen=max_errores)

        # El contador no se reinicia con clear(), los id nunca se repiten
        self._siguiente_id = 0

    def registrar(self, tipo: TipoError, mensaje: str, datos: Optional[str] = None) -> ErrorProtocolo:
        """
        Agrega un error y lo retorna.
        Los datos crudos se truncan para no guardar lineas enteras de miles de muestras.
        """
        if datos is not None:
            datos = datos[: self.max_longitud_datos]

        error = ErrorProtocolo(
            id=self._siguiente_id,
            tipo=TipoError(tipo),
            mensaje=mensaje,
            datos=datos,
            hora=datetime.now(),
        )
        self._siguiente_id += 1
        self._errores.appendleft(error)

        logger.warning("[protocolo] %s: %s", error.tipo.value, mensaje)
        return error

    def errores(self) -> Tuple[ErrorProtocolo, ...]:
        """Todos los errores, el mas reciente primero."""
        return tuple(self._errores)

    def recientes(self, n: int = 10) -> Tuple[ErrorProtocolo, ...]:
        return tuple(self._errores)[:n]

    def agrupados(self) -> Dict[TipoError, List[ErrorProtocolo]]:
        """Errores agrupados por tipo (cada grupo mantiene el orden mas reciente primero)."""
        grupos: Dict[TipoError, List[ErrorProtocolo]] = {}
        for error in self._errores:
            grupos.setdefault(error.tipo, []).append(error)
        return grupos

    def conteo(self) -> Dict[TipoError, int]:
        return dict(Counter(error.tipo for error in self._errores))

    @property
    def total(self) -> int:
        return len(self._errores)

    def clear(self) -> None:
        self._errores.clear()

    def __len__(self) -> int:
        return len(self._errores)
