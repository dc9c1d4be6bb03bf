"""Unit tests for model.firma."""

from __future__ import annotations

import random
import re

from bode_monitor.model.firma import (
    MetadatosSesion,
    fnv1a_32,
    generar_id_sesion,
    serializar,
    serializar_punto,
    sign,
)

from conftest import hacer_punto


def test_fnv1a_known_values() -> None:
    assert fnv1a_32(b"") == 0x811C9DC5
    assert fnv1a_32(b"a") == 0xE40C292C


def test_empty_sequence_signs_as_offset_basis() -> None:
    assert sign([]) == "811C9DC5"


def test_point_serialization() -> None:
    punto = hacer_punto(100, h=0.8, theta=-10.0)
    assert serializar_punto(0, punto) == "0:100_1.5000_1.2000_0.8000_-10.00"


def test_rounding_keeps_sign_except_for_exact_zero() -> None:
    assert serializar_punto(3, hacer_punto(10, theta=-0.001)).endswith("_-0.00")
    assert serializar_punto(3, hacer_punto(10, theta=-0.0)).endswith("_0.00")
    assert sign([hacer_punto(10, theta=-0.001)]) != sign([hacer_punto(10, theta=0.0)])


def test_metadata_is_prepended() -> None:
    puntos = [hacer_punto(100)]
    texto = serializar(puntos, ["ABC", 123, 1])
    assert texto == "ABC|123|1|" + serializar_punto(0, puntos[0])


def test_signature_is_deterministic_and_well_formed() -> None:
    puntos = [hacer_punto(50), hacer_punto(100, h=0.866, theta=-12.0)]
    firma = sign(puntos)

    assert firma == sign(list(puntos))
    assert re.fullmatch(r"[0-9A-F]{8}", firma)


def test_signature_changes_with_theta() -> None:
    antes = sign([hacer_punto(100, theta=-10.0)])
    despues = sign([hacer_punto(100, theta=-10.01)])
    assert antes != despues


def test_signature_depends_on_metadata() -> None:
    puntos = [hacer_punto(100)]
    meta = MetadatosSesion("ABC-1234567", 1700000000000, 1)

    assert sign(puntos, meta.campos()) != sign(puntos)
    assert sign(puntos, meta.campos()) == sign(puntos, ("ABC-1234567", 1700000000000, 1))


def test_session_id_format() -> None:
    id_sesion = generar_id_sesion(ahora_ms=36 ** 3, rng=random.Random(1))

    prefijo, aleatorio = id_sesion.split("-")
    assert prefijo == "1000"
    assert re.fullmatch(r"[0-9A-Z]{7}", aleatorio)
    assert id_sesion == generar_id_sesion(ahora_ms=36 ** 3, rng=random.Random(1))
