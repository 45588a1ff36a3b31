"""Shared pytest fixtures for the rowgate test suite."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Generator

import pytest

from rowgate.config import Settings, override_settings
from rowgate.driver import Driver
from rowgate.table import Table

USUARIO_DDL = """
CREATE TABLE usuario (
  cpf char(11) NOT NULL,
  nome_completo varchar(64) DEFAULT NULL,
  endereco varchar(128) DEFAULT NULL,
  telefone varchar(16) DEFAULT NULL,
  senha char(32) NOT NULL,
  cargo varchar(8) NOT NULL DEFAULT 'host',
  PRIMARY KEY (cpf)
)
"""

PRODUCTS_DDL = """
CREATE TABLE products (
  id INTEGER PRIMARY KEY,
  name varchar(32) NOT NULL,
  price decimal(10,2),
  stock int(11) DEFAULT 0
)
"""

ENROLLMENT_DDL = """
CREATE TABLE enrollment (
  student_id int(11) NOT NULL,
  course char(6) NOT NULL,
  grade float(5,2),
  PRIMARY KEY (student_id, course)
)
"""

USUARIOS = [
    ("11111111111", "Howard Wolowitz", None, None, "e10adc3949ba59ae93733779051c9926", "host"),
    ("25478412586", "Sheldon Cooper", None, None, "93897cc117a734be93733779051c9926", "host"),
    ("36478954215", "Marcus Cascalhes", "Rua XV de Novembro, 1400", "1633456732",
     "e10adc3949ba59abbe56e057f20f883e", "host"),
    ("87548965210", "Danilo Pedroso", "Rua Carlos Botelho, 2453", "1633697845",
     "e36a2f90240e9e84483504fd4a704452", "gerente"),
]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Generator[Settings, None, None]:
    settings = Settings(
        database={"url": f"sqlite:///{tmp_path / 'rowgate.db'}", "fetch_mode": "assoc"},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    yield settings
    override_settings(None)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


def create_fixture_tables(conn: sqlite3.Connection) -> None:
    conn.execute(USUARIO_DDL)
    conn.execute(PRODUCTS_DDL)
    conn.execute(ENROLLMENT_DDL)
    conn.executemany("INSERT INTO usuario VALUES (?, ?, ?, ?, ?, ?)", USUARIOS)
    conn.executemany(
        "INSERT INTO products (name, price, stock) VALUES (?, ?, ?)",
        [("Widget", 9.99, 100), ("Gadget", 19.99, 50), ("Doohickey", 4.99, 200)],
    )
    conn.executemany(
        "INSERT INTO enrollment VALUES (?, ?, ?)",
        [(1, "MAT101", 8.5), (1, "PHY201", 7.0), (2, "MAT101", 9.25)],
    )
    conn.commit()


@pytest.fixture
def connection() -> Generator[sqlite3.Connection, None, None]:
    conn = sqlite3.connect(":memory:")
    create_fixture_tables(conn)
    yield conn
    conn.close()


@pytest.fixture
def driver(connection: sqlite3.Connection) -> Driver:
    return Driver(connection)


@pytest.fixture
def usuario(driver: Driver) -> Table:
    return Table("usuario", driver)


@pytest.fixture
def products(driver: Driver) -> Table:
    return Table("products", driver)


@pytest.fixture
def enrollment(driver: Driver) -> Table:
    return Table("enrollment", driver)


@pytest.fixture
def sqlite_file(tmp_path: Path) -> Path:
    """A seeded on-disk database at the path ``test_settings`` points to."""
    path = tmp_path / "rowgate.db"
    conn = sqlite3.connect(path)
    try:
        create_fixture_tables(conn)
    finally:
        conn.close()
    return path
