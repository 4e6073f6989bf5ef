from __future__ import annotations

import io
import shutil
from pathlib import Path
from typing import Iterable, Iterator

import pytest

from scripts import anonymize_dump
from services.dump_anonymizer.config import get_settings
from services.dump_anonymizer.sql_engine import InsertStatement, SQLEngine

PROJECT_ROOT = Path(__file__).resolve().parents[2]

DUMP = (
    "-- MySQL dump 10.13\n"
    "DROP TABLE IF EXISTS `wp_users`;\n"
    "LOCK TABLES `wp_users` WRITE;\n"
    "INSERT INTO `wp_users` VALUES "
    "(1,'username','user_pass','username','hosting@humanmade.com','','2019-06-12 00:59:19','',0,'username'),"
    "(2,'username','user_pass','username','hosting@humanmade.com','http://notreal.com/username','2019-06-12 00:59:19','',0,'username');\n"
    "INSERT INTO wp_usermeta VALUES\n"
    "\t(1,1,'first_name','John'),(2,1,'last_name','Doe'),\n"
    "\t(3,1,'foobar','bazquz');\n"
    "UNLOCK TABLES;\n"
)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterable[None]:
    for name in ("LOG_LEVEL", "DUMP_ANONYMIZER_SEED", "GENERATOR_SEED"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def catalog_path(tmp_path: Path) -> Path:
    target = tmp_path / "patterns.json"
    shutil.copy(PROJECT_ROOT / "config.example.json", target)
    return target


def _run(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    argv: list[str],
    stdin: Iterable[str] | None = None,
) -> tuple[int, str]:
    monkeypatch.setattr(anonymize_dump.sys, "stdin", stdin if stdin is not None else io.StringIO(DUMP))
    exit_code = anonymize_dump.main(argv)
    return exit_code, capsys.readouterr().out


def test_main_anonymizes_stdin_to_stdout(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    catalog_path: Path,
) -> None:
    exit_code, out = _run(
        monkeypatch, capsys, ["--config", str(catalog_path), "--seed", "432", "--workers", "2"]
    )

    assert exit_code == 0
    lines = out.splitlines(keepends=True)
    assert lines[:3] == [
        "-- MySQL dump 10.13\n",
        "DROP TABLE IF EXISTS `wp_users`;\n",
        "LOCK TABLES `wp_users` WRITE;\n",
    ]
    assert lines[-1] == "UNLOCK TABLES;\n"
    assert len(lines) == 6
    assert "hosting@humanmade.com" not in out

    engine = SQLEngine()
    users = engine.parse(lines[3])
    assert isinstance(users, InsertStatement)
    assert users.table_name == "wp_users"
    first = users.rows[0].literals
    assert first[0] == "1"
    assert first[5] == ""
    assert first[6] == "2019-06-12 00:59:19"
    assert first[4] != "hosting@humanmade.com"

    usermeta = engine.parse(lines[4])
    assert isinstance(usermeta, InsertStatement)
    assert usermeta.rows[2].literals == ("3", "1", "foobar", "bazquz")


def test_seed_makes_single_worker_runs_reproducible(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    catalog_path: Path,
) -> None:
    argv = ["-c", str(catalog_path), "--seed", "432", "--workers", "1"]

    _, first = _run(monkeypatch, capsys, argv)
    _, second = _run(monkeypatch, capsys, argv)

    assert first == second


def test_missing_catalog_exits_with_configuration_error(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    tmp_path: Path,
) -> None:
    exit_code, out = _run(monkeypatch, capsys, ["-c", str(tmp_path / "missing.json")])

    assert exit_code == 1
    assert out == ""


def test_config_option_is_required(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(anonymize_dump.sys, "stdin", io.StringIO(DUMP))

    with pytest.raises(SystemExit) as excinfo:
        anonymize_dump.main([])

    assert excinfo.value.code == 2


def test_non_positive_workers_is_a_usage_error(catalog_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        anonymize_dump.main(["-c", str(catalog_path), "--workers", "0"])

    assert excinfo.value.code == 2


def test_input_read_error_exits_non_zero(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    catalog_path: Path,
) -> None:
    def _broken_stdin() -> Iterator[str]:
        yield "DROP TABLE IF EXISTS `wp_users`;\n"
        raise OSError("input/output error")

    exit_code, out = _run(monkeypatch, capsys, ["-c", str(catalog_path)], stdin=_broken_stdin())

    assert exit_code == 1
    assert out == "DROP TABLE IF EXISTS `wp_users`;\n"


def test_flush_unterminated_flag(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    catalog_path: Path,
) -> None:
    dump = "INSERT INTO `wp_options` VALUES (1,'siteurl')\n"

    _, dropped = _run(monkeypatch, capsys, ["-c", str(catalog_path)], stdin=io.StringIO(dump))
    _, flushed = _run(
        monkeypatch,
        capsys,
        ["-c", str(catalog_path), "--flush-unterminated"],
        stdin=io.StringIO(dump),
    )

    assert dropped == ""
    statement = SQLEngine().parse(flushed)
    assert isinstance(statement, InsertStatement)
    assert statement.rows[0].literals == ("1", "siteurl")
