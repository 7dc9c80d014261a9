import json
import sys

import pytest
from sqlalchemy import inspect

from scripts._db_utils import create_script_engine
from scripts.import_sales_csv import main as import_main
from scripts.init_db import create_schema
from scripts.start import gunicorn_argv, port_from_env


SALES_CSV = (
    "PAC,Account Name (CN),Address,Brand,2Q24\n"
    'Kaiti Green,4EYMED LLC (CN246670),"123 Academy Blvd, Colorado Springs, CO 80918",SKINPEN,"$1,632"\n'
    "Jane Doe,Walk-in Spa,,RHA,$10\n"
)


def test_create_schema_is_idempotent(tmp_path):
    url = f"sqlite:///{tmp_path/'scripts.db'}"
    assert create_schema(database_url=url) == ["audit_events"]
    assert create_schema(database_url=url) == ["audit_events"]

    engine = create_script_engine(url)
    try:
        assert inspect(engine).has_table("audit_events")
    finally:
        engine.dispose()


def test_import_dry_run_prints_summary(tmp_path, monkeypatch, capsys):
    path = tmp_path / "territory.csv"
    path.write_text(SALES_CSV, encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["import_sales_csv.py", str(path)])

    assert import_main() == 0
    out = capsys.readouterr().out
    assert "Customers: 1" in out
    assert "Colorado Springs North" in out
    assert "[INVALID_SALES_REP]" in out
    assert "[INVALID_CUSTOMER_NUMBER]" in out


def test_import_json(tmp_path, monkeypatch, capsys):
    path = tmp_path / "territory.csv"
    path.write_text(SALES_CSV, encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["import_sales_csv.py", str(path), "--json"])

    assert import_main() == 0
    payload = json.loads(capsys.readouterr().out)
    assert [c["customerNumber"] for c in payload["data"]] == ["CN246670"]
    assert payload["meta"]["validRows"] == 1


def test_import_save_writes_snapshot(tmp_path, monkeypatch, capsys):
    db_url = f"sqlite:///{tmp_path/'scripts.db'}"
    create_schema(database_url=db_url)
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path / "storage"))
    monkeypatch.setenv("SNAPSHOT_PREFIX", "snapshots")

    path = tmp_path / "territory.csv"
    path.write_text(SALES_CSV, encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["import_sales_csv.py", str(path), "--save"])

    assert import_main() == 0
    assert "Saved snapshot (1 customers" in capsys.readouterr().out
    assert (tmp_path / "storage" / "snapshots" / "territory-customers.json").exists()


def test_import_without_customers_fails(tmp_path, monkeypatch, capsys):
    path = tmp_path / "empty.csv"
    path.write_text("PAC,Account Name (CN)\nKim Coates,Glow Clinic (CN100001)\n", encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["import_sales_csv.py", str(path)])

    assert import_main() == 1
    assert "Missing required columns: brand" in capsys.readouterr().err


def test_import_missing_file(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["import_sales_csv.py", str(tmp_path / "nope.csv")])
    assert import_main() == 2


class TestStartScript:
    def test_port_default_and_bounds(self):
        assert port_from_env(None) == 8080
        assert port_from_env(" 5000 ") == 5000
        with pytest.raises(ValueError):
            port_from_env("0")
        with pytest.raises(ValueError):
            port_from_env("http")

    def test_gunicorn_runs_one_worker(self):
        argv = gunicorn_argv(9000)
        assert argv[:2] == ["gunicorn", "app.tmgr.wsgi:app"]
        assert argv[argv.index("--workers") + 1] == "1"
        assert argv[argv.index("--bind") + 1] == "0.0.0.0:9000"
