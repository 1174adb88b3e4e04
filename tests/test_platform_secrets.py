from __future__ import annotations

import pytest
import yaml

from ncplatform import platform_secrets


@pytest.fixture
def applied(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str]]:
    calls: list[tuple[str, str]] = []
    monkeypatch.setattr(platform_secrets, "ensure_namespace", lambda ns, tenant=None: calls.append(("namespace", ns)))
    monkeypatch.setattr(platform_secrets, "apply", lambda manifest, what: calls.append((what, manifest)))
    return calls


def test_pgbouncer_secret(monkeypatch: pytest.MonkeyPatch, applied: list, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("POSTGRES_HOST", "pg.internal")
    monkeypatch.setenv("POSTGRES_USER", "nextcloud")
    monkeypatch.setenv("POSTGRES_PASSWORD", "pw")

    assert platform_secrets.main(["pgbouncer"]) == 0

    assert applied[0] == ("namespace", "nextcloud-platform")
    doc = yaml.safe_load(applied[1][1])
    assert doc["metadata"]["name"] == "pgbouncer-credentials"
    assert doc["metadata"]["namespace"] == "nextcloud-platform"
    assert doc["stringData"] == {"host": "pg.internal", "port": "5432", "username": "nextcloud", "password": "pw"}
    assert "Platform secrets created successfully" in capsys.readouterr().out


def test_postgres_admin_dry_run(monkeypatch: pytest.MonkeyPatch, applied: list) -> None:
    monkeypatch.setenv("POSTGRES_HOST", "pg.internal")
    monkeypatch.setenv("POSTGRES_PORT", "6432")
    monkeypatch.setenv("POSTGRES_ADMIN_USER", "postgres")
    monkeypatch.setenv("POSTGRES_ADMIN_PASSWORD", "admin-pw")

    manifest = platform_secrets.cmd_create("postgres-admin", {}, dry_run=True)

    assert applied == []
    doc = yaml.safe_load(manifest)
    assert doc["metadata"]["name"] == "postgres-admin"
    assert doc["metadata"]["labels"] == {
        "app.kubernetes.io/part-of": "nextcloud-platform",
        "app.kubernetes.io/component": "database",
    }
    assert doc["stringData"]["port"] == "6432"
    assert doc["stringData"]["username"] == "postgres"


def test_inputs_validated_before_cluster_calls(applied: list, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        platform_secrets.main(["postgres-admin"])

    assert exc.value.code == 1
    assert applied == []
    err = capsys.readouterr().err
    assert "export POSTGRES_ADMIN_USER='postgres'" in err
    assert "export POSTGRES_HOST='your-postgres-host'" in err


def test_secrets_file_values(applied: list) -> None:
    file_values = {"POSTGRES_HOST": "db", "POSTGRES_USER": "u", "POSTGRES_PASSWORD": "p", "POSTGRES_PORT": "5433"}
    assert platform_secrets.connection_data("pgbouncer", file_values) == {
        "host": "db", "port": "5433", "username": "u", "password": "p",
    }


def test_unknown_command_rejected() -> None:
    with pytest.raises(SystemExit) as exc:
        platform_secrets.main(["redis"])
    assert exc.value.code == 2
