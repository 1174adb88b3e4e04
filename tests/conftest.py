from __future__ import annotations

import os
import subprocess
from pathlib import Path

import pytest

# colour codes are resolved at import time
os.environ.setdefault("NO_COLOR", "1")

SECRET_VARS = [
    "TENANT_NAME",
    "S3_ACCESS_KEY",
    "S3_SECRET_KEY",
    "DB_PASSWORD",
    "DB_USERNAME",
    "ADMIN_PASSWORD",
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "POSTGRES_ADMIN_USER",
    "POSTGRES_ADMIN_PASSWORD",
    "NC_PLATFORM_ROOT",
    "S3_ENDPOINT_URL",
]

CANARY = """\
tenant:
  name: canary
  environment: accept
  hostname: canary.cloud.example.com
  wave: 0
  s3:
    bucket: nc-canary-data
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in SECRET_VARS:
        monkeypatch.delenv(name, raising=False)


def write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def platform_repo(tmp_path: Path) -> Path:
    """A GitOps repository with every required file and one canary tenant."""
    write(tmp_path / "values" / "common.yaml", "chart:\n  version: 6.2.0\n")
    write(tmp_path / "values" / "env" / "accept.yaml", "replicaCount: 1\n")
    write(tmp_path / "values" / "env" / "prod.yaml", "replicaCount: 2\n")
    write(tmp_path / "values" / "tenants" / "tenant-canary.yaml", CANARY)
    for rel in (
        "argo/applicationsets/nextcloud-tenants.yaml",
        "argo/projects/nextcloud-platform.yaml",
        "platform/redis/kustomization.yaml",
        "platform/pgbouncer/kustomization.yaml",
        "platform/externalsecrets/kustomization.yaml",
    ):
        write(tmp_path / rel, "kind: Placeholder\n")
    return tmp_path


def completed(cmd: list[str], returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)
