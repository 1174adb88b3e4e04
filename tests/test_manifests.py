from __future__ import annotations

import subprocess

import jinja2
import pytest
import yaml

from ncplatform import manifests


def test_namespace_manifest_labels() -> None:
    doc = yaml.safe_load(manifests.render_namespace("nc-canary", "canary"))
    assert doc["kind"] == "Namespace"
    assert doc["metadata"]["name"] == "nc-canary"
    assert doc["metadata"]["labels"] == {
        "app.kubernetes.io/part-of": "nextcloud-platform",
        "nextcloud.platform/tenant": "canary",
    }


def test_platform_namespace_has_no_tenant_label() -> None:
    doc = yaml.safe_load(manifests.render_namespace("nextcloud-platform"))
    assert "nextcloud.platform/tenant" not in doc["metadata"]["labels"]


def test_secret_without_labels() -> None:
    doc = yaml.safe_load(manifests.render_secret("s", "ns", {"port": "5432"}))
    assert "labels" not in doc["metadata"]
    assert doc["stringData"] == {"port": "5432"}


def test_apply_prints_kubectl_output(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setattr(manifests, "kubectl_apply", lambda manifest: "secret/s configured\n")
    manifests.apply("kind: Secret\n", "secret s")
    assert "secret/s configured" in capsys.readouterr().out


def test_apply_failure_exits(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    def fail(manifest):
        raise subprocess.CalledProcessError(1, ["kubectl"], stderr="forbidden: no access\n")

    monkeypatch.setattr(manifests, "kubectl_apply", fail)
    with pytest.raises(SystemExit) as exc:
        manifests.apply("kind: Secret\n", "secret s")
    assert exc.value.code == 1
    assert "failed to apply secret s: forbidden: no access" in capsys.readouterr().err


def test_apply_without_kubectl(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    def missing(manifest):
        raise FileNotFoundError("kubectl")

    monkeypatch.setattr(manifests, "kubectl_apply", missing)
    with pytest.raises(SystemExit):
        manifests.apply("kind: Secret\n", "secret s")
    assert "kubectl not found in PATH" in capsys.readouterr().err


def test_templates_load_from_package() -> None:
    assert manifests.TEMPLATES_DIR.joinpath("secret.yaml.j2").is_file()
    assert manifests.env.keep_trailing_newline
    assert manifests.render_namespace("nc-canary").endswith("\n")


def test_undefined_template_variable_raises() -> None:
    with pytest.raises(jinja2.UndefinedError):
        manifests.env.get_template("secret.yaml.j2").render(name="s", namespace="ns", labels={})
