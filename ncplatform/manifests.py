import subprocess
import sys
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ncplatform.console import RED, NC
from ncplatform.kube import kubectl_apply

TEMPLATES_DIR = Path(__file__).parent / 'templates'

PART_OF_LABEL = {'app.kubernetes.io/part-of': 'nextcloud-platform'}

env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)


def render_namespace(namespace: str, tenant: str | None = None) -> str:
    return env.get_template('namespace.yaml.j2').render(namespace=namespace, tenant=tenant)


def render_secret(name: str, namespace: str, data: dict[str, str], labels: dict[str, str] | None = None) -> str:
    return env.get_template('secret.yaml.j2').render(
        name=name,
        namespace=namespace,
        labels=labels or {},
        data=data,
    )


def apply(manifest: str, what: str) -> None:
    """kubectl apply, exiting with kubectl's stderr on failure."""
    try:
        out = kubectl_apply(manifest)
    except subprocess.CalledProcessError as e:
        print(f"{RED}Error: failed to apply {what}:{NC} {e.stderr.strip()}", file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError:
        print(f"{RED}Error: kubectl not found in PATH{NC}", file=sys.stderr)
        sys.exit(1)
    if out.strip():
        print(f"  {out.strip()}")


def ensure_namespace(namespace: str, tenant: str | None = None) -> None:
    apply(render_namespace(namespace, tenant), f"namespace {namespace}")
