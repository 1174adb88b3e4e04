import shutil
import subprocess
from pathlib import Path

HELM_REPO_NAME = 'nextcloud'
HELM_REPO_URL = 'https://nextcloud.github.io/helm/'
HELM_CHART = f'{HELM_REPO_NAME}/nextcloud'

CRDS_CATALOG_SCHEMA = (
    'https://raw.githubusercontent.com/datreeio/CRDs-catalog/main/'
    '{{.Group}}/{{.ResourceKind}}_{{.ResourceAPIVersion}}.json'
)

NOT_FOUND = 127


def missing_tools(tools: list[str]) -> list[str]:
    return [t for t in tools if shutil.which(t) is None]


def run_tool(cmd: list[str]) -> subprocess.CompletedProcess:
    """Run a check command; a missing binary becomes a failed result."""
    try:
        return subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError:
        return subprocess.CompletedProcess(cmd, NOT_FOUND, stdout='', stderr=f'{cmd[0]} not found in PATH')


# ── kubectl ──────────────────────────────────────────

def kubectl_apply(manifest: str) -> str:
    """Pipe a rendered manifest into `kubectl apply -f -`.

    Raises CalledProcessError on a non-zero exit and FileNotFoundError
    when kubectl is not installed.
    """
    result = subprocess.run(
        ['kubectl', 'apply', '-f', '-'],
        input=manifest, capture_output=True, text=True, check=True
    )
    return result.stdout


# ── helm ─────────────────────────────────────────────

def helm_repo_present(name: str = HELM_REPO_NAME) -> bool:
    result = run_tool(['helm', 'repo', 'list'])
    return result.returncode == 0 and name in result.stdout


def helm_repo_add(name: str = HELM_REPO_NAME, url: str = HELM_REPO_URL) -> None:
    # failures surface later as a failed `helm template`
    run_tool(['helm', 'repo', 'add', name, url])
    run_tool(['helm', 'repo', 'update'])


def helm_template(
    release: str,
    values_files: list[Path],
    namespace: str,
    chart: str = HELM_CHART,
    version: str | None = None,
    set_values: dict[str, str] | None = None,
) -> subprocess.CompletedProcess:
    cmd = ['helm', 'template', release, chart]
    for f in values_files:
        cmd.extend(['--values', str(f)])
    cmd.extend(['--namespace', namespace])
    if version:
        cmd.extend(['--version', version])
    for key, value in (set_values or {}).items():
        cmd.extend(['--set', f'{key}={value}'])
    return run_tool(cmd)


# ── kubeconform ──────────────────────────────────────

def kubeconform(manifest_file: Path) -> subprocess.CompletedProcess:
    return run_tool(
        ['kubeconform', '-strict', '-ignore-missing-schemas',
         '-schema-location', 'default',
         '-schema-location', CRDS_CATALOG_SCHEMA,
         str(manifest_file)]
    )
