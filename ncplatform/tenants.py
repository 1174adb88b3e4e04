"""Tenant descriptors and the GitOps repository layout around them."""
import os
import re
from pathlib import Path

import yaml

ROOT_ENV = 'NC_PLATFORM_ROOT'

TENANT_NAMESPACE_PREFIX = 'nc-'
PLATFORM_NAMESPACE = 'nextcloud-platform'

ENVIRONMENTS = ('accept', 'prod')
MAX_NAME_LENGTH = 63
WAVE_WARN_ABOVE = 10
DEFAULT_WAVE = 1

REQUIRED_FIELDS = [
    '.tenant.name',
    '.tenant.environment',
    '.tenant.hostname',
    '.tenant.s3.bucket',
]

# potential secrets, these belong in the cluster not in git
DISALLOWED_FIELDS = [
    '.secrets',
    '.adminPassword',
    '.s3AccessKey',
    '.s3SecretKey',
    '.dbPassword',
]

REQUIRED_FILES = [
    'values/common.yaml',
    'values/env/accept.yaml',
    'values/env/prod.yaml',
    'argo/applicationsets/nextcloud-tenants.yaml',
    'argo/projects/nextcloud-platform.yaml',
    'platform/redis/kustomization.yaml',
    'platform/pgbouncer/kustomization.yaml',
    'platform/externalsecrets/kustomization.yaml',
]

TENANT_FILENAME_RE = re.compile(r'^tenant-[a-z][a-z0-9-]*\.yaml$')
TENANT_NAME_RE = re.compile(r'^[a-z][a-z0-9-]*[a-z0-9]$|^[a-z]$')
HOSTNAME_RE = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$')
BUCKET_RE = re.compile(r'^[a-z0-9][a-z0-9.-]*[a-z0-9]$|^[a-z0-9]$')
WAVE_RE = re.compile(r'^[0-9]+$')


# ── Layout ───────────────────────────────────────────

def resolve_root(root: str | None = None) -> Path:
    """--root wins, then $NC_PLATFORM_ROOT, then the working directory."""
    return Path(root or os.environ.get(ROOT_ENV) or Path.cwd()).resolve()


def values_dir(root: Path) -> Path:
    return root / 'values'


def tenant_dir(root: Path) -> Path:
    return values_dir(root) / 'tenants'


def env_values_file(root: Path, environment: str) -> Path:
    return values_dir(root) / 'env' / f'{environment}.yaml'


def tenant_file(root: Path, name: str) -> Path:
    return tenant_dir(root) / f'tenant-{name}.yaml'


def find_tenant_files(root: Path, recursive: bool = True) -> list[Path]:
    directory = tenant_dir(root)
    if not directory.is_dir():
        return []
    pattern = 'tenant-*.yaml'
    return sorted(directory.rglob(pattern) if recursive else directory.glob(pattern))


def tenant_name_from_file(path: Path) -> str:
    return path.name.removesuffix('.yaml').removeprefix('tenant-')


def tenant_namespace(name: str) -> str:
    return f'{TENANT_NAMESPACE_PREFIX}{name}'


# ── Documents ────────────────────────────────────────

def load_yaml(path: Path):
    """Parse a single YAML document; raises yaml.YAMLError on bad syntax."""
    return yaml.safe_load(path.read_text(encoding='utf-8'))


def get_path(doc, path: str):
    """Look up a dotted path like `.tenant.s3.bucket`, None when absent."""
    node = doc
    for key in path.lstrip('.').split('.'):
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def scalar_text(node, path: str) -> str | None:
    """Source text of the scalar at a dotted path in a composed node tree."""
    for key in path.lstrip('.').split('.'):
        if not isinstance(node, yaml.MappingNode):
            return None
        found = None
        for key_node, value_node in node.value:
            if key_node.value == key:
                found = value_node
        node = found
    return node.value if isinstance(node, yaml.ScalarNode) else None


def is_missing(value) -> bool:
    return value is None or value == ''


def as_text(value) -> str:
    """Render a scalar the way it reads in the YAML file."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if value is None:
        return 'null'
    if isinstance(value, (dict, list)):
        return yaml.safe_dump(value, default_flow_style=True).strip()
    return str(value)


# ── Rules ────────────────────────────────────────────

def check_tenant_name(name: str) -> str | None:
    if not TENANT_NAME_RE.fullmatch(name):
        return (f"Invalid tenant name '{name}'. Must be lowercase alphanumeric "
                f"with hyphens, start with letter.")
    if len(name) > MAX_NAME_LENGTH:
        return f"Tenant name '{name}' too long (max {MAX_NAME_LENGTH} chars)"
    return None


def check_bucket(bucket: str) -> str | None:
    if not BUCKET_RE.fullmatch(bucket):
        return (f"Invalid bucket name '{bucket}'. Must be lowercase "
                f"alphanumeric with dots/hyphens.")
    if not 3 <= len(bucket) <= 63:
        return f"Bucket name '{bucket}' must be 3-63 characters."
    return None
