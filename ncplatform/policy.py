import json
import subprocess
from pathlib import Path

POLICY_FILE = Path(__file__).parent / 'rego' / 'tenant.rego'
POLICY_QUERY = 'data.nextcloud.tenant'


class PolicyError(Exception):
    pass


def evaluate_policy(tenant_path: Path, policy_file: Path = POLICY_FILE) -> tuple[list[str], list[str]]:
    """Run the tenant policy through `opa eval`; returns (deny, warn) messages."""
    try:
        result = subprocess.run(
            ['opa', 'eval', '--format', 'json',
             '--data', str(policy_file),
             '--input', str(tenant_path),
             POLICY_QUERY],
            capture_output=True, text=True, check=True
        )
    except subprocess.CalledProcessError as e:
        raise PolicyError(f"opa eval failed: {e.stderr.strip()}") from e
    except FileNotFoundError as e:
        raise PolicyError("opa not found in PATH") from e

    try:
        payload = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise PolicyError(f"unreadable opa output: {e}") from e

    # no result means the package produced no documents at all
    results = payload.get('result') or []
    if not results:
        return [], []
    value = results[0]['expressions'][0]['value'] or {}
    return sorted(value.get('deny', [])), sorted(value.get('warn', []))
