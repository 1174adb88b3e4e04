import subprocess
import sys
from pathlib import Path
import yaml


def decrypt_sops(file_path: Path) -> dict:
    try:
        result = subprocess.run(
            ['sops', '-d', str(file_path)],
            capture_output=True, text=True, check=True
        )
    except subprocess.CalledProcessError as e:
        print(f"SOPS decryption error: {e.stderr}", file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError:
        print("sops not found in PATH", file=sys.stderr)
        sys.exit(1)

    data = yaml.safe_load(result.stdout)
    if data is None:
        return {}
    if not isinstance(data, dict):
        print(f"SOPS file {file_path} must contain a mapping", file=sys.stderr)
        sys.exit(1)
    return data


def load_secret_values(file_path: Path | None) -> dict[str, str]:
    """Flat VAR -> value mapping from an optional SOPS file, empty without one."""
    if file_path is None:
        return {}
    return {
        str(k): '' if v is None else str(v)
        for k, v in decrypt_sops(file_path).items()
        if not isinstance(v, (dict, list))
    }
