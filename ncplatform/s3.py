import os

from ncplatform.kube import run_tool


def head_bucket(bucket: str, endpoint_url: str | None = None) -> tuple[bool, str]:
    """Check a bucket with `aws s3api head-bucket`; returns (exists, stderr)."""
    cmd = ['aws', 's3api', 'head-bucket', '--bucket', bucket]
    endpoint_url = endpoint_url or os.environ.get('S3_ENDPOINT_URL')
    if endpoint_url:
        cmd.extend(['--endpoint-url', endpoint_url])
    result = run_tool(cmd)
    return result.returncode == 0, result.stderr.strip()
