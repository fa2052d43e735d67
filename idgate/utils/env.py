"""
Secret lookup for idgate configuration values.

Provider client secrets, the Flask secret key and the PostgreSQL password can
be kept out of the YAML file. Each one is looked up under an upper-case name
such as ``GITHUB_CLIENT_SECRET``, ``IDGATE_SECRET_KEY`` or ``PG_PASSWORD``.
"""

import os
from typing import Optional

SECRET_FILE_SUFFIX = "_FILE"


def _secret_file_path(secret_name: str) -> Optional[str]:
    return os.getenv(secret_name + SECRET_FILE_SUFFIX) or None


def read_secret(secret_name: str, default: Optional[str] = "") -> Optional[str]:
    """
    Resolve ``secret_name`` for an idgate setting.

    ``<NAME>_FILE`` names a mounted secret file (Docker/Kubernetes style) and
    takes precedence over a plain ``<NAME>`` environment variable. Surrounding
    whitespace, including the trailing newline of a secret file, is dropped.

    Returns ``default`` when neither is set; config uses ``None`` there so an
    unset provider credential can be told apart from an empty one.
    """
    path = _secret_file_path(secret_name)
    if path:
        with open(path, 'r') as secret_file:
            return secret_file.read().strip()

    value = (os.getenv(secret_name) or '').strip()
    return value or default
