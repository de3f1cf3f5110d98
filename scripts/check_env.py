"""Check that a deployment's configuration can run the EDM credential core.

Loads the given ``.env`` file and builds everything the service builds at
startup: settings, the token cipher and the EDM OAuth client. It also confirms
that the cipher can read back what it writes and that the credential database
directory exists. Each problem is printed on its own line::

    python -m scripts.check_env --env-file /opt/edm-sync/.env
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from pydantic import ValidationError

from edm_sync.clients.edm_oauth import EDMOAuthClient
from edm_sync.core.config import AppSettings, _load_env_file
from edm_sync.core.errors import ConfigurationError, CryptoError
from edm_sync.services.token_cipher import TokenCipherService

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_RUNTIME_ERROR = 5

_CIPHER_SAMPLE = "edm-sync-check"


def _credential_core_problems(settings: AppSettings) -> List[str]:
    problems: List[str] = []

    try:
        cipher = TokenCipherService(secret=settings.security.token_encryption_secret)
        if cipher.decrypt(cipher.encrypt(_CIPHER_SAMPLE)) != _CIPHER_SAMPLE:
            problems.append("Token cipher did not return the original value.")
    except CryptoError as exc:
        problems.append(f"Token cipher: {exc}")

    try:
        EDMOAuthClient(settings.edm)
    except ConfigurationError as exc:
        problems.append(f"EDM OAuth client: {exc}")

    if not settings.edm.token_url.startswith(("https://", "http://")):
        problems.append(f"EDM token URL is not absolute: {settings.edm.token_url}")

    if not settings.security.admin_refresh_key:
        # Not fatal: the admin endpoints simply reject every request.
        print("Warning: ADMIN_REFRESH_KEY is unset; admin endpoints are disabled.")

    db_dir = Path(settings.storage.credential_db_path).parent
    if not db_dir.is_dir():
        problems.append(f"Credential database directory {db_dir} does not exist.")

    return problems


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate EDM credential settings before starting the service."
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    _load_env_file(str(env_file))
    try:
        settings = AppSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    problems = _credential_core_problems(settings)
    for problem in problems:
        print(problem, file=sys.stderr)
    if problems:
        return EXIT_VALIDATION_ERROR

    print("EDM credential configuration OK.")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
