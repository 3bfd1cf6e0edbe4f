"""Deploy a prebuilt program to the local validator through the solana CLI."""

import json
import subprocess
from pathlib import Path

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from access_harness.config import DeployOptions
from access_harness.errors import DeploymentError
from access_harness.utils.logger import get_logger

logger = get_logger(__name__)

PATH_TO_SOLANA = "solana"


def read_keypair(keypair_path: str | Path) -> Keypair:
    """Load a solana-keygen JSON keypair file."""
    try:
        raw = Path(keypair_path).read_text(encoding="utf-8")
    except OSError as e:
        raise DeploymentError(f"Cannot read keypair {keypair_path}: {e}") from e
    try:
        return Keypair.from_bytes(bytes(json.loads(raw)))
    except (ValueError, TypeError) as e:
        raise DeploymentError(f"Invalid keypair file {keypair_path}") from e


def read_program_id(keypair_path: str | Path) -> Pubkey:
    return read_keypair(keypair_path).pubkey()


def build_deploy_command(payer_key_file: Path, options: DeployOptions) -> list[str]:
    return [
        PATH_TO_SOLANA,
        "program",
        "deploy",
        str(options.program_so),
        "--program-id",
        str(options.program_keypair),
        "-u",
        options.rpc_url,
        "-k",
        str(payer_key_file),
        "--commitment",
        options.commitment,
    ]


def deploy_program(payer_key_file: str | Path, options: DeployOptions) -> Pubkey:
    """Deploy ``options.program_so`` paying with the key in ``payer_key_file``.

    Returns:
        The deployed program id

    Raises:
        DeploymentError: If an input file is missing or the CLI fails
    """
    payer_key_file = Path(payer_key_file)
    for required in (options.program_so, options.program_keypair, payer_key_file):
        if not Path(required).exists():
            raise DeploymentError(f"Missing deployment input: {required}")

    program_id = read_program_id(options.program_keypair)
    cmd = build_deploy_command(payer_key_file, options)
    logger.info(f"[DEPLOY] {' '.join(cmd)}")

    try:
        output = subprocess.check_output(cmd, stderr=subprocess.STDOUT, universal_newlines=True)
    except FileNotFoundError as e:
        raise DeploymentError(f"{PATH_TO_SOLANA} CLI not found") from e
    except subprocess.CalledProcessError as err:
        logger.error(f"[DEPLOY] solana error {err}")
        raise DeploymentError(f"Deploy of {options.program_so} failed", output=err.output) from err

    logger.debug(f"[DEPLOY] {output.strip()}")
    logger.info(f"[DEPLOY] Program deployed: {program_id}")
    return program_id
