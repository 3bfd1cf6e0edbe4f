"""
Harness configuration.

Values come from an optional YAML file, ``${VAR}`` references inside it are
resolved from the environment (``.env`` is loaded first), and a few
environment variables override the file directly.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from solana.constants import LAMPORTS_PER_SOL

from access_harness.errors import ConfigError

DEFAULT_RPC_URL = "http://localhost:8899"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"

NONCE_TTL_SECONDS = 10 * 60
MINT_DECIMALS = 6

_ENV_REF = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass
class SubmitOptions:
    """How a transaction is submitted and how hard we try to see it finalized."""
    skip_preflight: bool = False
    max_confirm_attempts: int = 5
    poll_interval: float = 1.0  # seconds between status reads
    confirm_timeout: float = 60.0  # bound on the initial finalized wait


@dataclass
class DeployOptions:
    """Where the prebuilt program lives and where it goes."""
    program_so: Path
    program_keypair: Path
    rpc_url: str = DEFAULT_RPC_URL
    commitment: str = "finalized"


@dataclass
class HarnessConfig:
    rpc_url: str = DEFAULT_RPC_URL
    redis_url: str = DEFAULT_REDIS_URL
    nonce_ttl_seconds: int = NONCE_TTL_SECONDS
    airdrop_lamports: int = 10 * LAMPORTS_PER_SOL
    mint_decimals: int = MINT_DECIMALS
    log_level: str = "INFO"
    log_file: Optional[str] = None
    submit: SubmitOptions = field(default_factory=SubmitOptions)
    deploy: Optional[DeployOptions] = None

    def validate(self) -> None:
        if self.submit.max_confirm_attempts < 1:
            raise ConfigError("submit.max_confirm_attempts must be at least 1")
        if self.submit.poll_interval < 0:
            raise ConfigError("submit.poll_interval must not be negative")
        if self.nonce_ttl_seconds <= 0:
            raise ConfigError("nonce_ttl_seconds must be positive")
        if self.airdrop_lamports <= 0:
            raise ConfigError("airdrop_lamports must be positive")
        if not 0 <= self.mint_decimals <= 9:
            raise ConfigError("mint_decimals must be between 0 and 9")


def _resolve_env(value: Any) -> Any:
    """Substitute ${VAR} references recursively. Unset variables become None."""
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env(v) for v in value]
    if not isinstance(value, str):
        return value

    whole = _ENV_REF.fullmatch(value)
    if whole:
        return os.getenv(whole.group(1)) or None
    return _ENV_REF.sub(lambda m: os.getenv(m.group(1), ""), value)


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return _resolve_env(raw)


def _pick(section: dict, key: str, default: Any) -> Any:
    value = section.get(key)
    return default if value is None else value


_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


def _as_bool(value: Any) -> bool:
    """YAML booleans pass through, strings from ${VAR} substitution are parsed."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"expected a boolean, got {value!r}")


def _build_deploy(section: Optional[dict], rpc_url: str, base_dir: Path) -> Optional[DeployOptions]:
    if not section:
        return None
    try:
        program_so = Path(section["program_so"])
        program_keypair = Path(section["program_keypair"])
    except KeyError as e:
        raise ConfigError(f"deploy section is missing {e.args[0]}") from e

    if not program_so.is_absolute():
        program_so = base_dir / program_so
    if not program_keypair.is_absolute():
        program_keypair = base_dir / program_keypair

    return DeployOptions(
        program_so=program_so,
        program_keypair=program_keypair,
        rpc_url=_pick(section, "rpc_url", rpc_url),
        commitment=_pick(section, "commitment", "finalized"),
    )


def load_config(path: str | Path | None = None) -> HarnessConfig:
    """Load harness configuration.

    Args:
        path: Optional YAML file. Relative deploy paths are resolved against
            its directory.

    Returns:
        Validated HarnessConfig

    Raises:
        ConfigError: If the file is missing, malformed or holds invalid values
    """
    load_dotenv(find_dotenv(usecwd=True))

    cfg: dict = {}
    base_dir = Path.cwd()
    if path is not None:
        path = Path(path)
        cfg = _read_yaml(path)
        base_dir = path.resolve().parent

    logging_cfg = cfg.get("logging") or {}
    submit_cfg = cfg.get("submit") or {}

    rpc_url = os.getenv("SOLANA_RPC_URL") or _pick(cfg, "rpc_url", DEFAULT_RPC_URL)

    try:
        submit = SubmitOptions(
            skip_preflight=_as_bool(_pick(submit_cfg, "skip_preflight", False)),
            max_confirm_attempts=int(_pick(submit_cfg, "max_confirm_attempts", 5)),
            poll_interval=float(_pick(submit_cfg, "poll_interval", 1.0)),
            confirm_timeout=float(_pick(submit_cfg, "confirm_timeout", 60.0)),
        )
        config = HarnessConfig(
            rpc_url=rpc_url,
            redis_url=os.getenv("REDIS_URL") or _pick(cfg, "redis_url", DEFAULT_REDIS_URL),
            nonce_ttl_seconds=int(
                os.getenv("NONCE_TTL_SECONDS") or _pick(cfg, "nonce_ttl_seconds", NONCE_TTL_SECONDS)
            ),
            airdrop_lamports=int(_pick(cfg, "airdrop_lamports", 10 * LAMPORTS_PER_SOL)),
            mint_decimals=int(_pick(cfg, "mint_decimals", MINT_DECIMALS)),
            log_level=os.getenv("LOG_LEVEL") or _pick(logging_cfg, "level", "INFO"),
            log_file=logging_cfg.get("file"),
            submit=submit,
            deploy=_build_deploy(cfg.get("deploy"), rpc_url, base_dir),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config value: {e}") from e

    config.validate()
    return config
