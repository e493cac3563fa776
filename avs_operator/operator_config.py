import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values
from web3 import Web3

from avs_operator.chain_client import normalize_rpc_url
from avs_operator.errors import ConfigurationError
from avs_operator.registrar import DEFAULT_REGISTRATION_GAS_PRICE
from avs_operator.task_responder import RetryPolicy

_DEFAULT_YAML = """
# Values here are overridden by .env / environment variables of the same
# name in upper case (RPC_URL, GAS_LIMIT, GAS_PRICE, ...).
rpc_url: null                     # ws://host:port or http(s)://...; bare host:port means ws://
gas_limit: null
gas_price: null                   # wei
registration_gas_price: 21000     # wei, registration tx only
hello_world_address: null
delegation_manager_address: null
wallet_key: null                  # prefer WALLET_KEY in .env
wallet_key_path: null             # JSON file {"private_key": "0x..."}
poll_interval_seconds: 2
request_timeout: 10
skip_registration: false
wait_for_receipt: false
receipt_timeout: 180
spam_interval_seconds: 15
metrics_log: operator_metrics.log
responder:
  max_attempts: 3
  backoff_seconds: 1.0
  max_backoff_seconds: 30.0
  fail_fast: false
logging:
  level: INFO
  file: null
"""

# yaml key -> environment variable
ENV_KEYS = {
    "rpc_url": "RPC_URL",
    "gas_limit": "GAS_LIMIT",
    "gas_price": "GAS_PRICE",
    "registration_gas_price": "REGISTRATION_GAS_PRICE",
    "hello_world_address": "HELLO_WORLD_ADDRESS",
    "delegation_manager_address": "HOLESKY_DELEGATION_MANAGER_ADDRESS",
    "wallet_key": "WALLET_KEY",
    "wallet_key_path": "WALLET_KEY_PATH",
    "poll_interval_seconds": "POLL_INTERVAL_SECONDS",
    "request_timeout": "REQUEST_TIMEOUT",
    "skip_registration": "SKIP_REGISTRATION",
    "wait_for_receipt": "WAIT_FOR_RECEIPT",
    "spam_interval_seconds": "SPAM_INTERVAL_SECONDS",
    "metrics_log": "METRICS_LOG",
}

RESPONDER_ENV_KEYS = {
    "max_attempts": "RESPONDER_MAX_ATTEMPTS",
    "fail_fast": "RESPONDER_FAIL_FAST",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _required(data: Mapping[str, Any], key: str):
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        env = ENV_KEYS.get(key, key.upper())
        raise ConfigurationError(f"Missing required setting '{key}' (or {env})")
    return value


def _int(key: str, value, minimum: int = 0) -> int:
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(f"Error while parsing {key}: {value!r}") from None
    if parsed < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {parsed}")
    return parsed


def _float(key: str, value, minimum: float = 0.0) -> float:
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(f"Error while parsing {key}: {value!r}") from None
    if parsed < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {parsed}")
    return parsed


def _bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"Error while parsing {key}: {value!r}")


def _address(key: str, value) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        # unquoted 0x... in YAML loads as an int
        value = f"0x{value:040x}"
    try:
        return Web3.to_checksum_address(str(value).strip())
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid address for {key}: {value!r}") from None


def _read_key_file(path: str) -> str:
    key_file = Path(path).expanduser()
    if not key_file.exists():
        raise ConfigurationError(f"Wallet key file not found at {key_file}")
    try:
        return json.loads(key_file.read_text())["private_key"]
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise ConfigurationError(f"Invalid wallet key file {key_file}: {e}") from None


@dataclass
class OperatorConfig:
    rpc_url: str
    gas_limit: int
    gas_price: int
    hello_world_address: str
    delegation_manager_address: str
    wallet_key: str = field(repr=False)
    registration_gas_price: int = DEFAULT_REGISTRATION_GAS_PRICE
    poll_interval_seconds: float = 2.0
    request_timeout: float = 10.0
    skip_registration: bool = False
    wait_for_receipt: bool = False
    receipt_timeout: float = 180.0
    spam_interval_seconds: float = 15.0
    metrics_log: Optional[str] = "operator_metrics.log"
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    _default_yaml_path = Path("operator_config.yaml")

    @classmethod
    def _load_yaml(cls, yaml_path: Path) -> dict:
        """Return dict from YAML; a commented default is written if the file is missing."""
        if not yaml_path.exists():
            yaml_path.write_text(_DEFAULT_YAML)
            return yaml.safe_load(_DEFAULT_YAML)
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error while parsing {yaml_path}: {e}") from None
        if not isinstance(data, dict):
            raise ConfigurationError(f"{yaml_path} must contain a mapping")
        return data

    @classmethod
    def load(
        cls,
        config_path: str | Path | None = None,
        *,
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: str | Path = ".env",
    ) -> "OperatorConfig":
        yaml_path = Path(config_path) if config_path else cls._default_yaml_path
        y = cls._load_yaml(yaml_path.expanduser().resolve())
        if env is None:
            env = {**dotenv_values(dotenv_path), **os.environ}
        return cls.from_dict(y, env)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], env: Optional[Mapping[str, str]] = None):
        env = env or {}
        merged: Dict[str, Any] = dict(data)
        for key, name in ENV_KEYS.items():
            if env.get(name) not in (None, ""):
                merged[key] = env[name]

        responder = dict(merged.get("responder") or {})
        for key, name in RESPONDER_ENV_KEYS.items():
            if env.get(name) not in (None, ""):
                responder[key] = env[name]

        logging_cfg = dict(merged.get("logging") or {})
        if env.get("LOG_LEVEL"):
            logging_cfg["level"] = env["LOG_LEVEL"]

        wallet_key = merged.get("wallet_key")
        if not wallet_key and merged.get("wallet_key_path"):
            wallet_key = _read_key_file(merged["wallet_key_path"])
        if not wallet_key:
            raise ConfigurationError(
                "Missing required setting 'wallet_key' (or WALLET_KEY / wallet_key_path)"
            )

        if isinstance(wallet_key, int):
            wallet_key = f"0x{wallet_key:064x}"

        metrics_log = merged.get("metrics_log", "operator_metrics.log")

        return cls(
            rpc_url=normalize_rpc_url(str(_required(merged, "rpc_url"))),
            gas_limit=_int("gas_limit", _required(merged, "gas_limit"), minimum=1),
            gas_price=_int("gas_price", _required(merged, "gas_price")),
            hello_world_address=_address(
                "hello_world_address", _required(merged, "hello_world_address")
            ),
            delegation_manager_address=_address(
                "delegation_manager_address", _required(merged, "delegation_manager_address")
            ),
            wallet_key=str(wallet_key).strip(),
            registration_gas_price=_int(
                "registration_gas_price",
                merged.get("registration_gas_price", DEFAULT_REGISTRATION_GAS_PRICE),
            ),
            poll_interval_seconds=_float(
                "poll_interval_seconds", merged.get("poll_interval_seconds", 2.0)
            ),
            request_timeout=_float("request_timeout", merged.get("request_timeout", 10)),
            skip_registration=_bool(
                "skip_registration", merged.get("skip_registration", False)
            ),
            wait_for_receipt=_bool("wait_for_receipt", merged.get("wait_for_receipt", False)),
            receipt_timeout=_float("receipt_timeout", merged.get("receipt_timeout", 180)),
            spam_interval_seconds=_float(
                "spam_interval_seconds", merged.get("spam_interval_seconds", 15)
            ),
            metrics_log=metrics_log or None,
            retry_policy=RetryPolicy(
                max_attempts=_int(
                    "responder.max_attempts", responder.get("max_attempts", 3), minimum=1
                ),
                backoff_seconds=_float(
                    "responder.backoff_seconds", responder.get("backoff_seconds", 1.0)
                ),
                max_backoff_seconds=_float(
                    "responder.max_backoff_seconds",
                    responder.get("max_backoff_seconds", 30.0),
                ),
                fail_fast=_bool("responder.fail_fast", responder.get("fail_fast", False)),
            ),
            log_level=str(logging_cfg.get("level") or "INFO").upper(),
            log_file=logging_cfg.get("file") or None,
        )
