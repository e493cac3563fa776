#!/usr/bin/env python3
"""
Operator node: registers with the delegation manager and answers every
NewTaskCreated event with a signed respondToTask transaction.

The process exits on any fatal error and is expected to be restarted by its
supervisor (systemd, docker, pm2); it never resubscribes on its own.
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from avs_operator.errors import ConfigurationError, OperatorError
from avs_operator.operator_config import OperatorConfig
from avs_operator.operator_service import OperatorService


def setup_logging(config):
    """Setup logging based on configuration"""
    log_level = getattr(logging, str(config.log_level).upper(), logging.INFO)
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers = []

    # Console handler
    handlers.append(logging.StreamHandler(sys.stdout))

    # File handler if specified
    if config.log_file:
        log_file = Path(config.log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=log_level, format=log_format, handlers=handlers, force=True)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(add_help=True)
    parser.add_argument(
        "--config",
        "-c",
        default="operator_config.yaml",
        help="Path to operator YAML config (default: operator_config.yaml)",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="dotenv file with RPC_URL, WALLET_KEY, ... (default: .env)",
    )
    parser.add_argument(
        "--skip-registration",
        action="store_true",
        help="Do not call registerAsOperator (operator already registered).",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        config = OperatorConfig.load(args.config, dotenv_path=args.env_file)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logging.error(f"Failed to load config: {e}")
        return 1
    if args.skip_registration:
        config.skip_registration = True

    setup_logging(config)

    logging.info("=" * 60)
    logging.info("Starting operator node")
    logging.info("=" * 60)

    try:
        service = OperatorService.from_config(config)
    except OperatorError as e:
        logging.error(f"Failed to initialize operator: {e}")
        return 1

    logging.info(f"Operator address: {service.account.address}")
    logging.info(f"Service manager: {config.hello_world_address}")
    logging.info(f"Delegation manager: {config.delegation_manager_address}")
    try:
        latest = service.responder.contract_manager.latest_task_num()
        logging.info(f"Latest task number on-chain: {latest}")
    except Exception as e:
        logging.warning(f"Could not read latestTaskNum: {e}")

    def _handle_sigterm(signum, frame):
        logging.info("Received signal %s, stopping responder...", signum)
        service.stop()

    signal.signal(signal.SIGTERM, _handle_sigterm)

    exit_code = 0
    reason = "shutdown"
    try:
        service.start()
    except KeyboardInterrupt:
        logging.info("\n" + "=" * 60)
        logging.info("Shutting down operator node...")
        logging.info("=" * 60)
        service.stop()
    except OperatorError as e:
        logging.error(f"Operator stopped: {e}")
        exit_code = 1
        reason = type(e).__name__
    except Exception as e:
        logging.exception(f"Unexpected error, operator stopped: {e}")
        exit_code = 1
        reason = type(e).__name__
    finally:
        if service.metrics_logger:
            service.metrics_logger.log_session_end(reason)

    logging.info("Operator node exited")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
