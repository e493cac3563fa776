#!/usr/bin/env python3
"""
Creates a randomly named task on the service manager every few seconds.
Used to feed a local devnet operator.
"""

import argparse
import logging
import sys
import threading
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from avs_operator.chain_client import ChainClient
from avs_operator.contract_manager import ContractManager
from avs_operator.errors import ConfigurationError, OperatorError
from avs_operator.operator_config import OperatorConfig
from avs_operator.task_creator import TaskCreator, random_task_name
from avs_operator.transaction_builder import TransactionBuilder, load_account
from neurons.operator_node import setup_logging


def spam_tasks(creator, account, interval, stop_event=None, max_tasks=None, name_fn=random_task_name):
    """Create tasks until ``stop_event`` is set or ``max_tasks`` were created.

    Any failure propagates; the spammer does not skip tasks.
    """
    stop_event = stop_event or threading.Event()
    created = 0
    while not stop_event.is_set():
        creator.create_task(account, name_fn())
        created += 1
        if max_tasks is not None and created >= max_tasks:
            break
        stop_event.wait(interval)
    return created


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(add_help=True)
    parser.add_argument("--config", "-c", default="operator_config.yaml")
    parser.add_argument("--env-file", default=".env")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between tasks (default: spam_interval_seconds, 15)",
    )
    parser.add_argument("--count", type=int, default=None, help="Stop after N tasks")
    args = parser.parse_args(argv)

    try:
        config = OperatorConfig.load(args.config, dotenv_path=args.env_file)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO)
        logging.error(f"Failed to load config: {e}")
        return 1

    setup_logging(config)
    logging.info("Starting task spammer")

    try:
        chain_client = ChainClient.connect(config.rpc_url, timeout=config.request_timeout)
        account = load_account(config.wallet_key)
        contract_manager = ContractManager(chain_client, config.hello_world_address)
        builder = TransactionBuilder(chain_client, config.gas_limit, config.gas_price)
    except OperatorError as e:
        logging.error(f"Failed to initialize task spammer: {e}")
        return 1

    interval = args.interval if args.interval is not None else config.spam_interval_seconds
    try:
        created = spam_tasks(
            TaskCreator(contract_manager, builder), account, interval, max_tasks=args.count
        )
    except KeyboardInterrupt:
        logging.info("Task spammer interrupted")
        return 0
    except OperatorError as e:
        logging.error(f"Failed to create a new task: {e}")
        return 1

    logging.info(f"Task spammer exited after {created} task(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
