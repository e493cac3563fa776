from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _field(obj: Any, name: str):
    if isinstance(obj, Mapping):
        return obj[name]
    return getattr(obj, name)


@dataclass(frozen=True)
class Task:
    name: str
    created_at_block: int

    @classmethod
    def from_abi(cls, value: Any) -> "Task":
        """Accept the decoded ABI tuple either as a mapping or a plain (name, block) tuple."""
        if isinstance(value, (list, tuple)):
            name, block = value
            return cls(name=str(name), created_at_block=int(block))
        return cls(
            name=str(_field(value, "name")),
            created_at_block=int(_field(value, "taskCreatedBlock")),
        )

    def to_abi(self) -> tuple:
        return (self.name, int(self.created_at_block))


@dataclass(frozen=True)
class TaskEvent:
    index: int
    task: Task
    block_number: int = 0
    log_index: int = 0
    transaction_hash: Optional[str] = None

    @property
    def position(self) -> tuple:
        return (self.block_number, self.log_index)

    @classmethod
    def from_log(cls, entry: Mapping[str, Any]) -> "TaskEvent":
        """Decode a web3 ``NewTaskCreated`` log entry."""
        args = entry["args"]
        tx_hash = entry.get("transactionHash")
        if tx_hash is not None and not isinstance(tx_hash, str):
            tx_hash = "0x" + bytes(tx_hash).hex()
        return cls(
            index=int(_field(args, "taskIndex")),
            task=Task.from_abi(_field(args, "task")),
            block_number=int(entry.get("blockNumber") or 0),
            log_index=int(entry.get("logIndex") or 0),
            transaction_hash=tx_hash,
        )


@dataclass(frozen=True)
class TransactionOptions:
    sender_address: str
    nonce: int
    gas_limit: int
    gas_price: int
    chain_id: int
    value: int = 0

    def to_tx_params(self) -> Dict[str, Any]:
        return {
            "from": self.sender_address,
            "nonce": self.nonce,
            "gas": self.gas_limit,
            "gasPrice": self.gas_price,
            "value": self.value,
            "chainId": self.chain_id,
        }


@dataclass(frozen=True)
class OperatorDetails:
    earnings_receiver: str = ZERO_ADDRESS
    delegation_approver: str = ZERO_ADDRESS
    staker_opt_out_window_blocks: int = 0

    def to_abi(self) -> tuple:
        return (
            self.earnings_receiver,
            self.delegation_approver,
            int(self.staker_opt_out_window_blocks),
        )


@dataclass(frozen=True)
class OperatorRegistration:
    operator_details: OperatorDetails = field(default_factory=OperatorDetails)
    metadata_uri: str = ""
