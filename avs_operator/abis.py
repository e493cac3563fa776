"""ABI fragments for the contracts the operator talks to.

Only the entries the operator calls or watches are listed; the full
service-manager ABI also carries ownership, pausing and payment functions.
"""

_TASK_COMPONENTS = [
    {"internalType": "string", "name": "name", "type": "string"},
    {"internalType": "uint32", "name": "taskCreatedBlock", "type": "uint32"},
]

HELLO_WORLD_ABI = [
    {
        "inputs": [{"internalType": "string", "name": "name", "type": "string"}],
        "name": "createNewTask",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {
                "components": _TASK_COMPONENTS,
                "internalType": "struct IHelloWorldServiceManager.Task",
                "name": "task",
                "type": "tuple",
            },
            {"internalType": "uint32", "name": "referenceTaskIndex", "type": "uint32"},
            {"internalType": "bytes", "name": "signature", "type": "bytes"},
        ],
        "name": "respondToTask",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "latestTaskNum",
        "outputs": [{"internalType": "uint32", "name": "", "type": "uint32"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "anonymous": False,
        "inputs": [
            {
                "indexed": True,
                "internalType": "uint32",
                "name": "taskIndex",
                "type": "uint32",
            },
            {
                "components": _TASK_COMPONENTS,
                "indexed": False,
                "internalType": "struct IHelloWorldServiceManager.Task",
                "name": "task",
                "type": "tuple",
            },
        ],
        "name": "NewTaskCreated",
        "type": "event",
    },
]

DELEGATION_MANAGER_ABI = [
    {
        "inputs": [
            {
                "components": [
                    {
                        "internalType": "address",
                        "name": "__deprecated_earningsReceiver",
                        "type": "address",
                    },
                    {
                        "internalType": "address",
                        "name": "delegationApprover",
                        "type": "address",
                    },
                    {
                        "internalType": "uint32",
                        "name": "stakerOptOutWindowBlocks",
                        "type": "uint32",
                    },
                ],
                "internalType": "struct IDelegationManager.OperatorDetails",
                "name": "registeringOperatorDetails",
                "type": "tuple",
            },
            {"internalType": "string", "name": "metadataURI", "type": "string"},
        ],
        "name": "registerAsOperator",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]
