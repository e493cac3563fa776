import pytest

from avs_operator.errors import NonceError, RegistrationError, SubmissionError
from avs_operator.event_subscriber import EventSubscriber
from avs_operator.models import OperatorDetails, OperatorRegistration, ZERO_ADDRESS
from avs_operator.operator_service import OperatorService
from avs_operator.registrar import DEFAULT_REGISTRATION_GAS_PRICE, OperatorRegistrar
from avs_operator.task_responder import ResponderContext, ResponderState, TaskResponder
from avs_operator.transaction_builder import TransactionBuilder
from conftest import TEST_KEY, FakeContractManager, FakeLogFilter, log_entry


def make_registrar(manager=None):
    manager = manager or FakeContractManager()
    builder = TransactionBuilder(manager.chain_client, gas_limit=500_000, gas_price=99)
    return OperatorRegistrar(manager, builder.with_gas_price(DEFAULT_REGISTRATION_GAS_PRICE)), manager


def test_register_submits_empty_details_with_registration_gas_price(account):
    registrar, manager = make_registrar()

    tx_hash = registrar.register(account)

    assert tx_hash.startswith("0x")
    assert registrar.registered
    tx = manager.sent[0]
    assert tx["fn"] == "registerAsOperator"
    (registration,) = tx["args"]
    assert registration == OperatorRegistration()
    assert registration.metadata_uri == ""
    assert registration.operator_details.to_abi() == (ZERO_ADDRESS, ZERO_ADDRESS, 0)
    assert tx["gasPrice"] == 21000
    assert tx["gas"] == 500_000
    assert tx["value"] == 0


def test_register_accepts_hex_key():
    registrar, manager = make_registrar()
    registrar.register(TEST_KEY)
    assert len(manager.sent) == 1


def test_register_runs_at_most_once(account):
    registrar, manager = make_registrar()
    registrar.register(account)
    with pytest.raises(RegistrationError):
        registrar.register(account)
    assert len(manager.sent) == 1


def test_submission_failure_becomes_registration_error(account):
    registrar, manager = make_registrar()
    manager.submit_errors = [SubmissionError("execution reverted: operator has already registered")]

    with pytest.raises(RegistrationError) as excinfo:
        registrar.register(account)

    assert isinstance(excinfo.value.__cause__, SubmissionError)
    assert not registrar.registered
    assert registrar.builder.nonce_tracker.last_issued(account.address) is None


def test_nonce_failure_becomes_registration_error(account):
    registrar, manager = make_registrar()
    manager.chain_client.nonce_error = NonceError("Error while getting nonce")
    with pytest.raises(RegistrationError):
        registrar.register(account)


def test_custom_operator_details(account):
    registrar, manager = make_registrar()
    details = OperatorDetails(staker_opt_out_window_blocks=50)
    registrar.register(account, OperatorRegistration(details, "https://example.com/op.json"))
    (registration,) = manager.sent[0]["args"]
    assert registration.operator_details.staker_opt_out_window_blocks == 50
    assert registration.metadata_uri == "https://example.com/op.json"


def _service(account, manager, skip_registration=False):
    builder = TransactionBuilder(manager.chain_client, 1_000_000, 20)
    registrar = OperatorRegistrar(manager, builder.with_gas_price(21000))
    responder = TaskResponder(
        ResponderContext(account=account, builder=builder),
        manager,
        _SpySubscriber(manager),
    )
    return OperatorService(registrar, responder, skip_registration=skip_registration)


class _SpySubscriber:
    def __init__(self, manager):
        self.manager = manager
        self.watched = 0

    def watch(self, event_name="NewTaskCreated", index_filter=None):
        self.watched += 1
        return EventSubscriber(self.manager, poll_interval=0).watch(event_name, index_filter)


def test_scenario_c_registration_failure_prevents_responder(account):
    manager = FakeContractManager(log_filter=FakeLogFilter([[log_entry(1, "Foo", 10)]]))
    manager.submit_errors = [SubmissionError("insufficient funds for gas")]
    service = _service(account, manager)

    with pytest.raises(RegistrationError):
        service.start()

    assert service.responder.subscriber.watched == 0
    assert service.responder.state == ResponderState.IDLE
    assert manager.sent == []
    assert manager.filter_calls == []


def test_service_registers_then_responds(account):
    log_filter = FakeLogFilter([[log_entry(3, "Foo", 10)]])
    manager = FakeContractManager(log_filter=log_filter)
    service = _service(account, manager)
    log_filter.on_exhausted = service.stop

    service.start()

    assert [tx["fn"] for tx in manager.sent] == ["registerAsOperator", "respondToTask"]
    assert [tx["nonce"] for tx in manager.sent] == [0, 1]
    assert manager.sent[0]["gasPrice"] == 21000
    assert manager.sent[1]["gasPrice"] == 20


def test_service_can_skip_registration(account):
    log_filter = FakeLogFilter([])
    manager = FakeContractManager(log_filter=log_filter)
    service = _service(account, manager, skip_registration=True)
    log_filter.on_exhausted = service.stop

    service.start()

    assert manager.sent == []
    assert service.responder.state == ResponderState.STOPPED
