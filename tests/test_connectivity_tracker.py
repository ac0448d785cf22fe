"""
Tests for the ConnectivityTracker state machine.

Covers every Disconnected/Connected edge, idempotent reports and the
ordering of chain and account notifications.
"""

import pytest

from conftest import ALICE, ALL_EVENTS, BOB, EventRecorder
from ethprovider.connectivity.tracker import ConnectivityTracker
from ethprovider.core.exceptions import ProviderRpcError, ValidationError
from ethprovider.core.types import ChainId, CloseCode
from ethprovider.events import EventBus


@pytest.fixture
def events(bus: EventBus, recorder: EventRecorder) -> EventRecorder:
    return recorder.attach(bus, *ALL_EVENTS)


class TestConnect:
    """Disconnected -> Connected."""

    def test_starts_disconnected(self, tracker: ConnectivityTracker) -> None:
        state = tracker.current_state()
        assert state.connected is False
        assert state.chain_id is None

    def test_first_contact_emits_connect(self, tracker, events) -> None:
        assert tracker.report_connectivity(True, chain_id="0x1") is True

        assert events.events == [("connect", {"chainId": "0x1"})]
        assert tracker.current_state().chain_id == ChainId("0x1")

    def test_connect_with_accounts_emits_accounts_changed_after(self, tracker, events) -> None:
        tracker.report_connectivity(True, chain_id="0x1", accounts=[ALICE])
        assert events.names == ["connect", "accountsChanged"]
        assert events.payloads("accountsChanged") == [[ALICE]]

    def test_connect_extra_fields(self, tracker, events) -> None:
        tracker.report_connectivity(True, chain_id=1, extra={"client": "geth"})
        assert events.payloads("connect") == [{"client": "geth", "chainId": "0x1"}]

    def test_connect_without_chain_is_invalid(self, tracker, events) -> None:
        with pytest.raises(ValidationError):
            tracker.report_connectivity(True)
        assert events.events == []

    def test_malformed_chain_is_invalid(self, tracker) -> None:
        with pytest.raises(ValidationError):
            tracker.report_connectivity(True, chain_id="mainnet")
        assert tracker.current_state().connected is False

    def test_accounts_must_be_strings(self, tracker) -> None:
        with pytest.raises(ValidationError):
            tracker.report_connectivity(True, chain_id="0x1", accounts=[1, 2])
        with pytest.raises(ValidationError):
            tracker.report_connectivity(True, chain_id="0x1", accounts=ALICE)

    @pytest.mark.parametrize("accounts", [5, {ALICE}, {"0": ALICE}, iter([ALICE])])
    def test_accounts_must_be_a_list(self, tracker, events, accounts) -> None:
        with pytest.raises(ValidationError):
            tracker.report_connectivity(True, chain_id="0x1", accounts=accounts)
        assert tracker.current_state().connected is False
        assert events.events == []


class TestDisconnect:
    """Connected -> Disconnected."""

    def test_disconnect_emits_close_code_error(self, connected_tracker, events) -> None:
        assert connected_tracker.report_connectivity(False) is True

        assert events.names == ["disconnect"]
        error = events.payloads("disconnect")[0]
        assert isinstance(error, ProviderRpcError)
        assert error.code == CloseCode.TRY_AGAIN_LATER
        assert 1000 <= error.code < 4000

        state = connected_tracker.current_state()
        assert state.connected is False
        assert state.chain_id is None

    def test_disconnect_with_explicit_code(self, connected_tracker, events) -> None:
        connected_tracker.report_connectivity(False, error=CloseCode.NORMAL_CLOSURE)
        assert events.payloads("disconnect")[0].code == 1000

    def test_disconnect_with_prebuilt_error(self, connected_tracker, events) -> None:
        error = ProviderRpcError("gone", 1001)
        connected_tracker.report_connectivity(False, error=error)
        assert events.payloads("disconnect") == [error]

    def test_provider_code_is_wrapped(self, connected_tracker, events) -> None:
        error = ProviderRpcError("Not connected", 4900)
        connected_tracker.report_connectivity(False, error=error)

        payload = events.payloads("disconnect")[0]
        assert payload.code == CloseCode.TRY_AGAIN_LATER
        assert payload.message == "Not connected"
        assert payload.data == {"cause": {"code": 4900, "message": "Not connected"}}

    def test_json_rpc_code_is_wrapped(self, connected_tracker, events) -> None:
        connected_tracker.report_connectivity(False, error=-32603)
        assert events.payloads("disconnect")[0].code == CloseCode.TRY_AGAIN_LATER

    def test_failure_while_disconnected_is_silent(self, tracker, events) -> None:
        assert tracker.report_connectivity(False) is False
        assert events.events == []

    def test_accounts_survive_disconnect(self, connected_tracker) -> None:
        connected_tracker.report_connectivity(False)
        assert connected_tracker.current_state().accounts == (ALICE,)

    def test_reconnect_emits_connect_again(self, connected_tracker, events) -> None:
        connected_tracker.report_connectivity(False)
        connected_tracker.report_connectivity(True, chain_id="0x1")
        assert events.names == ["disconnect", "connect"]

    def test_reconnect_with_new_accounts(self, connected_tracker, events) -> None:
        connected_tracker.report_connectivity(False)
        connected_tracker.report_connectivity(True, chain_id="0x1", accounts=[BOB])
        assert events.names == ["disconnect", "connect", "accountsChanged"]


class TestConnectedTransitions:
    """Connected -> Connected."""

    def test_account_change_only(self, tracker, events) -> None:
        tracker.report_connectivity(True, chain_id="0x1", accounts=[])
        events.events.clear()

        tracker.report_connectivity(True, chain_id="0x1", accounts=["0xabc"])

        assert events.events == [("accountsChanged", ["0xabc"])]

    def test_chain_change_only(self, connected_tracker, events) -> None:
        connected_tracker.report_connectivity(True, chain_id="0x89")
        assert events.events == [("chainChanged", "0x89")]

    def test_chain_and_accounts_change_in_order(self, tracker, events) -> None:
        tracker.report_connectivity(True, chain_id="0x1", accounts=["0xabc"])
        events.events.clear()

        tracker.report_connectivity(True, chain_id="0x2", accounts=["0xdef"])

        assert events.events == [("chainChanged", "0x2"), ("accountsChanged", ["0xdef"])]

    def test_reordering_counts_as_change(self, tracker, events) -> None:
        tracker.report_connectivity(True, chain_id="0x1", accounts=[ALICE, BOB])
        events.events.clear()

        tracker.report_connectivity(True, accounts=[BOB, ALICE])
        assert events.events == [("accountsChanged", [BOB, ALICE])]

    def test_equivalent_chain_spelling_is_no_change(self, connected_tracker, events) -> None:
        connected_tracker.report_connectivity(True, chain_id="0x01")
        connected_tracker.report_connectivity(True, chain_id=1)
        assert events.events == []

    def test_listener_sees_new_state(self, connected_tracker, bus) -> None:
        seen = []
        bus.on("chainChanged", lambda _: seen.append(connected_tracker.current_state().chain_id))
        connected_tracker.report_connectivity(True, chain_id="0x5")
        assert seen == [ChainId("0x5")]


class TestIdempotence:
    """Repeated identical reports fire nothing."""

    def test_repeated_success(self, tracker, events) -> None:
        for _ in range(3):
            tracker.report_connectivity(True, chain_id="0x1", accounts=[ALICE])
        assert events.names == ["connect", "accountsChanged"]

    def test_repeated_failure(self, connected_tracker, events) -> None:
        for _ in range(3):
            connected_tracker.report_connectivity(False)
        assert events.names == ["disconnect"]

    def test_one_event_per_edge(self, tracker, events) -> None:
        reports = [True, True, False, False, True, False, True, True]
        for success in reports:
            tracker.report_connectivity(success, chain_id="0x1" if success else None)

        assert events.names.count("connect") == 3
        assert events.names.count("disconnect") == 2
        assert "chainChanged" not in events.names
