import pytest

from foundation import telemetry


@pytest.fixture
def calls():
    calls = []

    yield calls

    telemetry.detach("test-telemetry")


def recorder(calls):
    def handler(name, metadata):
        calls.append((name, metadata))

    return handler


class TestTelemetry:
    def test_handlers_receive_matching_events(self, calls):
        telemetry.attach("test-telemetry", ["app.event"], recorder(calls))

        telemetry.execute("app.event", {"value": 1})
        telemetry.execute("app.other", {"value": 2})

        assert calls == [("app.event", {"value": 1})]

    def test_attaching_the_same_id_replaces_the_handler(self, calls):
        replaced = []

        telemetry.attach("test-telemetry", ["app.event"], recorder(replaced))
        telemetry.attach("test-telemetry", ["app.event"], recorder(calls))

        telemetry.execute("app.event", {})

        assert replaced == []
        assert len(calls) == 1

    def test_detached_handlers_stop_receiving_events(self, calls):
        telemetry.attach("test-telemetry", ["app.event"], recorder(calls))

        assert telemetry.detach("test-telemetry")
        assert not telemetry.detach("test-telemetry")

        telemetry.execute("app.event", {})

        assert calls == []

    def test_attach_validation(self):
        with pytest.raises(ValueError, match="events"):
            telemetry.attach("test-telemetry", [], print)

        with pytest.raises(TypeError, match="handler"):
            telemetry.attach("test-telemetry", ["app.event"], None)
