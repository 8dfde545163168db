import pytest

from relay.core.retry import retry_forever
from relay.core.supervisor import ReconnectSupervisor
from relay.domain.models import Network, RelayMessage, SupervisorState
from relay.errors import SendError, TransientReceiveError

from conftest import FakeRoom


class SleepRecorder:
    def __init__(self):
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


def _msg(text):
    return RelayMessage(source=Network.xmpp, author="dee", text=text)


@pytest.mark.asyncio
async def test_receive_failure_reconnects_at_fixed_interval():
    xmpp = FakeRoom(Network.xmpp)
    xmpp.connect_failures = 3
    handled = []

    async def handle(msg):
        handled.append(msg)

    sleep = SleepRecorder()
    sup = ReconnectSupervisor(xmpp, handle, interval=3.0, sleep=sleep)

    xmpp.inbox.publish(_msg("before"))
    xmpp.inbox.fail(TransientReceiveError("stream closed"))
    # The new connection delivers a fresh message once it is up.
    xmpp.on_connected = lambda: xmpp.inbox.publish(_msg("after"))

    await sup.step()
    assert [m.text for m in handled] == ["before"]

    await sup.step()
    assert xmpp.close_calls == 1
    assert xmpp.connect_calls == 4
    assert sleep.waits == [3.0, 3.0, 3.0]
    assert sup.state == SupervisorState.connected
    assert sup.reconnects == 1

    await sup.step()
    assert [m.text for m in handled] == ["before", "after"]
    assert len(xmpp.inbox) == 0


@pytest.mark.asyncio
async def test_sends_while_down_fail_without_raising_into_supervisor():
    xmpp = FakeRoom(Network.xmpp)
    await xmpp.close()
    with pytest.raises(SendError):
        await xmpp.send_text("ann", "hi")


@pytest.mark.asyncio
async def test_retry_forever_first_try():
    calls = []

    async def ok():
        calls.append(1)

    sleep = SleepRecorder()
    assert await retry_forever(ok, interval=3.0, sleep=sleep) == 1
    assert calls == [1]
    assert sleep.waits == []


@pytest.mark.asyncio
async def test_retry_forever_has_no_attempt_cap():
    remaining = {"n": 25}

    async def flaky():
        if remaining["n"]:
            remaining["n"] -= 1
            raise ConnectionError("refused")

    sleep = SleepRecorder()
    assert await retry_forever(flaky, interval=3.0, sleep=sleep) == 26
    assert sleep.waits == [3.0] * 25


@pytest.mark.asyncio
async def test_handler_error_does_not_stop_supervisor():
    xmpp = FakeRoom(Network.xmpp)
    handled = []

    async def handle(msg):
        if msg.text == "bad":
            raise RuntimeError("adapter bug")
        handled.append(msg.text)

    sup = ReconnectSupervisor(xmpp, handle, interval=3.0, sleep=SleepRecorder())
    xmpp.inbox.publish(_msg("bad"))
    xmpp.inbox.publish(_msg("good"))
    await sup.step()
    await sup.step()
    assert handled == ["good"]
    assert sup.state == SupervisorState.connected
    assert xmpp.close_calls == 0
