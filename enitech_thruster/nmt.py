"""Network management requests: start, stop, pre-operational and reset."""

from __future__ import annotations

from enitech_thruster.message import CanMessage, Request
from enitech_thruster.protocol import NodeState, Protocol


class NMTRequest(Request):
    """An NMT frame, acknowledged once a heartbeat announces the expected state."""

    def __init__(self, protocol: Protocol, message: CanMessage, expected_state: NodeState) -> None:
        super().__init__(message)
        self.protocol = protocol
        self.expected_state = expected_state

    def update(self, message: CanMessage) -> bool:
        """Return True once the node reports the expected state."""
        self.protocol.update(message)
        return (
            self.protocol.has_known_state()
            and self.protocol.last_known_state == self.expected_state
        )


class Start(NMTRequest):
    """Start the node; it ends up RUNNING."""

    def __init__(self, protocol: Protocol) -> None:
        super().__init__(protocol, protocol.start(), NodeState.RUNNING)


class Stop(NMTRequest):
    """Stop the node; it ends up STOPPED."""

    def __init__(self, protocol: Protocol) -> None:
        super().__init__(protocol, protocol.stop(), NodeState.STOPPED)


class EnterPreOperational(NMTRequest):
    """Put the node in PRE_OPERATIONAL state."""

    def __init__(self, protocol: Protocol) -> None:
        super().__init__(protocol, protocol.enter_pre_operational(), NodeState.PRE_OPERATIONAL)


class Reset(NMTRequest):
    """Reset the node, applying pending parameter changes."""

    def __init__(self, protocol: Protocol) -> None:
        super().__init__(protocol, protocol.reset(), NodeState.PRE_OPERATIONAL)