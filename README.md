# enitech_thruster

Tools for talking to Enitech thrusters over a CAN bus and for checking that
they do what they are told.

The package builds the frames to send and interprets the frames received.
It does not open a CAN interface itself: you supply the transport.

## Modules

- `enitech_thruster.message` — `CanMessage` (the frame type used everywhere,
  with `CanMessage.zeroed()` and a `payload` property), the little-endian
  `read16` / `write16` helpers, and the abstract `Request` base class for
  request/reply exchanges.
- `enitech_thruster.jointstate` — `JointState` and `JointMode`. A field
  holding NaN is unset (`is_unset`). `JointState.mode()` returns the single
  field that is set, `JointMode.UNSET` when none is, and raises `ValueError`
  when several are.
- `enitech_thruster.protocol` — `Protocol`, the state of one node. Its
  `update(message)` parses heartbeat, emergency, "initialized" and status
  (PDO) frames and returns a `MessageType`. It exposes `node_id`,
  `last_heartbeat`, `last_known_state` (a `NodeState`), `last_status` (a
  `Status`) and `last_emergency` (an `Emergency`), and builds NMT frames
  (`start`, `stop`, `enter_pre_operational`, `reset`, `reset_communication`),
  SDO frames (`make_sdo_read`, `make_sdo_write8`, `make_sdo_write16`) and
  command frames (`make_command`). Malformed frames raise `InvalidMessage`;
  reading a state or status never received raises `StateUnknown` or
  `StatusUnknown`; a node ID that does not fit in 8 bits raises
  `InvalidNodeID`.
- `enitech_thruster.nmt` — `Start`, `Stop`, `EnterPreOperational` and
  `Reset`, subclasses of `NMTRequest`. Each completes once a heartbeat
  reports the expected state.
- `enitech_thruster.sdo` — `Read8`, `Read16`, `ReadString`,
  `ReadBG149Temperature`, `Write` (8 or 16 bits wide), `WriteHeartbeatPeriod`
  and `WriteUpdatePeriod` (periods in seconds), subclasses of `SDORequest`.
  Error replies raise `SDOError`; replies that do not match the request raise
  `UnexpectedSDOReply`.
- `enitech_thruster.joints` — `NamedVector` and `Joints`: timestamped joint
  states addressable by index or by name (`InvalidName` for unknown names).
- `enitech_thruster.monitor` — `ThrusterMonitor`, which compares moving
  averages of commanded and measured speed per thruster and produces
  `MonitoringVariables`; `MonitorSettings` holds its parameters and
  `load_thrusters` reads the thruster list from YAML.
- `enitech_thruster.node` — `ThrusterNode`, which drives a set of thrusters
  on one bus: configuration, start and stop, forwarding speed or raw
  commands, periodic temperature reads, and `IOTimeout` when a thruster does
  not answer or falls silent. `NodeSettings` holds its parameters.

## The request pattern

Every request carries the frame to send in `request.message`. Send it, then
feed each received frame to `request.update(...)` until it returns `True`:

```python
from enitech_thruster.protocol import Protocol
from enitech_thruster.nmt import Start

protocol = Protocol(5)
request = Start(protocol)
bus.send(request.message)
while not request.update(bus.receive()):
    pass
```

Frames that are not the reply a request waits for are passed on to the
`Protocol`, so heartbeats and status frames keep being tracked while a
request is in flight.

## Sending a command

```python
from enitech_thruster.jointstate import JointState

frame = protocol.make_command(JointState.from_speed(-120.0))
bus.send(frame)
```

Speeds are in rad/s. Positive speeds turn the thruster clockwise; negative
speeds set the counter-clockwise bit. `JointState.from_raw(...)` sends a
current-control command instead. Any other mode raises `ValueError`.

## Listing thrusters

`load_thrusters(path)` reads YAML shaped like this and returns a list of
`Thruster` objects (an empty list if the file or the sections are missing):

```yaml
ThrusterNode:
  ros__parameters:
    thrusters:
      - name: left
        id: 1
        frame: base_link
      - name: right
        id: 2
        frame: base_link
```

## Monitoring

```python
from enitech_thruster.monitor import MonitorSettings, ThrusterMonitor, load_thrusters

monitor = ThrusterMonitor(load_thrusters("thrusters.yaml"), MonitorSettings(tolerance=0.2))
monitor.on_speed_command([10.0, 10.0], now=12.0)
monitor.on_joint_sample(0, speed=9.5, time=12.1)
late = monitor.update()          # names of thrusters below expectation
print(monitor.last_output[0])    # latest MonitoringVariables, or None
```

Durations in `MonitorSettings` are in seconds. `tolerance` must lie in
(0, 1] and `samples_threshold` must be positive, otherwise `ValueError` is
raised. Pass `publish=callable(index, variables)` to receive each output.

## Driving thrusters

`ThrusterNode` takes a driver object with `reset() -> bool`,
`write(message)` and `read() -> CanMessage | None`, the list of thrusters,
optional `NodeSettings`, and an optional `publish(topic, index, payload)`
callable. Topics are `"status"`, `"joint_sample"`, `"emergency"`,
`"temperature"` and `"heartbeat"`.

```python
from enitech_thruster.node import ThrusterNode

with ThrusterNode(driver, thrusters, publish=handler) as node:   # configure + start
    node.on_speed_command([5.0, -5.0])
    node.update()                                                  # call periodically
# the thrusters are stopped on exit
```

## What the package does not do

There is no command-line program and no timer loop: the caller decides when
to call `update()`. No CAN interface driver is included, and outputs are
delivered only through the `publish` callables you provide, not over any
messaging middleware.