"""Realtime broadcast registry.

Status and tracking handlers publish to the gateway registered here.
app.py installs a RoomGateway when REALTIME_TRANSPORT is ``memory``;
background processes such as the settlement scheduler never install one,
so their publishes land on a NoOpGateway and are dropped.
"""

from marketplace.realtime.port import BroadcastGateway, NoOpGateway

_current_gateway: BroadcastGateway | None = None


def get_gateway() -> BroadcastGateway:
    """Gateway that status and tracking updates are published to."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = NoOpGateway()
    return _current_gateway


def install_gateway(gateway: BroadcastGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Forget the installed gateway; publishes are dropped until another is installed."""
    global _current_gateway
    _current_gateway = None
