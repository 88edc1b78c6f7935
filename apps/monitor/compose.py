from __future__ import annotations

import logging
from typing import Final

from ports.ipc import EventSubPort, ScannerCommandPort

from apps.monitor.settings import MonitorSettings

LOG: Final = logging.getLogger("monitor")


def build_ipc(settings: MonitorSettings) -> tuple[ScannerCommandPort, EventSubPort]:
    cmd_port: ScannerCommandPort
    event_sub: EventSubPort

    if settings.ipc_impl == "zmq":
        from adapters.ipc_zmq.zmq import ZmqEventSubPort, ZmqScannerCommandPort

        cmd_port = ZmqScannerCommandPort()
        event_sub = ZmqEventSubPort()
    else:
        from adapters.ipc_inproc import InprocEventSubPort, InprocScannerCommandPort

        cmd_port = InprocScannerCommandPort.create()
        event_sub = InprocEventSubPort.create()

    for ep in settings.event_subs:
        LOG.debug("Subscribing to %s", ep)
        event_sub.subscribe(ep)
    return cmd_port, event_sub
