import asyncio
from typing import Optional

from config import Settings
from errors import ServiceError
from forward import Acceptor
from logger import logger
from monitor import LivenessMonitor

def init(settings: Settings):
    asyncio.run(serve(settings))


async def serve(
    settings: Settings,
    *,
    monitor: Optional[LivenessMonitor] = None,
    acceptor: Optional[Acceptor] = None,
):
    """
    Run the liveness monitor and the acceptor side by side until one of them
    stops. Both loop forever, so stopping means failing: the error is raised
    as a ServiceError naming the unit, and the other unit is cancelled.
    In-flight sessions are not drained.
    """
    monitor = monitor or LivenessMonitor(settings.target, settings.probe_interval)
    acceptor = acceptor or Acceptor(settings.listen, settings.target, settings.v6_only)

    loop = asyncio.get_running_loop()
    units = {
        loop.create_task(monitor.run(), name="monitor"): "monitor",
        loop.create_task(acceptor.run(), name="acceptor"): "acceptor",
    }
    try:
        done, _ = await asyncio.wait(units, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in units:
            task.cancel()
        await asyncio.gather(*units, return_exceptions=True)

    for task, component in units.items():
        if task not in done:
            continue
        error = task.exception()
        if error is not None:
            raise ServiceError(component, error) from error
        logger.warning(f"{component} stopped")
