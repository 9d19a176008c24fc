"""EcotraceEventLinker: isolated pyventus namespace for ecotrace events.

Collaborators that want calculation results (realtime broadcaster, audit
store) subscribe here:

    @EcotraceEventLinker.on(CarbonCalculated)
    def _push(event: CarbonCalculated) -> None: ...
"""

from __future__ import annotations

from pyventus.events import EventLinker


class EcotraceEventLinker(EventLinker):
    """Isolated event namespace for ecotrace."""

    pass
