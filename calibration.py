"""
Sound Sensing - Calibration Lifecycle
Clears the energy calibration on the host's stop-all signal and reports how
far the rolling statistics have warmed up.
"""

from enum import IntEnum

from logging_utils import log_event
from session import AnalysisSession


class CalibrationPhase(IntEnum):
    UNINITIALIZED = 0      # No analysis pass has started the session yet
    CALIBRATING = 1        # Energy history not yet full, estimates under-weighted
    STEADY = 2             # Energy history full


class CalibrationLifecycle:
    """
    Owns the clear semantics of an analysis session.

    ``clear`` returns the energy statistics and the energy vector to zero.
    The flux statistics and the started flag survive a clear.
    """

    def __init__(self, session: AnalysisSession):
        self.session = session

    def clear(self) -> None:
        session = self.session
        if session.energy_mean is not None:
            session.energy_mean.clear()
        if session.energy_variance is not None:
            session.energy_variance.clear()
        session.energy.fill(0.0)
        if session.started:
            session.summary.calibration_clears += 1
        log_event("INFO", "Calibration", "Energy calibration cleared",
                  started=session.started)

    @property
    def phase(self) -> CalibrationPhase:
        session = self.session
        if not session.started or session.energy_mean is None:
            return CalibrationPhase.UNINITIALIZED
        if session.energy_mean.is_full:
            return CalibrationPhase.STEADY
        return CalibrationPhase.CALIBRATING
