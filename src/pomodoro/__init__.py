from .controller import (
    OvertimeInfo,
    RenderFrame,
    RenderSink,
    SessionOutcome,
    TimerController,
    TimerUpdate,
)
from .periods import Period, PeriodEngine, PeriodKind, PeriodTransition

__all__ = [
    "OvertimeInfo",
    "Period",
    "PeriodEngine",
    "PeriodKind",
    "PeriodTransition",
    "RenderFrame",
    "RenderSink",
    "SessionOutcome",
    "TimerController",
    "TimerUpdate",
]
