"""Kaplan-Meier survival estimation."""

from typing import Iterable

from cbioportal_dashboard.models import ChartData, KaplanMeierCurve, SurvivalData

NOT_REACHED = "not reached"


def is_deceased(status: str) -> bool:
    """Whether an OS_STATUS value marks a death event.

    Studies disagree on the vocabulary ("1:DECEASED", "DECEASED", "DEAD"),
    so all three forms are accepted.
    """
    return "DECEASED" in status or status == "1:DECEASED" or status == "DEAD"


def median_survival(times: list[float], survival: list[float]) -> float | str:
    """First time at which survival is at or below 50%, else NOT_REACHED."""
    for t, s in zip(times, survival):
        if s <= 50:
            return t
    return NOT_REACHED


def kaplan_meier(data: Iterable[SurvivalData]) -> KaplanMeierCurve:
    """Compute a step survival curve in percent.

    Only death events add a point; censored patients leave the risk set
    without one.
    """
    events = sorted(data, key=lambda s: s.months)
    if not events:
        return KaplanMeierCurve(chart=ChartData(), times=[], survival=[], median=NOT_REACHED)

    at_risk = len(events)
    current = 100.0
    times = [0.0]
    survival = [100.0]

    for event in events:
        if is_deceased(event.status):
            current *= (at_risk - 1) / at_risk
            times.append(event.months)
            survival.append(current)
        at_risk -= 1

    return KaplanMeierCurve(
        chart=ChartData(labels=[f"{t:.0f}" for t in times], values=list(survival)),
        times=times,
        survival=survival,
        median=median_survival(times, survival),
    )
