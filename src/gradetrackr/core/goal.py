from dataclasses import dataclass


@dataclass(frozen=True)
class GoalProgress:
    current: float
    target: float
    difference: float
    progress_percent: float
    reached: bool


def goal_progress(current_cgpa: float, target_cgpa: float) -> GoalProgress:
    difference = target_cgpa - current_cgpa
    if target_cgpa > 0:
        progress = min(current_cgpa / target_cgpa * 100, 100.0)
    else:
        progress = 0.0
    return GoalProgress(
        current=current_cgpa,
        target=target_cgpa,
        difference=difference,
        progress_percent=progress,
        reached=current_cgpa >= target_cgpa,
    )


def format_difference(difference: float) -> str:
    sign = "+" if difference >= 0 else ""
    return f"{sign}{difference:.2f}"


def format_progress(percent: float) -> str:
    return f"{percent:.2f}%"
