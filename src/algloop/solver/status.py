from __future__ import annotations

from enum import IntEnum, StrEnum


class ResultStatus(StrEnum):
    SUCCESS = "success"
    IMPROPER_INPUT = "improper_input"
    NO_PROGRESS = "no_progress"
    EXCEEDED_EVALUATIONS = "exceeded_evaluations"
    SINGULAR = "singular"
    FATAL = "fatal"

    @property
    def is_failure(self) -> bool:
        return self is not ResultStatus.SUCCESS


class EvaluationMode(IntEnum):
    RESIDUAL = 1
    JACOBIAN = 2


# MINPACK hybrd/hybrj exit codes; 3 means xtol is too small for further progress.
_MINPACK_INFO_STATUS: dict[int, ResultStatus] = {
    0: ResultStatus.IMPROPER_INPUT,
    1: ResultStatus.SUCCESS,
    2: ResultStatus.EXCEEDED_EVALUATIONS,
    3: ResultStatus.FATAL,
    4: ResultStatus.NO_PROGRESS,
    5: ResultStatus.NO_PROGRESS,
}


def status_from_minpack_info(info: int) -> ResultStatus:
    return _MINPACK_INFO_STATUS.get(int(info), ResultStatus.FATAL)
