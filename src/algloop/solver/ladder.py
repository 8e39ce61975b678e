from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

import numpy as np
from numpy.typing import NDArray

from .config import RetryLadderDefaults
from .workspace import AUTO_SCALE_MODE, USER_SCALE_MODE, SolveWorkspace

type RetryCounter = Literal["retries", "retries2", "retries3"]

INITIAL_ATTEMPT_TIER = 0
EXHAUSTED_TIER = 9


@dataclass(frozen=True, slots=True)
class LadderInputs:
    extrapolated_guess: NDArray[np.float64]
    previous_solution: NDArray[np.float64]
    constants: RetryLadderDefaults


type TierAction = Callable[[SolveWorkspace, LadderInputs], str]


@dataclass(frozen=True, slots=True)
class RetryTier:
    tier: int
    counter: RetryCounter
    limit: int
    action: TierAction

    def admits(self, workspace: SolveWorkspace) -> bool:
        return int(getattr(workspace, self.counter)) < self.limit

    def apply(self, workspace: SolveWorkspace, inputs: LadderInputs) -> str:
        message = self.action(workspace, inputs)
        setattr(workspace, self.counter, int(getattr(workspace, self.counter)) + 1)
        return message


def _shrink_factor(workspace: SolveWorkspace, inputs: LadderInputs) -> str:
    workspace.factor = workspace.factor / inputs.constants.factor_divisor
    return f"iteration making no progress: decrease factor to {workspace.factor:g}"


def _offset_start_point(workspace: SolveWorkspace, inputs: LadderInputs) -> str:
    offset = inputs.constants.start_point_offset
    workspace.x += offset
    return f"iteration making no progress: vary initial point by {offset:+g}"


def _scale_guess_up(workspace: SolveWorkspace, inputs: LadderInputs) -> str:
    scale = inputs.constants.extrapolation_scale_up
    workspace.x[...] = inputs.extrapolated_guess * scale
    return f"iteration making no progress: restart from extrapolated values times {scale:g}"


def _scale_guess_down(workspace: SolveWorkspace, inputs: LadderInputs) -> str:
    scale = inputs.constants.extrapolation_scale_down
    workspace.x[...] = inputs.extrapolated_guess * scale
    return f"iteration making no progress: restart from extrapolated values times {scale:g}"


def _restart_from_previous(workspace: SolveWorkspace, inputs: LadderInputs) -> str:
    workspace.reset_factor()
    workspace.retries = 0
    workspace.x[...] = inputs.previous_solution
    return "iteration making no progress: use old values instead of extrapolated"


def _restore_saved_scaling(workspace: SolveWorkspace, inputs: LadderInputs) -> str:
    del inputs
    workspace.diag[...] = workspace.diag_save
    workspace.reset_factor()
    workspace.retries = 0
    workspace.retries2 = 0
    workspace.mode = USER_SCALE_MODE
    return "iteration making no progress: change scaling factors to the saved values"


def _scale_from_guess(workspace: SolveWorkspace, inputs: LadderInputs) -> str:
    workspace.x[...] = inputs.extrapolated_guess
    workspace.diag[...] = np.maximum(
        inputs.constants.diag_floor, np.abs(inputs.extrapolated_guess)
    )
    workspace.reset_factor()
    workspace.retries = 0
    workspace.retries2 = 0
    workspace.mode = AUTO_SCALE_MODE
    return "iteration making no progress: change scaling factors to extrapolated magnitudes"


def _remove_scaling(workspace: SolveWorkspace, inputs: LadderInputs) -> str:
    workspace.x[...] = inputs.extrapolated_guess
    workspace.diag[...] = 1.0
    workspace.reset_factor()
    workspace.retries = 0
    workspace.retries2 = 0
    workspace.mode = USER_SCALE_MODE
    return "iteration making no progress: remove scaling factors"


DERIVATIVE_FREE_TIERS: tuple[RetryTier, ...] = (
    RetryTier(tier=1, counter="retries", limit=3, action=_shrink_factor),
    RetryTier(tier=2, counter="retries", limit=5, action=_offset_start_point),
    RetryTier(tier=3, counter="retries", limit=7, action=_scale_guess_up),
    RetryTier(tier=4, counter="retries", limit=9, action=_scale_guess_down),
    RetryTier(tier=5, counter="retries2", limit=1, action=_restart_from_previous),
    RetryTier(tier=6, counter="retries3", limit=1, action=_restore_saved_scaling),
    RetryTier(tier=7, counter="retries3", limit=2, action=_scale_from_guess),
    RetryTier(tier=8, counter="retries3", limit=3, action=_remove_scaling),
)

ANALYTIC_JACOBIAN_TIERS: tuple[RetryTier, ...] = DERIVATIVE_FREE_TIERS[:2]


def select_retry_tier(
    tiers: tuple[RetryTier, ...],
    workspace: SolveWorkspace,
) -> RetryTier | None:
    for tier in tiers:
        if tier.admits(workspace):
            return tier
    return None
