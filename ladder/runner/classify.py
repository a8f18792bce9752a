# SPDX-License-Identifier: GPL-2.0-or-later
"""Maps the way a match ended to its result."""

from ladder.types import SIDES, ExitCase, ResultType, opponent

DOUBLE_FAULT_POLICIES = {
    'tie': ResultType.TIE,
    'error': ResultType.ERROR,
}


def classify(exit_case, alive=(True, True), winner=None, culprit=None,
             launch_failed=False, double_fault=ResultType.TIE):
    """Returns the ResultType of a match.

    Args:
      exit_case: the ExitCase the session ended with.
      alive: for each side, whether its bot was still running when the
        match ended. A side is dead only if it exited while the engine still
        expected input from it.
      winner: the side the engine reports as winner, if any.
      culprit: the side the session blames for a timeout or that asked to
        leave, if it could tell.
      launch_failed: a bot could not be started, the match never began.
      double_fault: result when both sides died.

    Rules apply in order: launch failure, crash of exactly one side (a
    requested exit is not a crash), timeouts, normal end. Anything else is
    an Error.
    """
    if launch_failed:
        return ResultType.INITIALIZATION_ERROR

    if exit_case is ExitCase.CLIENT_REQUEST_EXIT:
        if winner in SIDES:
            return ResultType.win(winner)
        if culprit in SIDES:
            return ResultType.win(opponent(culprit))
        return ResultType.TIE

    side1_alive, side2_alive = alive
    if exit_case.terminal:
        if side1_alive != side2_alive:
            return ResultType.crash(1 if not side1_alive else 2)
        if not side1_alive and not side2_alive:
            return double_fault

    if exit_case in (ExitCase.CLIENT_TIMEOUT, ExitCase.GAME_TIMEOUT):
        if culprit in SIDES:
            return ResultType.win(opponent(culprit))
        return ResultType.TIMEOUT

    if exit_case is ExitCase.GAME_END:
        if winner in SIDES:
            return ResultType.win(winner)
        return ResultType.TIE

    return ResultType.ERROR
