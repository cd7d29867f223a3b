"""
Point policy for first-goal predictions.

Per-user aggregates live on LeaderboardEntry and are mutated only by
VerificationService.verify_game(); this module only knows the values.
"""

DEFAULT_POINTS_CORRECT = 10
DEFAULT_POINTS_INCORRECT = -5


def calculate_prediction_score(
    predicted_player_id,
    scoring_player_id,
    points_correct=DEFAULT_POINTS_CORRECT,
    points_incorrect=DEFAULT_POINTS_INCORRECT,
):
    """
    Calculate the point delta for a single prediction.

    Returns:
        points_correct when the pick matches the first-goal scorer,
        points_incorrect otherwise
    """
    if predicted_player_id == scoring_player_id:
        return points_correct
    return points_incorrect


def expected_points(correct, total, points_correct=DEFAULT_POINTS_CORRECT,
                    points_incorrect=DEFAULT_POINTS_INCORRECT):
    """Point total implied by a correct/total record"""
    return correct * points_correct + (total - correct) * points_incorrect
