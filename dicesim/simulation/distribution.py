"""
Histogram helpers for the Monte Carlo aggregator.

Histograms count outcomes while a run is in progress and are normalized to
percentages of the trial count at the end.
"""

Distribution = dict[int, float]
JointDistribution = dict[int, dict[int, float]]


def inc(histogram: dict[int, float], value: int) -> None:
    histogram[value] = histogram.get(value, 0) + 1


def inc_joint(histogram: JointDistribution, x: int, y: int) -> None:
    row = histogram.setdefault(x, {})
    row[y] = row.get(y, 0) + 1


def normalize_distribution(histogram: dict[int, float], n: int) -> Distribution:
    """
    Converts counts to percentages of ``n`` trials.

    Args:
        histogram (dict[int, float]): Counts by outcome.
        n (int): The number of trials.

    Returns:
        Distribution: Percentages by outcome, sorted by outcome.

    """
    return {key: histogram[key] / n * 100 for key in sorted(histogram)}


def normalize_joint(histogram: JointDistribution, n: int) -> JointDistribution:
    """Converts joint counts to percentages of ``n`` trials."""
    return {x: normalize_distribution(histogram[x], n) for x in sorted(histogram)}


def distribution_total(distribution: Distribution) -> float:
    return sum(distribution.values())


def joint_total(distribution: JointDistribution) -> float:
    return sum(sum(row.values()) for row in distribution.values())


def mean_of(distribution: Distribution) -> float:
    """Returns the mean outcome of a percentage distribution."""
    return sum(key * pct for key, pct in distribution.items()) / 100


def at_least(distribution: Distribution, threshold: int) -> float:
    """Returns the percentage of outcomes greater than or equal to a threshold."""
    return sum(pct for key, pct in distribution.items() if key >= threshold)
