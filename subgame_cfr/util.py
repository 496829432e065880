"""Small numeric helpers on plain Python lists."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import TypeVar

T = TypeVar("T")


def transpose(matrix: Sequence[Sequence[T]]) -> list[list[T]]:
    """Transpose a matrix whose width is taken from its first row."""
    if not matrix:
        raise ValueError("cannot transpose an empty matrix")
    width = len(matrix[0])
    return [[row[j] for row in matrix] for j in range(width)]


def check_nan(values: Sequence[float]) -> None:
    """Raise ValueError if any value is NaN."""
    if any(math.isnan(x) for x in values):
        raise ValueError(f"NaN found in {list(values)}")


def _check_same_length(v1: Sequence[float], v2: Sequence[float]) -> None:
    if len(v1) != len(v2):
        raise ValueError(f"length mismatch: {len(v1)} != {len(v2)}")


def pointwise_multiple(v1: Sequence[float], v2: Sequence[float]) -> list[float]:
    """Element-wise product."""
    _check_same_length(v1, v2)
    return [a * b for a, b in zip(v1, v2)]


def multiple(v1: Sequence[float], v2: Sequence[float]) -> float:
    """Dot product."""
    _check_same_length(v1, v2)
    return sum((a * b for a, b in zip(v1, v2)), 0.0)


def matvec(matrix: Sequence[Sequence[float]], vector: Sequence[float]) -> list[float]:
    """Matrix-vector product."""
    _check_same_length(matrix[0], vector)
    return [multiple(vector, row) for row in matrix]


def combine_matrices(tensor: Sequence[Sequence[Sequence[float]]], weights: Sequence[float]) -> list[list[float]]:
    """Weighted sum of the matrices along the outermost dimension."""
    _check_same_length(tensor, weights)
    result = [[0.0] * len(tensor[0][0]) for _ in tensor[0]]
    for matrix, weight in zip(tensor, weights):
        for out_row, row in zip(result, matrix):
            for j, x in enumerate(row):
                out_row[j] += x * weight
    return result


def sum_plus(values: Sequence[float], sigmoid: float = 1.0) -> float:
    """Sum of the positive values, each raised to the power sigmoid."""
    return sum((x**sigmoid for x in values if x > 0.0), 0.0)


def check_prob_distribution(values: Sequence[float]) -> None:
    """Raise ValueError unless the values sum to 1 within 1e-3."""
    total = sum(values)
    if not 0.999 < total < 1.001:
        raise ValueError(f"not a probability distribution: sum is {total}")


def linear_combine(v1: Sequence[float], v2: Sequence[float], w1: float, w2: float) -> list[float]:
    """Weighted average of two distributions; the result must be a distribution."""
    _check_same_length(v1, v2)
    total = w1 + w2
    if not total > 0.0:
        raise ValueError("weights must have a positive sum")
    result = [(a * w1 + b * w2) / total for a, b in zip(v1, v2)]
    check_prob_distribution(result)
    return result


def max_index(values: Sequence[float]) -> tuple[float, int]:
    """Largest value and the index of its first occurrence."""
    check_nan(values)
    if not values:
        raise ValueError("max of an empty sequence")
    best_index = 0
    for index, x in enumerate(values):
        if x > values[best_index]:
            best_index = index
    return values[best_index], best_index


def check_equal(v1: Sequence[float], v2: Sequence[float], precise: int) -> None:
    """Raise ValueError unless the values agree to within 0.1**precise."""
    tolerance = 0.1**precise
    for a, b in zip(v1, v2):
        if not abs(a - b) < tolerance:
            raise ValueError(f"{a} and {b} differ by more than {tolerance}")


def compute_entropy(prob: Sequence[float]) -> float:
    """Sum of p*ln(p), taking 0*ln(0) as 0."""
    return sum((0.0 if x == 0.0 else x * math.log(x) for x in prob), 0.0)


def check_ranges_normal(ranges: Sequence[Sequence[float]]) -> tuple[bool, int]:
    """Check every column has a positive sum; return the first failing column."""
    for column in range(len(ranges[0])):
        if sum(row[column] for row in ranges) <= 0.0:
            return False, column
    return True, 0


def broadcast_subtract(v1: Sequence[Sequence[float]], v2: Sequence[float], dim: int) -> list[list[float]]:
    """Subtract v2 from each row (dim 1) or each row's entries by v2[row] (dim 0)."""
    width = len(v1[0])
    if len(v2) == len(v1) and dim == 0:
        return [[row[j] - offset for j in range(width)] for row, offset in zip(v1, v2)]
    if dim != 1:
        raise ValueError(f"cannot broadcast along dimension {dim}")
    return [[row[j] - v2[j] for j in range(width)] for row in v1]


def round_values(values: Sequence[float], precise: int) -> list[float]:
    """Round to precise decimals, halves away from zero."""
    scale = 10.0**precise
    return [math.copysign(math.floor(abs(scale * x) + 0.5), scale * x) / scale for x in values]


def flatten_outer(tables: Sequence[Sequence[Sequence[float]]]) -> list[list[float]]:
    """Join the rows of several tables side by side, row count taken from the first."""
    row_count = len(tables[0])
    return [[x for table in tables for x in table[row]] for row in range(row_count)]


def _divide(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def compute_prob_r_dist(v1: Sequence[Sequence[float]], v2: Sequence[Sequence[float]]) -> float:
    """Squared distance between the two tables after normalising each row."""

    def normalised(table: Sequence[Sequence[float]]) -> list[float]:
        flat = []
        for row in table:
            total = sum(row)
            flat.extend(_divide(x, total) for x in row)
        return flat

    return sum(((a - b) ** 2 for a, b in zip(normalised(v1), normalised(v2))), 0.0)


def kl_dist(v1: Sequence[float], v2: Sequence[float]) -> float:
    """KL divergence of v1 from v2, skipping non-positive entries of v1."""
    return sum(
        (a * math.log(a / (v2[k] + 1e-20)) if a > 0.0 else 0.0 for k, a in enumerate(v1)),
        0.0,
    )


def compute_prob_r_kldist(v1: Sequence[Sequence[float]], v2: Sequence[Sequence[float]]) -> float:
    """Largest per-player KL divergence between column-normalised reach probabilities."""
    num_player = len(v1[0])

    def column_sums(table: Sequence[Sequence[float]]) -> list[float]:
        return [sum(row[p] for row in table) for p in range(num_player)]

    def columns(table: Sequence[Sequence[float]], sums: list[float]) -> list[list[float]]:
        return [
            [row[p] / total if total > 0.0 else row[p] for row in table]
            for p, total in enumerate(sums)
        ]

    sums1, sums2 = column_sums(v1), column_sums(v2)
    distances = [kl_dist(a, b) for a, b in zip(columns(v1, sums1), columns(v2, sums2))]
    for p, (s1, s2) in enumerate(zip(sums1, sums2)):
        if s1 < 1e-8 and s2 > 1e-8:
            distances[p] = 1.0e10
    return max_index(distances)[0]


def dict_to_sorted_list(mapping: Mapping[int, T]) -> list[T]:
    """Values of the mapping in ascending key order."""
    return [value for _, value in sorted(mapping.items())]